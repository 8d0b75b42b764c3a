"""Models describing resolved toolchains and build invocations."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CompilerRequirement(BaseModel):
    """Native compiler that must be installed before the build."""

    name: str = "llvm"
    version: str
    env_var: str = Field(default="LIBCLANG_PATH", description="Variable exposing the compiler binary directory.")

    model_config = ConfigDict(frozen=True, extra="forbid")


class ToolchainRequirement(BaseModel):
    """Toolchain configuration selected for one execution context."""

    language_toolchain: str = Field(..., description="Rust toolchain channel or pinned version.")
    native_compiler: Optional[CompilerRequirement] = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def needs_compiler(self) -> bool:
        return self.native_compiler is not None


class BuildInvocation(BaseModel):
    """Build script call resolved against the binding subproject root."""

    working_directory: Path
    script_path: str
    script_arg: Optional[str] = None
    artifact_name: str

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def command(self) -> List[str]:
        command = ["bash", self.script_path]
        if self.script_arg:
            command.append(self.script_arg)
        return command

    @property
    def artifact_path(self) -> Path:
        return self.working_directory / self.artifact_name
