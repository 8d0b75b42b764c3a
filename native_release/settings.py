"""Runtime settings resolved from the environment of the invoking platform."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .errors import ConfigurationError
from .publish import DEFAULT_GITHUB_API
from .schemas.release import ReleaseTarget

logger = logging.getLogger(__name__)

DEFAULT_BINDING_DIR = "dart-ffi"
DEFAULT_TOKEN_ENV = "GITHUB_TOKEN"


class ReleaseSettings(BaseModel):
    workspace_root: Path = Field(default_factory=Path.cwd)
    binding_dir: str = DEFAULT_BINDING_DIR
    repository: Optional[str] = Field(default=None, description="owner/name, from GITHUB_REPOSITORY.")
    ref: Optional[str] = Field(default=None, description="Triggering ref, from GITHUB_REF.")
    token_env: str = DEFAULT_TOKEN_ENV
    github_api: str = DEFAULT_GITHUB_API
    compiler_dir: Optional[Path] = None
    max_workers: Optional[int] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: object) -> "ReleaseSettings":
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        if env.get("GITHUB_WORKSPACE"):
            values["workspace_root"] = Path(env["GITHUB_WORKSPACE"])
        if env.get("GITHUB_REPOSITORY"):
            values["repository"] = env["GITHUB_REPOSITORY"]
        if env.get("GITHUB_REF"):
            values["ref"] = env["GITHUB_REF"]
        if env.get("GITHUB_API_URL"):
            values["github_api"] = env["GITHUB_API_URL"]
        if env.get("RUNNER_TEMP"):
            values["compiler_dir"] = Path(env["RUNNER_TEMP"]) / "llvm"
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls.model_validate(values)

    @property
    def binding_root(self) -> Path:
        return self.workspace_root / self.binding_dir

    @property
    def resolved_compiler_dir(self) -> Path:
        return self.compiler_dir or self.workspace_root / "build" / "llvm"

    def release_target(
        self,
        *,
        ref: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
        require_token: bool = True,
    ) -> ReleaseTarget:
        """Build the shared release target from the triggering ref and token variable."""

        effective_ref = ref or self.ref
        if not effective_ref:
            raise ConfigurationError("No release ref given; pass --ref or set GITHUB_REF.")
        env = os.environ if environ is None else environ
        token = env.get(self.token_env, "")
        if not token and require_token:
            raise ConfigurationError(f"Release token environment variable '{self.token_env}' is not set.")
        return ReleaseTarget.from_ref(effective_ref, token, repository=self.repository)


def load_local_env(path: str | Path) -> bool:
    """Load a repo-local ``.env`` without overriding variables already set."""

    env_file = Path(path)
    if not env_file.exists():
        return False
    logger.debug("Loading environment from %s", env_file)
    return load_dotenv(env_file, override=False)


__all__ = ["DEFAULT_BINDING_DIR", "DEFAULT_TOKEN_ENV", "ReleaseSettings", "load_local_env"]
