"""Pydantic models describing the static release matrix."""

from __future__ import annotations

import shlex
from collections import Counter
from typing import Iterable, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..errors import ConfigurationError


class MatrixEntry(BaseModel):
    """One (runner, artifact, build script) combination of the release matrix."""

    host_os: str = Field(..., description="Runner label the entry builds on, e.g. 'windows-latest'.")
    artifact_name: str = Field(..., description="File produced by the build script and the uploaded asset name.")
    build_script: str = Field(..., description="Script file name under the binding subproject's tools/ directory.")
    build_script_arg: Optional[str] = Field(default=None, description="Optional positional architecture argument.")

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def script_line(self) -> str:
        if self.build_script_arg:
            return f"{self.build_script} {self.build_script_arg}"
        return self.build_script

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> "MatrixEntry":
        """Build an entry from the workflow-style ``{os, artifact_name, script}`` shape."""

        if "script" not in payload:
            try:
                return cls.model_validate(dict(payload))
            except ValidationError as exc:
                raise ConfigurationError(f"Invalid matrix entry {dict(payload)}: {exc}") from exc

        script = str(payload["script"])
        try:
            parts = shlex.split(script)
        except ValueError as exc:
            raise ConfigurationError(f"Matrix script '{script}' cannot be parsed: {exc}") from exc
        if not parts or len(parts) > 2:
            raise ConfigurationError(
                f"Matrix script must be '<script> [arg]' (got '{script}')."
            )
        host_os = payload.get("os", payload.get("host_os"))
        if not host_os or not payload.get("artifact_name"):
            raise ConfigurationError(f"Matrix entry requires 'os' and 'artifact_name' (got {dict(payload)}).")
        return cls(
            host_os=str(host_os),
            artifact_name=str(payload["artifact_name"]),
            build_script=parts[0],
            build_script_arg=parts[1] if len(parts) == 2 else None,
        )

    def to_workflow_dict(self) -> dict[str, str]:
        return {
            "os": self.host_os,
            "artifact_name": self.artifact_name,
            "script": self.script_line,
        }


class ReleaseMatrix(BaseModel):
    """Ordered, immutable collection of matrix entries keyed by artifact name."""

    entries: Tuple[MatrixEntry, ...] = Field(default_factory=tuple)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="after")
    def _check_unique_artifacts(self) -> "ReleaseMatrix":
        counts = Counter(entry.artifact_name for entry in self.entries)
        duplicates = sorted(name for name, count in counts.items() if count > 1)
        if duplicates:
            raise ConfigurationError(
                f"Artifact names must be unique within a release; duplicated: {', '.join(duplicates)}."
            )
        return self

    @classmethod
    def of(cls, entries: Iterable[MatrixEntry]) -> "ReleaseMatrix":
        return cls(entries=tuple(entries))

    @property
    def artifact_names(self) -> list[str]:
        return [entry.artifact_name for entry in self.entries]

    @property
    def hosts(self) -> list[str]:
        seen: list[str] = []
        for entry in self.entries:
            if entry.host_os not in seen:
                seen.append(entry.host_os)
        return seen

    def get(self, artifact_name: str) -> MatrixEntry:
        for entry in self.entries:
            if entry.artifact_name == artifact_name:
                return entry
        available = ", ".join(self.artifact_names)
        raise ConfigurationError(f"Unknown artifact '{artifact_name}'. Available artifacts: {available}.")

    def select(
        self,
        *,
        artifacts: Optional[Sequence[str]] = None,
        host_os: Optional[str] = None,
    ) -> "ReleaseMatrix":
        """Return the sub-matrix for the given artifacts and/or runner label."""

        entries = list(self.entries)
        if artifacts:
            wanted = {self.get(name).artifact_name for name in artifacts}
            entries = [entry for entry in entries if entry.artifact_name in wanted]
        if host_os:
            entries = [entry for entry in entries if entry.host_os == host_os]
        return ReleaseMatrix.of(entries)

    def to_workflow_include(self) -> list[dict[str, str]]:
        return [entry.to_workflow_dict() for entry in self.entries]
