"""Models describing the release being populated by a run."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from ..errors import ConfigurationError

TAG_REF_PREFIX = "refs/tags/"


class ReleaseTarget(BaseModel):
    """Tag and credential shared read-only by every execution context."""

    tag: str
    repo_token: SecretStr
    repository: Optional[str] = Field(default=None, description="owner/name of the release host repository.")

    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def from_ref(cls, ref: str, token: str, *, repository: Optional[str] = None) -> "ReleaseTarget":
        """Build a target from a pushed ref such as ``refs/tags/v1.0.0``."""

        ref = (ref or "").strip()
        if ref.startswith(TAG_REF_PREFIX):
            tag = ref[len(TAG_REF_PREFIX) :]
        elif ref.startswith("refs/"):
            raise ConfigurationError(f"Release runs must be triggered by a tag ref (got '{ref}').")
        else:
            tag = ref
        if not tag:
            raise ConfigurationError("Release tag cannot be empty.")
        return cls(tag=tag, repo_token=SecretStr(token), repository=repository)


class UploadRecord(BaseModel):
    """One asset attached to the release."""

    file_path: Path
    asset_name: str
    tag: str
    adapter: str
    status: str = "succeeded"
    url: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="forbid")
