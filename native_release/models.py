from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .schemas.build import BuildInvocation, ToolchainRequirement
from .schemas.release import UploadRecord

SUCCEEDED = "succeeded"
FAILED = "failed"
CANCELLED = "cancelled"


@dataclass(slots=True)
class ContextResult:
    key: str
    host_os: str
    status: str = SUCCEEDED
    failed_stage: Optional[str] = None
    error: Optional[str] = None
    toolchain: Optional[ToolchainRequirement] = None
    invocation: Optional[BuildInvocation] = None
    upload: Optional[UploadRecord] = None
    logs: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == SUCCEEDED

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "key": self.key,
            "host_os": self.host_os,
            "status": self.status,
            "logs": self.logs,
        }
        if self.failed_stage:
            payload["failed_stage"] = self.failed_stage
        if self.error:
            payload["error"] = self.error
        if self.toolchain is not None:
            payload["toolchain"] = self.toolchain.model_dump(mode="json")
        if self.invocation is not None:
            payload["command"] = self.invocation.command
        if self.upload is not None:
            payload["upload"] = self.upload.model_dump(mode="json")
        return payload


@dataclass(slots=True)
class ReleaseRunResult:
    tag: str
    contexts: List[ContextResult]
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def ok(self) -> bool:
        return all(context.ok for context in self.contexts)

    @property
    def succeeded(self) -> List[str]:
        return [context.key for context in self.contexts if context.ok]

    @property
    def failed(self) -> List[str]:
        return [context.key for context in self.contexts if context.status == FAILED]

    @property
    def published_assets(self) -> List[str]:
        return [
            context.upload.asset_name
            for context in self.contexts
            if context.upload is not None and context.upload.status == SUCCEEDED
        ]

    def to_dict(self) -> Dict[str, object]:
        return {
            "tag": self.tag,
            "status": "ok" if self.ok else "partial",
            "started_at": self.started_at.isoformat(),
            "succeeded": self.succeeded,
            "failed": self.failed,
            "published_assets": self.published_assets,
            "contexts": [context.to_dict() for context in self.contexts],
        }


@dataclass(slots=True)
class TestRunResult:
    contexts: List[ContextResult]

    __test__ = False

    @property
    def ok(self) -> bool:
        return all(context.ok for context in self.contexts)

    @property
    def failed(self) -> List[str]:
        return [context.key for context in self.contexts if context.status == FAILED]

    def to_dict(self) -> Dict[str, object]:
        return {
            "status": "ok" if self.ok else "failed",
            "failed": self.failed,
            "contexts": [context.to_dict() for context in self.contexts],
        }
