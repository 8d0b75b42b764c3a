"""Source acquisition for execution contexts."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from .errors import CheckoutError

logger = logging.getLogger(__name__)


class SourceCheckout(Protocol):
    def acquire(self, workspace_root: Path, logs: List[str]) -> Path:  # pragma: no cover - interface
        ...


class NoCheckout:
    """Use sources already present in the workspace."""

    def acquire(self, workspace_root: Path, logs: List[str]) -> Path:
        if not workspace_root.is_dir():
            raise CheckoutError(f"Workspace not found: {workspace_root}")
        logs.append(f"Using existing sources at {workspace_root}.")
        return workspace_root


class GitCheckout:
    """Check out sources with submodules through git."""

    def __init__(
        self,
        *,
        repository_url: Optional[str] = None,
        ref: Optional[str] = None,
        submodules: bool = True,
        git: str = "git",
    ) -> None:
        self.repository_url = repository_url
        self.ref = ref
        self.submodules = submodules
        self.git = git

    def acquire(self, workspace_root: Path, logs: List[str]) -> Path:
        if self.repository_url and not (workspace_root / ".git").exists():
            clone = [self.git, "clone"]
            if self.submodules:
                clone.append("--recurse-submodules")
            clone += [self.repository_url, str(workspace_root)]
            self._run(clone, cwd=workspace_root.parent, logs=logs)
            if self.ref:
                self._run([self.git, "checkout", self.ref], cwd=workspace_root, logs=logs)
        elif not workspace_root.is_dir():
            raise CheckoutError(f"Workspace not found: {workspace_root}")

        if self.submodules:
            self._run(
                [self.git, "submodule", "update", "--init", "--recursive"],
                cwd=workspace_root,
                logs=logs,
            )
        return workspace_root

    def _run(self, command: Sequence[str], *, cwd: Path, logs: List[str]) -> None:
        logs.append(f"$ {' '.join(command)}")
        logger.debug("Running %s in %s", command, cwd)
        cwd.mkdir(parents=True, exist_ok=True)
        try:
            proc = subprocess.run(list(command), cwd=str(cwd), capture_output=True, text=True, check=False)
        except OSError as exc:
            raise CheckoutError(f"Unable to run {command[0]}: {exc}") from exc
        if proc.stdout:
            logs.append(proc.stdout.strip())
        if proc.stderr:
            logs.append(proc.stderr.strip())
        if proc.returncode != 0:
            raise CheckoutError(
                f"{' '.join(command[:3])} failed (exit {proc.returncode}): {(proc.stderr or '').strip()}"
            )


__all__ = ["GitCheckout", "NoCheckout", "SourceCheckout"]
