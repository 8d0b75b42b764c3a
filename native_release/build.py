"""Build script invocation."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Sequence

from .errors import BuildError, VerificationError
from .schemas.build import BuildInvocation
from .schemas.matrix import MatrixEntry

logger = logging.getLogger(__name__)

SCRIPTS_DIR = "tools"
VERIFY_COMMAND = ("cargo", "test", "--verbose")


@dataclass(slots=True)
class BuildOutcome:
    invocation: BuildInvocation
    returncode: int
    artifact_path: Path
    logs: List[str] = field(default_factory=list)


def resolve_invocation(entry: MatrixEntry, binding_root: Path) -> BuildInvocation:
    """Resolve the entry's build script against the binding subproject root."""

    return BuildInvocation(
        working_directory=binding_root,
        script_path=f"{SCRIPTS_DIR}/{entry.build_script}",
        script_arg=entry.build_script_arg,
        artifact_name=entry.artifact_name,
    )


def run_build(invocation: BuildInvocation, env: Mapping[str, str]) -> BuildOutcome:
    """Run the build script; the script is responsible for emitting the artifact."""

    command = invocation.command
    logs = [f"$ {' '.join(command)} (cwd={invocation.working_directory})"]
    logger.info("Building %s", invocation.artifact_name)
    proc = _run(command, cwd=invocation.working_directory, env=env, error_type=BuildError)
    output = _combined_output(proc)
    if output:
        logs.append(output)
    if proc.returncode != 0:
        raise BuildError(
            f"Build script {invocation.script_path} exited with status {proc.returncode}.",
            returncode=proc.returncode,
            output=output,
        )
    return BuildOutcome(
        invocation=invocation,
        returncode=proc.returncode,
        artifact_path=invocation.artifact_path,
        logs=logs,
    )


def run_verification(
    workspace_root: Path,
    env: Mapping[str, str],
    command: Sequence[str] = VERIFY_COMMAND,
) -> List[str]:
    """Run the test pipeline's verification command and return its log lines."""

    logs = [f"$ {' '.join(command)} (cwd={workspace_root})"]
    proc = _run(list(command), cwd=workspace_root, env=env, error_type=VerificationError)
    output = _combined_output(proc)
    if output:
        logs.append(output)
    if proc.returncode != 0:
        raise VerificationError(
            f"Verification command '{' '.join(command)}' exited with status {proc.returncode}.",
            returncode=proc.returncode,
            output=output,
        )
    return logs


def _run(
    command: List[str],
    *,
    cwd: Path,
    env: Mapping[str, str],
    error_type: type[BuildError],
) -> subprocess.CompletedProcess:
    if not cwd.is_dir():
        raise error_type(f"Working directory not found: {cwd}")
    try:
        return subprocess.run(
            command,
            cwd=str(cwd),
            env=dict(env),
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        raise error_type(f"Unable to run {command[0]}: {exc}") from exc


def _combined_output(proc: subprocess.CompletedProcess) -> str:
    parts = [part.strip() for part in (proc.stdout, proc.stderr) if part and part.strip()]
    return "\n".join(parts)


__all__ = ["BuildOutcome", "SCRIPTS_DIR", "VERIFY_COMMAND", "resolve_invocation", "run_build", "run_verification"]
