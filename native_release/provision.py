"""Toolchain and compiler provisioning."""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Protocol

from .errors import ProvisioningError
from .schemas.build import CompilerRequirement

logger = logging.getLogger(__name__)

DEFAULT_LLVM_INSTALL_COMMAND = (
    'choco install llvm --version {version} --yes --no-progress --install-arguments="/D={directory}"'
)


class LanguageProvisioner(Protocol):
    def install(self, version: str, logs: List[str]) -> Dict[str, str]:  # pragma: no cover - interface
        ...


class CompilerProvisioner(Protocol):
    def install(
        self,
        requirement: CompilerRequirement,
        directory: Path,
        logs: List[str],
        env: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, str]:  # pragma: no cover - interface
        ...


class RustupProvisioner:
    """Install a Rust toolchain with rustup and pin it for the calling context.

    The toolchain is selected through ``RUSTUP_TOOLCHAIN`` in the returned
    environment instead of ``rustup override set`` so contexts sharing a
    checkout never see each other's selection.
    """

    def __init__(self, *, rustup: str = "rustup", profile: str = "minimal") -> None:
        self.rustup = rustup
        self.profile = profile

    def install(self, version: str, logs: List[str]) -> Dict[str, str]:
        command = [self.rustup, "toolchain", "install", version, "--profile", self.profile]
        logs.append(f"Installing Rust toolchain {version}: {' '.join(command)}")
        logger.info("Installing Rust toolchain %s", version)
        try:
            proc = subprocess.run(command, capture_output=True, text=True, check=False)
        except OSError as exc:
            raise ProvisioningError(f"Unable to run {self.rustup}: {exc}") from exc
        _append_output(logs, proc)
        if proc.returncode != 0:
            raise ProvisioningError(
                f"rustup failed to install toolchain {version} (exit {proc.returncode}): "
                f"{(proc.stderr or proc.stdout or '').strip()}"
            )
        return {"RUSTUP_TOOLCHAIN": version}


class LlvmProvisioner:
    """Install LLVM into a directory and expose the clang location."""

    def __init__(self, command: Optional[str] = DEFAULT_LLVM_INSTALL_COMMAND) -> None:
        self.command = command

    def install(
        self,
        requirement: CompilerRequirement,
        directory: Path,
        logs: List[str],
        env: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, str]:
        base_env = dict(env if env is not None else os.environ)
        if self.command:
            command = render_install_command(self.command, requirement, directory)
            logs.append(f"Installing {requirement.name} {requirement.version}: {command}")
            logger.info("Installing %s %s into %s", requirement.name, requirement.version, directory)
            directory.mkdir(parents=True, exist_ok=True)
            proc = subprocess.run(
                command,
                shell=True,
                capture_output=True,
                text=True,
                check=False,
                env=base_env,
            )
            _append_output(logs, proc)
            if proc.returncode != 0:
                raise ProvisioningError(
                    f"{requirement.name} {requirement.version} installation failed (exit {proc.returncode})."
                )

        clang_dir = locate_clang(directory, search_path=base_env.get("PATH"))
        if clang_dir is None:
            raise ProvisioningError(
                f"clang not found in {directory / 'bin'} or on PATH after installing {requirement.name}."
            )
        logs.append(f"{requirement.env_var}={clang_dir}")
        path_value = base_env.get("PATH", "")
        return {
            requirement.env_var: str(clang_dir),
            "PATH": os.pathsep.join(part for part in (str(clang_dir), path_value) if part),
        }

def render_install_command(template: str, requirement: CompilerRequirement, directory: Path) -> str:
    """Fill the ``{version}`` and ``{directory}`` placeholders of an install command template."""

    return template.format(
        version=shlex.quote(requirement.version),
        directory=str(directory),
    )


def locate_clang(directory: Path, *, search_path: Optional[str] = None) -> Optional[Path]:
    """Return the directory holding ``clang``, preferring the install directory."""

    for path in (str(directory / "bin"), search_path):
        if path is None:
            continue
        found = shutil.which("clang", path=path)
        if found:
            return Path(found).parent
    return None


def _append_output(logs: List[str], proc: subprocess.CompletedProcess) -> None:
    if proc.stdout:
        logs.append(proc.stdout.strip())
    if proc.stderr:
        logs.append(proc.stderr.strip())


__all__ = [
    "CompilerProvisioner",
    "DEFAULT_LLVM_INSTALL_COMMAND",
    "LanguageProvisioner",
    "LlvmProvisioner",
    "RustupProvisioner",
    "locate_clang",
    "render_install_command",
]
