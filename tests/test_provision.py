from __future__ import annotations

import os
import stat
from pathlib import Path
from typing import List
from unittest import mock

import pytest

from native_release.errors import ProvisioningError
from native_release.provision import (
    DEFAULT_LLVM_INSTALL_COMMAND,
    LlvmProvisioner,
    RustupProvisioner,
    locate_clang,
    render_install_command,
)
from native_release.schemas.build import CompilerRequirement


def _fake_clang(directory: Path) -> Path:
    bin_dir = directory / "bin"
    bin_dir.mkdir(parents=True, exist_ok=True)
    clang = bin_dir / "clang"
    clang.write_text("#!/bin/sh\n", encoding="utf-8")
    clang.chmod(clang.stat().st_mode | stat.S_IEXEC)
    return bin_dir


def test_rustup_installs_requested_version() -> None:
    logs: List[str] = []
    with mock.patch("subprocess.run") as run_mock:
        run_mock.return_value = mock.Mock(returncode=0, stdout="installed", stderr="")
        env = RustupProvisioner().install("1.55.0", logs)

    assert env == {"RUSTUP_TOOLCHAIN": "1.55.0"}
    command = run_mock.call_args.args[0]
    assert command[:4] == ["rustup", "toolchain", "install", "1.55.0"]
    assert "installed" in logs


def test_rustup_failure_raises() -> None:
    with mock.patch("subprocess.run") as run_mock:
        run_mock.return_value = mock.Mock(returncode=1, stdout="", stderr="network down")
        with pytest.raises(ProvisioningError) as excinfo:
            RustupProvisioner().install("stable", [])
    assert "network down" in str(excinfo.value)


def test_llvm_exports_clang_directory(tmp_path: Path) -> None:
    bin_dir = _fake_clang(tmp_path / "llvm")
    logs: List[str] = []

    env = LlvmProvisioner(command=None).install(
        CompilerRequirement(version="11.0"),
        tmp_path / "llvm",
        logs,
        env={"PATH": "/usr/bin"},
    )

    assert env["LIBCLANG_PATH"] == str(bin_dir)
    assert env["PATH"].split(os.pathsep)[0] == str(bin_dir)
    assert f"LIBCLANG_PATH={bin_dir}" in logs


def test_llvm_install_command_is_rendered(tmp_path: Path) -> None:
    _fake_clang(tmp_path / "llvm")
    provisioner = LlvmProvisioner(command="install-llvm {version} {directory}")
    with mock.patch("subprocess.run") as run_mock:
        run_mock.return_value = mock.Mock(returncode=0, stdout="", stderr="")
        provisioner.install(CompilerRequirement(version="11.0"), tmp_path / "llvm", [], env={"PATH": ""})

    assert run_mock.call_args.args[0] == f"install-llvm 11.0 {tmp_path / 'llvm'}"


def test_llvm_install_failure_raises(tmp_path: Path) -> None:
    with mock.patch("subprocess.run") as run_mock:
        run_mock.return_value = mock.Mock(returncode=1, stdout="", stderr="choco missing")
        with pytest.raises(ProvisioningError):
            LlvmProvisioner().install(CompilerRequirement(version="11.0"), tmp_path / "llvm", [], env={"PATH": ""})


def test_llvm_missing_clang_raises(tmp_path: Path) -> None:
    empty = tmp_path / "empty"
    empty.mkdir()
    with pytest.raises(ProvisioningError):
        LlvmProvisioner(command=None).install(
            CompilerRequirement(version="11.0"),
            tmp_path / "llvm",
            [],
            env={"PATH": str(empty)},
        )


def test_locate_clang_falls_back_to_search_path(tmp_path: Path) -> None:
    bin_dir = _fake_clang(tmp_path / "system")
    assert locate_clang(tmp_path / "llvm", search_path=str(bin_dir)) == bin_dir


def test_default_install_command_targets_directory(tmp_path: Path) -> None:
    command = render_install_command(
        DEFAULT_LLVM_INSTALL_COMMAND, CompilerRequirement(version="11.0"), tmp_path / "llvm"
    )

    assert "--version 11.0" in command
    assert f"/D={tmp_path / 'llvm'}" in command


def test_llvm_without_install_command_runs_nothing(tmp_path: Path) -> None:
    _fake_clang(tmp_path / "llvm")
    with mock.patch("subprocess.run") as run_mock:
        LlvmProvisioner(command=None).install(CompilerRequirement(version="12.0"), tmp_path / "llvm", [], env={})

    run_mock.assert_not_called()
