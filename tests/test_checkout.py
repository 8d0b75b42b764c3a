from __future__ import annotations

from pathlib import Path
from unittest import mock

import pytest

from native_release.checkout import GitCheckout, NoCheckout
from native_release.errors import CheckoutError


def test_git_checkout_updates_submodules(tmp_path: Path) -> None:
    logs: list[str] = []
    with mock.patch("subprocess.run") as run_mock:
        run_mock.return_value = mock.Mock(returncode=0, stdout="", stderr="")
        workspace = GitCheckout().acquire(tmp_path, logs)

    assert workspace == tmp_path
    assert run_mock.call_args.args[0] == ["git", "submodule", "update", "--init", "--recursive"]


def test_git_checkout_clones_when_repository_given(tmp_path: Path) -> None:
    workspace = tmp_path / "src"
    with mock.patch("subprocess.run") as run_mock:
        run_mock.return_value = mock.Mock(returncode=0, stdout="", stderr="")
        GitCheckout(repository_url="https://example.invalid/native.git", ref="v1.0.0").acquire(workspace, [])

    commands = [call.args[0] for call in run_mock.call_args_list]
    assert commands[0] == ["git", "clone", "--recurse-submodules", "https://example.invalid/native.git", str(workspace)]
    assert commands[1] == ["git", "checkout", "v1.0.0"]
    assert commands[2][:3] == ["git", "submodule", "update"]


def test_git_checkout_failure_raises(tmp_path: Path) -> None:
    with mock.patch("subprocess.run") as run_mock:
        run_mock.return_value = mock.Mock(returncode=128, stdout="", stderr="fatal: not a git repository")
        with pytest.raises(CheckoutError) as excinfo:
            GitCheckout().acquire(tmp_path, [])
    assert "not a git repository" in str(excinfo.value)


def test_no_checkout_requires_workspace(tmp_path: Path) -> None:
    assert NoCheckout().acquire(tmp_path, []) == tmp_path
    with pytest.raises(CheckoutError):
        NoCheckout().acquire(tmp_path / "missing", [])
