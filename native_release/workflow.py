"""Render GitHub Actions workflows from the static matrix definitions."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Sequence

import yaml

from .matrix import DEFAULT_RELEASE_MATRIX, DEFAULT_TEST_HOSTS
from .schemas.matrix import ReleaseMatrix
from .settings import DEFAULT_TOKEN_ENV

DEFAULT_PYTHON_VERSION = "3.11"
DEFAULT_INSTALL_COMMAND = "pip install native-release"

_CHECKOUT_STEP = {
    "name": "Checkout repository",
    "uses": "actions/checkout@v4",
    "with": {"submodules": True},
}


def _setup_steps(python_version: str, install_command: str) -> List[Dict[str, object]]:
    return [
        dict(_CHECKOUT_STEP),
        {
            "name": "Set up Python",
            "uses": "actions/setup-python@v5",
            "with": {"python-version": python_version},
        },
        {"name": "Install release tooling", "run": install_command},
    ]


def release_workflow(
    matrix: ReleaseMatrix = DEFAULT_RELEASE_MATRIX,
    *,
    python_version: str = DEFAULT_PYTHON_VERSION,
    install_command: str = DEFAULT_INSTALL_COMMAND,
) -> Dict[str, object]:
    """Tag-triggered workflow with one job per matrix entry and no fail-fast."""

    steps = _setup_steps(python_version, install_command)
    steps.append(
        {
            "name": "Build and upload",
            "run": "native-release release run --adapter github --artifact ${{ matrix.artifact_name }}",
            "env": {DEFAULT_TOKEN_ENV: "${{ secrets.GITHUB_TOKEN }}"},
        }
    )
    return {
        "name": "Build release binaries",
        "on": {"push": {"tags": ["*"]}},
        "jobs": {
            "build_and_upload": {
                "name": "Build and upload",
                "strategy": {
                    "fail-fast": False,
                    "matrix": {"include": matrix.to_workflow_include()},
                },
                "runs-on": "${{ matrix.os }}",
                "steps": steps,
            }
        },
    }


def ci_workflow(
    hosts: Sequence[str] = DEFAULT_TEST_HOSTS,
    *,
    python_version: str = DEFAULT_PYTHON_VERSION,
    install_command: str = DEFAULT_INSTALL_COMMAND,
) -> Dict[str, object]:
    """Push/PR workflow running the verification command on every test host."""

    steps = _setup_steps(python_version, install_command)
    steps.append({"name": "Test", "run": "native-release test run --host ${{ matrix.os }}"})
    return {
        "name": "Rust CI",
        "on": ["push", "pull_request"],
        "env": {"CARGO_TERM_COLOR": "always"},
        "jobs": {
            "test": {
                "runs-on": "${{ matrix.os }}",
                "strategy": {"fail-fast": False, "matrix": {"os": list(hosts)}},
                "steps": steps,
            }
        },
    }


def dump_workflow(workflow: Dict[str, object], output: Optional[Path] = None) -> str:
    text = yaml.safe_dump(workflow, sort_keys=False, default_flow_style=False, width=120)
    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text, encoding="utf-8")
    return text


__all__ = ["ci_workflow", "dump_workflow", "release_workflow"]
