from __future__ import annotations

import os
import stat
from pathlib import Path
from typing import Dict, List, Mapping, Optional

import pytest

from native_release.publish import StorageAdapter
from native_release.schemas.build import CompilerRequirement
from native_release.schemas.release import ReleaseTarget, UploadRecord


class RecordingLanguageProvisioner:
    def __init__(self) -> None:
        self.installed: List[str] = []

    def install(self, version: str, logs: List[str]) -> Dict[str, str]:
        self.installed.append(version)
        logs.append(f"installed {version}")
        return {"RUSTUP_TOOLCHAIN": version}


class RecordingCompilerProvisioner:
    def __init__(self) -> None:
        self.installed: List[str] = []

    def install(
        self,
        requirement: CompilerRequirement,
        directory: Path,
        logs: List[str],
        env: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, str]:
        self.installed.append(requirement.version)
        return {requirement.env_var: str(directory / "bin")}


class RecordingAdapter(StorageAdapter):
    name = "recording"

    def __init__(self) -> None:
        self.uploads: List[tuple[str, str, str]] = []

    def upload(self, file_path: Path, asset_name: str, target: ReleaseTarget, logs: List[str]) -> UploadRecord:
        self.uploads.append((file_path.read_text(encoding="utf-8").strip(), asset_name, target.tag))
        return UploadRecord(file_path=file_path, asset_name=asset_name, tag=target.tag, adapter=self.name)


def write_script(binding_root: Path, name: str, body: str) -> Path:
    script = binding_root / "tools" / name
    script.parent.mkdir(parents=True, exist_ok=True)
    script.write_text("#!/usr/bin/env bash\nset -e\n" + body + "\n", encoding="utf-8")
    script.chmod(script.stat().st_mode | stat.S_IEXEC)
    return script


@pytest.fixture()
def binding_root(tmp_path: Path) -> Path:
    root = tmp_path / "dart-ffi"
    root.mkdir()
    return root


@pytest.fixture()
def clean_env() -> Dict[str, str]:
    return {"PATH": os.environ.get("PATH", "")}


@pytest.fixture()
def target() -> ReleaseTarget:
    return ReleaseTarget.from_ref("refs/tags/v1.0.0", "secret-token", repository="acme/native")
