"""Static build matrix and YAML matrix loading."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Mapping, Optional, Tuple

import yaml

from .errors import ConfigurationError
from .schemas.matrix import MatrixEntry, ReleaseMatrix

logger = logging.getLogger(__name__)

MACOS_LATEST = "macos-latest"
MACOS_11 = "macos-11"
UBUNTU_LATEST = "ubuntu-latest"
WINDOWS_LATEST = "windows-latest"

DEFAULT_RELEASE_MATRIX = ReleaseMatrix.of(
    [
        MatrixEntry(host_os=MACOS_LATEST, artifact_name="libisar_android_arm64.so", build_script="build_android.sh"),
        MatrixEntry(
            host_os=MACOS_LATEST,
            artifact_name="libisar_android_armv7.so",
            build_script="build_android.sh",
            build_script_arg="armv7",
        ),
        MatrixEntry(
            host_os=MACOS_LATEST,
            artifact_name="libisar_android_x64.so",
            build_script="build_android.sh",
            build_script_arg="x64",
        ),
        MatrixEntry(
            host_os=MACOS_LATEST,
            artifact_name="libisar_android_x86.so",
            build_script="build_android.sh",
            build_script_arg="x86",
        ),
        MatrixEntry(host_os=MACOS_LATEST, artifact_name="libisar_ios.a", build_script="build_ios.sh"),
        MatrixEntry(host_os=UBUNTU_LATEST, artifact_name="libisar_linux_x64.so", build_script="build_desktop.sh"),
        MatrixEntry(host_os=MACOS_11, artifact_name="libisar_macos_arm64.dylib", build_script="build_desktop.sh"),
        MatrixEntry(
            host_os=MACOS_LATEST,
            artifact_name="libisar_macos_x64.dylib",
            build_script="build_desktop.sh",
            build_script_arg="x64",
        ),
        MatrixEntry(host_os=WINDOWS_LATEST, artifact_name="isar_windows_x64.dll", build_script="build_desktop.sh"),
    ]
)

DEFAULT_TEST_HOSTS: Tuple[str, ...] = (MACOS_LATEST, UBUNTU_LATEST, WINDOWS_LATEST)


def matrix_from_include(include: Iterable[Mapping[str, object]]) -> ReleaseMatrix:
    entries = []
    for index, item in enumerate(include):
        if not isinstance(item, Mapping):
            raise ConfigurationError(f"Matrix include item {index} must be a mapping (got {type(item).__name__}).")
        entries.append(MatrixEntry.from_mapping(item))
    return ReleaseMatrix.of(entries)


def load_matrix(path: str | Path) -> ReleaseMatrix:
    """Load a release matrix from a YAML file with a top-level ``include`` list."""

    matrix_path = Path(path)
    if not matrix_path.exists():
        raise ConfigurationError(f"Matrix file not found: {matrix_path}")
    try:
        payload = yaml.safe_load(matrix_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid matrix YAML at {matrix_path}: {exc}") from exc

    if isinstance(payload, Mapping):
        include = payload.get("include")
    else:
        include = payload
    if not isinstance(include, list):
        raise ConfigurationError(f"Matrix file {matrix_path} must define an 'include' list.")

    matrix = matrix_from_include(include)
    logger.debug("Loaded %d matrix entries from %s", len(matrix.entries), matrix_path)
    return matrix


def resolve_matrix(path: Optional[str | Path] = None) -> ReleaseMatrix:
    if path is None:
        return DEFAULT_RELEASE_MATRIX
    return load_matrix(path)


__all__ = [
    "DEFAULT_RELEASE_MATRIX",
    "DEFAULT_TEST_HOSTS",
    "MACOS_11",
    "MACOS_LATEST",
    "UBUNTU_LATEST",
    "WINDOWS_LATEST",
    "load_matrix",
    "matrix_from_include",
    "resolve_matrix",
]
