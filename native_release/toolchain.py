"""Toolchain selection for matrix entries.

Two independent rules decide what a context provisions before it builds:

* the runner that ships without a C toolchain gets LLVM installed, and the
  directory of its ``clang`` binary is exported as ``LIBCLANG_PATH``;
* the iOS static library is built with an older pinned Rust release, every
  other artifact uses the stable channel.

Both rules are predicates over a :class:`MatrixEntry` so the selection stays a
pure function of the entry.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Optional, Tuple

from .errors import UnsupportedHostError
from .matrix import MACOS_11, MACOS_LATEST, UBUNTU_LATEST, WINDOWS_LATEST
from .schemas.build import CompilerRequirement, ToolchainRequirement
from .schemas.matrix import MatrixEntry

SUPPORTED_HOSTS: FrozenSet[str] = frozenset({MACOS_LATEST, MACOS_11, UBUNTU_LATEST, WINDOWS_LATEST})

WINDOWS_FAMILY = "windows"
LINUX_FAMILY = "linux"
MACOS_FAMILY = "macos"

# Bare family names and the runner label prefixes that belong to each family.
HOST_FAMILIES: Dict[str, Tuple[str, ...]] = {
    WINDOWS_FAMILY: ("windows",),
    LINUX_FAMILY: ("linux", "ubuntu"),
    MACOS_FAMILY: ("macos",),
}
COMPILERLESS_FAMILY = WINDOWS_FAMILY

LEGACY_ARTIFACT = "libisar_ios.a"
LEGACY_TOOLCHAIN = "1.55.0"
STABLE_TOOLCHAIN = "stable"
NIGHTLY_TOOLCHAIN = "nightly"

RELEASE_LLVM_VERSION = "11.0"
TEST_LLVM_VERSION = "12.0"
LIBCLANG_ENV = "LIBCLANG_PATH"


def host_family(host_os: str) -> str:
    """Map a host label such as ``windows``, ``ubuntu-latest`` or ``macos-11`` to its OS family."""

    label = host_os.strip().lower()
    for family, prefixes in HOST_FAMILIES.items():
        for prefix in prefixes:
            if label == prefix or label.startswith(f"{prefix}-"):
                return family
    raise UnsupportedHostError(
        f"Unsupported host OS '{host_os}'. Expected windows, linux or macos, "
        "or a windows-*, ubuntu-* or macos-* runner label."
    )


def needs_native_compiler(host_os: str) -> bool:
    return host_family(host_os) == COMPILERLESS_FAMILY


def needs_legacy_toolchain(artifact_name: str) -> bool:
    return artifact_name == LEGACY_ARTIFACT


def select_compiler(host_os: str, version: str = RELEASE_LLVM_VERSION) -> Optional[CompilerRequirement]:
    if not needs_native_compiler(host_os):
        return None
    return CompilerRequirement(version=version, env_var=LIBCLANG_ENV)


def select_language_toolchain(artifact_name: str) -> str:
    if needs_legacy_toolchain(artifact_name):
        return LEGACY_TOOLCHAIN
    return STABLE_TOOLCHAIN


def select_toolchain(entry: MatrixEntry) -> ToolchainRequirement:
    """Return the toolchain configuration for a release matrix entry."""

    return ToolchainRequirement(
        language_toolchain=select_language_toolchain(entry.artifact_name),
        native_compiler=select_compiler(entry.host_os, RELEASE_LLVM_VERSION),
    )


def select_test_toolchain(host_os: str) -> ToolchainRequirement:
    """Return the toolchain configuration for a test pipeline host."""

    return ToolchainRequirement(
        language_toolchain=NIGHTLY_TOOLCHAIN,
        native_compiler=select_compiler(host_os, TEST_LLVM_VERSION),
    )


__all__ = [
    "COMPILERLESS_FAMILY",
    "HOST_FAMILIES",
    "LEGACY_ARTIFACT",
    "LEGACY_TOOLCHAIN",
    "NIGHTLY_TOOLCHAIN",
    "RELEASE_LLVM_VERSION",
    "STABLE_TOOLCHAIN",
    "SUPPORTED_HOSTS",
    "TEST_LLVM_VERSION",
    "host_family",
    "needs_legacy_toolchain",
    "needs_native_compiler",
    "select_compiler",
    "select_language_toolchain",
    "select_test_toolchain",
    "select_toolchain",
]
