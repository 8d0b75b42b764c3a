"""Schema definitions for release orchestration."""

from .build import BuildInvocation, CompilerRequirement, ToolchainRequirement
from .matrix import MatrixEntry, ReleaseMatrix
from .release import ReleaseTarget, UploadRecord

__all__ = [
    "BuildInvocation",
    "CompilerRequirement",
    "MatrixEntry",
    "ReleaseMatrix",
    "ReleaseTarget",
    "ToolchainRequirement",
    "UploadRecord",
]
