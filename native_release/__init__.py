"""Build-and-release orchestration for native binding binaries."""

__version__ = "0.1.0"

from .errors import (
    BuildError,
    CheckoutError,
    ConfigurationError,
    ProvisioningError,
    PublishError,
    ReleaseError,
    UnsupportedHostError,
    VerificationError,
)
from .matrix import DEFAULT_RELEASE_MATRIX, DEFAULT_TEST_HOSTS, load_matrix
from .models import ContextResult, ReleaseRunResult, TestRunResult
from .pipelines import PipelineSteps, run_release, run_release_context, run_test_context, run_tests
from .schemas import (
    BuildInvocation,
    CompilerRequirement,
    MatrixEntry,
    ReleaseMatrix,
    ReleaseTarget,
    ToolchainRequirement,
    UploadRecord,
)
from .settings import ReleaseSettings
from .toolchain import select_test_toolchain, select_toolchain

__all__ = [
    "__version__",
    "BuildError",
    "BuildInvocation",
    "CheckoutError",
    "CompilerRequirement",
    "ConfigurationError",
    "ContextResult",
    "DEFAULT_RELEASE_MATRIX",
    "DEFAULT_TEST_HOSTS",
    "MatrixEntry",
    "PipelineSteps",
    "ProvisioningError",
    "PublishError",
    "ReleaseError",
    "ReleaseMatrix",
    "ReleaseRunResult",
    "ReleaseSettings",
    "ReleaseTarget",
    "TestRunResult",
    "ToolchainRequirement",
    "UnsupportedHostError",
    "UploadRecord",
    "VerificationError",
    "load_matrix",
    "run_release",
    "run_release_context",
    "run_test_context",
    "run_tests",
    "select_test_toolchain",
    "select_toolchain",
]
