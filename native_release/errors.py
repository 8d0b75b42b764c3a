"""Exception types raised by release orchestration."""

from __future__ import annotations


class ReleaseError(RuntimeError):
    """Base class for failures scoped to a single execution context."""


class ConfigurationError(ReleaseError):
    """Raised when a matrix entry or setting cannot be mapped to a configuration."""


class UnsupportedHostError(ConfigurationError):
    """Raised when a host OS is outside the supported runner set."""


class ProvisioningError(ReleaseError):
    """Raised when a toolchain or compiler installation fails."""


class CheckoutError(ReleaseError):
    """Raised when source acquisition fails."""


class BuildError(ReleaseError):
    """Raised when a build script exits non-zero."""

    def __init__(self, message: str, *, returncode: int | None = None, output: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.output = output


class VerificationError(BuildError):
    """Raised when the verification command of the test pipeline fails."""


class PublishError(ReleaseError):
    """Raised when an artifact upload is rejected or cannot be attempted."""


__all__ = [
    "ReleaseError",
    "ConfigurationError",
    "UnsupportedHostError",
    "ProvisioningError",
    "CheckoutError",
    "BuildError",
    "VerificationError",
    "PublishError",
]
