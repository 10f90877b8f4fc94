"""Exception classes for devcontainer-verify operations."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from devcontainer_verify.core.verification.results import (
        VerificationResult,
    )


class FailureKind(Enum):
    """How a caller should react to a failure.

    SKIP: omit this one tool, the build continues.
    RETRYABLE: a transient condition; the installer may try again later.
    FATAL: abort this artifact's installation.
    """

    SKIP = "skip"
    RETRYABLE = "retryable"
    FATAL = "fatal"


class DevcontainerVerifyError(Exception):
    """Base exception for devcontainer-verify operations."""

    error_prefix: str = "Operation failed"
    kind: FailureKind = FailureKind.FATAL

    def __init__(self, message: str, target: str | None = None) -> None:
        """Initialize error with message and optional target.

        Args:
            message: Error message describing the failure.
            target: Optional name of the tool or URL that failed.

        """
        super().__init__(message)
        self.message = message
        self.target = target

    def __str__(self) -> str:
        """Return formatted error message."""
        if self.target:
            return f"{self.error_prefix} for '{self.target}': {self.message}"
        return f"{self.error_prefix}: {self.message}"


class UnsupportedArchitectureError(DevcontainerVerifyError):
    """Raised when the host architecture has no vendor equivalent."""

    error_prefix = "Unsupported architecture"
    kind = FailureKind.SKIP


class DownloadError(DevcontainerVerifyError):
    """Raised when a download fails.

    ``retryable`` is True when the failure was transient (timeouts,
    connection resets, 5xx) and the retry budget ran out; False for
    client errors that retrying cannot fix.
    """

    error_prefix = "Download failed"

    def __init__(
        self,
        message: str,
        target: str | None = None,
        *,
        retryable: bool = True,
        status: int | None = None,
    ) -> None:
        super().__init__(message, target)
        self.retryable = retryable
        self.status = status
        self.kind = FailureKind.RETRYABLE if retryable else FailureKind.FATAL


class ChecksumMismatchError(DevcontainerVerifyError):
    """Raised when an artifact's hash differs from the expected checksum."""

    error_prefix = "Checksum mismatch"

    def __init__(
        self,
        expected: str,
        actual: str,
        target: str | None = None,
    ) -> None:
        super().__init__(f"expected {expected}, got {actual}", target)
        self.expected = expected
        self.actual = actual


class PinnedDatabaseError(DevcontainerVerifyError):
    """Raised when the pinned checksum database cannot be loaded."""

    error_prefix = "Invalid checksum database"


class AcquisitionError(DevcontainerVerifyError):
    """Raised when an artifact cannot be acquired and trusted."""

    error_prefix = "Acquisition failed"

    def __init__(
        self,
        message: str,
        target: str | None = None,
        *,
        kind: FailureKind = FailureKind.FATAL,
        result: VerificationResult | None = None,
    ) -> None:
        super().__init__(message, target)
        self.kind = kind
        self.result = result
