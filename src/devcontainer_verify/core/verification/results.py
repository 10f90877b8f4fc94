"""Verification request and result types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any

from devcontainer_verify.constants import (
    DEFAULT_ARCH,
    DEFAULT_HASH_TYPE,
    ArtifactKind,
)


@dataclass(slots=True, frozen=True)
class ArtifactRequest:
    """One artifact to verify.

    Attributes:
        kind: "tool" or "language"; selects the pinned database section
        name: Tool or language name (e.g. "terragrunt")
        version: Version as the installer knows it
        filename: Release filename, matched against vendor manifests
        arch: Host architecture in dpkg naming
        algorithm: Preferred hash algorithm

    """

    kind: ArtifactKind
    name: str
    version: str
    filename: str
    arch: str = DEFAULT_ARCH
    algorithm: str = DEFAULT_HASH_TYPE


class ChecksumTier(IntEnum):
    """Trust sources in the order they are consulted."""

    PINNED = 1
    VENDOR_MANIFEST = 2
    REGISTERED_FETCHER = 3
    CALCULATED_TRUST = 4

    @property
    def label(self) -> str:
        """Human-readable tier label for logs."""
        return self.name.replace("_", " ").title()


class VerificationStatus(Enum):
    """Outcome of a verification call."""

    VERIFIED = "verified"
    TRUSTED_ON_FIRST_USE = "trusted_on_first_use"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class TierOutcome:
    """What a single tier produced.

    ``checksum`` is None when the tier has nothing to say about the
    artifact and the next tier should be consulted.
    """

    checksum: str | None
    source: str = ""


@dataclass(slots=True, frozen=True)
class VerificationResult:
    """Result of a verification call.

    Attributes:
        status: Tri-state outcome
        checksum: Expected checksum for VERIFIED, the computed hash for
            TRUSTED_ON_FIRST_USE, whatever was known for FAILED
        tier: Tier that decided the outcome, None if none was reached
        algorithm: Hash algorithm used for the comparison
        details: Short explanation (source URL, mismatch, timeout, ...)

    """

    status: VerificationStatus
    checksum: str | None = None
    tier: ChecksumTier | None = None
    algorithm: str = DEFAULT_HASH_TYPE
    details: str = ""

    @property
    def passed(self) -> bool:
        """True for VERIFIED and TRUSTED_ON_FIRST_USE."""
        return self.status is not VerificationStatus.FAILED

    @property
    def verified(self) -> bool:
        return self.status is VerificationStatus.VERIFIED

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for audit output.

        Returns:
            Dictionary representation

        """
        return {
            "status": self.status.value,
            "checksum": self.checksum,
            "tier": int(self.tier) if self.tier is not None else None,
            "tier_name": self.tier.name if self.tier is not None else None,
            "algorithm": self.algorithm,
            "details": self.details,
        }
