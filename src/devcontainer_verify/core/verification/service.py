"""Verification service: walks the checksum tiers for one artifact.

The first tier that yields a checksum decides the outcome. A match is
VERIFIED, a mismatch is FAILED at once (a later tier is never consulted,
a tampered artifact must not be rescued by TOFU). When nothing earlier
has a checksum, the calculated-trust tier records the artifact's own
hash as TRUSTED_ON_FIRST_USE, which the require-verified policy turns
into FAILED.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING

from devcontainer_verify.constants import (
    DEFAULT_ARCH,
    DEFAULT_HASH_TYPE,
    DEFAULT_VERIFICATION_TIMEOUT_SECONDS,
    ArtifactKind,
)
from devcontainer_verify.core.verification.fetchers import (
    compute_downloaded_hash,
)
from devcontainer_verify.core.verification.hashing import (
    algorithm_for_digest,
    digests_match,
)
from devcontainer_verify.core.verification.pinned import PinnedChecksums
from devcontainer_verify.core.verification.results import (
    ArtifactRequest,
    ChecksumTier,
    VerificationResult,
    VerificationStatus,
)
from devcontainer_verify.core.verification.tiers import (
    ChecksumSource,
    default_tiers,
)
from devcontainer_verify.exceptions import (
    ChecksumMismatchError,
    PinnedDatabaseError,
)
from devcontainer_verify.logger import get_logger

if TYPE_CHECKING:
    from devcontainer_verify.config import Settings
    from devcontainer_verify.core.download import DownloadService
    from devcontainer_verify.core.verification.registry import (
        FetcherRegistry,
    )

logger = get_logger(__name__)

RULE = "═" * 63


def ensure_match(expected: str, actual: str, target: str) -> None:
    """Raise ChecksumMismatchError unless the digests are equal."""
    if not digests_match(expected, actual):
        raise ChecksumMismatchError(expected, actual, target)


class VerificationService:
    """Decides whether a downloaded artifact can be trusted."""

    def __init__(
        self,
        downloader: DownloadService,
        registry: FetcherRegistry | None = None,
        pinned: PinnedChecksums | None = None,
        *,
        require_verified: bool = False,
        timeout_seconds: float = DEFAULT_VERIFICATION_TIMEOUT_SECONDS,
        tiers: list[ChecksumSource] | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            downloader: Download service used by the network tiers
            registry: Session fetcher registry for tier 3
            pinned: Pinned checksum database for tier 1
            require_verified: Turn trust-on-first-use into a failure
            timeout_seconds: Ceiling for the whole tier walk
            tiers: Tier list override, in consultation order

        """
        self.downloader = downloader
        self.registry = registry
        self.pinned = pinned
        self.require_verified = require_verified
        self.timeout_seconds = timeout_seconds
        self.tiers = (
            tiers
            if tiers is not None
            else default_tiers(downloader, registry, pinned)
        )

    @classmethod
    def from_settings(
        cls,
        downloader: DownloadService,
        settings: Settings,
        registry: FetcherRegistry | None = None,
    ) -> VerificationService:
        """Create a service from the verification section of the settings."""
        return cls(
            downloader,
            registry,
            PinnedChecksums(settings.checksums_db),
            require_verified=settings.require_verified,
            timeout_seconds=settings.verification_timeout_seconds,
        )

    async def verify(
        self,
        kind: ArtifactKind,
        name: str,
        version: str,
        artifact_path: Path,
        arch: str = DEFAULT_ARCH,
        *,
        filename: str | None = None,
        algorithm: str = DEFAULT_HASH_TYPE,
    ) -> VerificationResult:
        """Verify a downloaded artifact.

        Args:
            kind: "tool" or "language"
            name: Tool or language name
            version: Version string
            artifact_path: Downloaded file
            arch: Host architecture (dpkg naming)
            filename: Release filename (defaults to the file's name)
            algorithm: Preferred hash algorithm

        Returns:
            VerificationResult; never raises for verification outcomes

        """
        artifact_path = Path(artifact_path)
        request = ArtifactRequest(
            kind=kind,
            name=name,
            version=version,
            filename=filename or artifact_path.name,
            arch=arch,
            algorithm=algorithm,
        )
        return await self.verify_request(request, artifact_path)

    async def verify_request(
        self, request: ArtifactRequest, artifact_path: Path
    ) -> VerificationResult:
        """Verify a downloaded artifact described by an ArtifactRequest."""
        logger.info("")
        logger.info(RULE)
        logger.info(
            "🔍 CHECKSUM VERIFICATION: %s %s", request.name, request.version
        )
        logger.info(RULE)

        if not artifact_path.is_file():
            logger.error("❌ Artifact not found: %s", artifact_path)
            return VerificationResult(
                VerificationStatus.FAILED,
                algorithm=request.algorithm,
                details=f"artifact not found: {artifact_path}",
            )

        try:
            async with asyncio.timeout(self.timeout_seconds):
                result = await self._walk(request, artifact_path)
        except TimeoutError:
            logger.error(
                "❌ Verification of %s %s exceeded %ss",
                request.name,
                request.version,
                self.timeout_seconds,
            )
            return VerificationResult(
                VerificationStatus.FAILED,
                algorithm=request.algorithm,
                details="timeout",
            )

        result = self._apply_policy(request, result)
        self._log_result(request, result)
        return result

    async def _walk(
        self, request: ArtifactRequest, artifact_path: Path
    ) -> VerificationResult:
        for source in self.tiers:
            try:
                outcome = await source.resolve(request, artifact_path)
            except PinnedDatabaseError as e:
                logger.error("❌ %s", e)
                return VerificationResult(
                    VerificationStatus.FAILED,
                    tier=source.tier,
                    algorithm=request.algorithm,
                    details=str(e),
                )

            if outcome.checksum is None:
                continue

            if source.tier is ChecksumTier.CALCULATED_TRUST:
                return VerificationResult(
                    VerificationStatus.TRUSTED_ON_FIRST_USE,
                    checksum=outcome.checksum,
                    tier=source.tier,
                    algorithm=request.algorithm,
                    details=outcome.source,
                )

            return await self._compare(
                request,
                artifact_path,
                source.tier,
                outcome.checksum,
                outcome.source,
            )

        logger.error(
            "❌ No checksum source produced a result for %s", request.name
        )
        return VerificationResult(
            VerificationStatus.FAILED,
            algorithm=request.algorithm,
            details="no checksum available",
        )

    async def _compare(
        self,
        request: ArtifactRequest,
        artifact_path: Path,
        tier: ChecksumTier,
        expected: str,
        source: str,
    ) -> VerificationResult:
        """Compare the artifact against an expected checksum.

        The algorithm follows the expected digest's length, so a
        registered fetcher may hand back either sha256 or sha512.
        """
        algorithm = algorithm_for_digest(expected) or DEFAULT_HASH_TYPE
        actual = await compute_downloaded_hash(artifact_path, algorithm)
        try:
            ensure_match(expected, actual, request.name)
        except ChecksumMismatchError as e:
            logger.error("❌ Checksum mismatch for %s!", request.filename)
            logger.error("   Expected: %s", e.expected)
            logger.error("   Got:      %s", e.actual)
            return VerificationResult(
                VerificationStatus.FAILED,
                checksum=expected,
                tier=tier,
                algorithm=algorithm,
                details=str(e),
            )

        return VerificationResult(
            VerificationStatus.VERIFIED,
            checksum=expected.lower(),
            tier=tier,
            algorithm=algorithm,
            details=source,
        )

    def _apply_policy(
        self, request: ArtifactRequest, result: VerificationResult
    ) -> VerificationResult:
        if (
            result.status is not VerificationStatus.TRUSTED_ON_FIRST_USE
            or not self.require_verified
        ):
            return result

        logger.error(
            "❌ REQUIRE_VERIFIED_DOWNLOADS is enabled: "
            "trust-on-first-use is not allowed"
        )
        logger.error(
            "   Add a pinned checksum to checksums.json for %s %s",
            request.name,
            request.version,
        )
        return VerificationResult(
            VerificationStatus.FAILED,
            checksum=result.checksum,
            tier=result.tier,
            algorithm=result.algorithm,
            details="trust-on-first-use blocked by require_verified",
        )

    def _log_result(
        self, request: ArtifactRequest, result: VerificationResult
    ) -> None:
        tier = result.tier.label if result.tier is not None else "none"
        if result.status is VerificationStatus.VERIFIED:
            logger.info(
                "   ✅ %s %s verified by tier %d (%s)",
                request.name,
                request.version,
                result.tier,
                tier,
            )
        elif result.status is VerificationStatus.TRUSTED_ON_FIRST_USE:
            logger.warning(
                "⚠️  %s %s trusted on first use (tier %s)",
                request.name,
                request.version,
                tier,
            )
        else:
            logger.error(
                "❌ Verification failed for %s %s (tier %s): %s",
                request.name,
                request.version,
                tier,
                result.details,
            )
