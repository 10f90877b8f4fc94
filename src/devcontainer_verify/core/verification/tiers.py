"""The four checksum tiers, each a strategy producing a TierOutcome.

A tier answers one question: "what checksum should this artifact have?"
It returns ``TierOutcome(None)`` when it has no answer so the next tier
is consulted. Comparison and the final decision belong to the service.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Protocol

from devcontainer_verify.constants import (
    DEFAULT_HASH_TYPE,
    SUPPORTED_HASH_ALGORITHMS,
)
from devcontainer_verify.core.verification.fetchers import (
    compute_downloaded_hash,
)
from devcontainer_verify.core.verification.hashing import (
    algorithm_for_digest,
    validate_checksum_format,
)
from devcontainer_verify.core.verification.manifests import (
    ManifestConvention,
    find_convention,
)
from devcontainer_verify.core.verification.results import (
    ArtifactRequest,
    ChecksumTier,
    TierOutcome,
)
from devcontainer_verify.exceptions import DownloadError, PinnedDatabaseError
from devcontainer_verify.logger import get_logger

if TYPE_CHECKING:
    from pathlib import Path

    from devcontainer_verify.core.download import DownloadService
    from devcontainer_verify.core.verification.pinned import PinnedChecksums
    from devcontainer_verify.core.verification.registry import (
        FetcherRegistry,
    )

logger = get_logger(__name__)

BANNER_WIDTH = 60

TOFU_WARNING_LINES = (
    "No trusted checksum available for verification.",
    "",
    "Using TOFU (Trust On First Use): the checksum is calculated",
    "from the downloaded file without external verification.",
    "",
    "Risk: vulnerable to man-in-the-middle attacks.",
    "",
    "Acceptable for development, NOT recommended for production",
    "builds. Set REQUIRE_VERIFIED_DOWNLOADS=true to forbid it.",
)


class ChecksumSource(Protocol):
    """One tier of the verification walk."""

    tier: ChecksumTier

    async def resolve(
        self, request: ArtifactRequest, artifact_path: Path
    ) -> TierOutcome: ...


def security_warning_banner() -> list[str]:
    """Lines of the boxed warning logged for trust-on-first-use."""
    title = "SECURITY WARNING"
    lines = [
        "╔" + "═" * BANNER_WIDTH + "╗",
        "║" + title.center(BANNER_WIDTH) + "║",
        "╠" + "═" * BANNER_WIDTH + "╣",
    ]
    lines.extend(
        "║ " + text.ljust(BANNER_WIDTH - 2) + " ║" for text in TOFU_WARNING_LINES
    )
    lines.append("╚" + "═" * BANNER_WIDTH + "╝")
    return lines


class PinnedTier:
    """Tier 1: git-tracked checksums from the pinned database."""

    tier = ChecksumTier.PINNED

    def __init__(self, pinned: PinnedChecksums | None) -> None:
        self.pinned = pinned

    async def resolve(
        self, request: ArtifactRequest, artifact_path: Path
    ) -> TierOutcome:
        logger.info("📌 TIER 1: Checking pinned checksums database")
        if self.pinned is None:
            logger.info("   ⚠️  No pinned checksum database configured")
            return TierOutcome(None)

        checksum = self.pinned.lookup(
            request.kind,
            request.name,
            request.version,
            request.arch,
            request.algorithm,
        )
        if checksum is None:
            logger.info(
                "   ⚠️  %s %s not found in %s",
                request.name,
                request.version,
                self.pinned.path.name,
            )
            known = self.pinned.versions(request.kind, request.name)
            if known:
                logger.info(
                    "   Pinned versions of %s: %s",
                    request.name,
                    ", ".join(known),
                )
            return TierOutcome(None)

        if algorithm_for_digest(checksum) is None:
            msg = (
                f"pinned checksum for {request.name} {request.version} "
                "is not a sha256/sha512 hex digest"
            )
            raise PinnedDatabaseError(msg, str(self.pinned.path))

        logger.info("   ✓ Found pinned checksum in git-tracked database")
        return TierOutcome(checksum, f"pinned:{self.pinned.path}")


class VendorManifestTier:
    """Tier 2: checksums published by the vendor in a known layout."""

    tier = ChecksumTier.VENDOR_MANIFEST

    def __init__(
        self,
        downloader: DownloadService,
        conventions: Mapping[str, ManifestConvention] | None = None,
    ) -> None:
        self.downloader = downloader
        self.conventions = conventions

    def _convention_for(self, name: str) -> ManifestConvention | None:
        if self.conventions is None:
            return find_convention(name)
        return self.conventions.get(name)

    async def resolve(
        self, request: ArtifactRequest, artifact_path: Path
    ) -> TierOutcome:
        convention = self._convention_for(request.name)
        if convention is None:
            logger.info(
                "🌐 TIER 2: No vendor manifest convention for %s",
                request.name,
            )
            return TierOutcome(None)

        logger.info(
            "🌐 TIER 2: Fetching vendor checksum for %s (%s)",
            request.name,
            convention.style.value,
        )
        # A filename that is only the local file's name may not be the
        # release name, so the templated release name is tried after it.
        try:
            checksum = await convention.fetch(
                self.downloader,
                request.version,
                request.arch,
                request.filename,
                template_fallback=request.filename == artifact_path.name,
            )
        except DownloadError as e:
            logger.warning("   ⚠️  Vendor checksum unavailable: %s", e)
            return TierOutcome(None)

        if checksum is None or algorithm_for_digest(checksum) is None:
            logger.info("   ⚠️  Vendor checksum not available")
            return TierOutcome(None)

        logger.info("   ✓ Retrieved checksum from vendor")
        source = (
            convention.url(request.version, request.arch)
            if convention.url_template
            else convention.style.value
        )
        return TierOutcome(checksum, source)


class RegisteredFetcherTier:
    """Tier 3: a tool-specific fetcher registered for this session."""

    tier = ChecksumTier.REGISTERED_FETCHER

    def __init__(self, registry: FetcherRegistry | None) -> None:
        self.registry = registry

    async def resolve(
        self, request: ArtifactRequest, artifact_path: Path
    ) -> TierOutcome:
        fetcher = (
            self.registry.lookup(request.name)
            if self.registry is not None
            else None
        )
        if fetcher is None:
            logger.info(
                "🌐 TIER 3: No checksum fetcher registered for %s",
                request.name,
            )
            return TierOutcome(None)

        logger.info(
            "🌐 TIER 3: Fetching published checksum for %s", request.name
        )
        try:
            checksum = await fetcher(request.version, request.arch)
        except DownloadError as e:
            logger.warning("   ⚠️  Published checksum unavailable: %s", e)
            return TierOutcome(None)
        except Exception:
            logger.warning(
                "   ⚠️  Checksum fetcher for %s failed",
                request.name,
                exc_info=True,
            )
            return TierOutcome(None)

        if checksum is None:
            logger.info(
                "   ⚠️  Published checksum not available for %s %s",
                request.name,
                request.version,
            )
            return TierOutcome(None)

        if not isinstance(checksum, str):
            logger.warning(
                "   ⚠️  Fetcher for %s returned %s, not a string",
                request.name,
                type(checksum).__name__,
            )
            return TierOutcome(None)

        checksum = checksum.strip()
        if not any(
            validate_checksum_format(checksum, alg)
            for alg in SUPPORTED_HASH_ALGORITHMS
        ):
            logger.warning(
                "   ⚠️  Fetcher for %s returned an invalid checksum "
                "(length %d)",
                request.name,
                len(checksum),
            )
            return TierOutcome(None)

        logger.info("   ✓ Retrieved checksum from publisher")
        return TierOutcome(checksum, f"fetcher:{request.name}")


class CalculatedTrustTier:
    """Tier 4: hash the artifact itself and trust it on first use."""

    tier = ChecksumTier.CALCULATED_TRUST

    async def resolve(
        self, request: ArtifactRequest, artifact_path: Path
    ) -> TierOutcome:
        logger.warning("⚠️  TIER 4: Using calculated checksum (FALLBACK)")
        for line in security_warning_banner():
            logger.warning("   %s", line)

        algorithm = (
            request.algorithm
            if request.algorithm in SUPPORTED_HASH_ALGORITHMS
            else DEFAULT_HASH_TYPE
        )
        checksum = await compute_downloaded_hash(
            artifact_path,
            algorithm,  # type: ignore[arg-type]
        )
        logger.warning("   Calculated %s: %s", algorithm.upper(), checksum)
        logger.warning(
            "   ⚠️  TIER 4: File integrity recorded (no external verification)"
        )
        return TierOutcome(checksum, "calculated")


def default_tiers(
    downloader: DownloadService,
    registry: FetcherRegistry | None,
    pinned: PinnedChecksums | None,
) -> list[ChecksumSource]:
    """The fixed tier order: pinned, vendor manifest, fetcher, TOFU."""
    return [
        PinnedTier(pinned),
        VendorManifestTier(downloader),
        RegisteredFetcherTier(registry),
        CalculatedTrustTier(),
    ]
