"""Tiered checksum verification for downloaded release artifacts.

Tiers are consulted in a fixed order: pinned database, vendor manifest,
registered fetcher, calculated trust (TOFU).
"""

from devcontainer_verify.core.verification.checksum_parser import (
    ChecksumEntry,
    find_checksum_entry,
    parse_checksum_file,
)
from devcontainer_verify.core.verification.fetchers import (
    ChecksumFetcher,
    PageHash,
    compute_downloaded_hash,
    fetch_go_checksum,
    fetch_individual_hash_file,
    fetch_manifest_hash,
    fetch_ruby_checksum,
    fetch_vendor_page_hash,
    hash_file_fetcher,
    manifest_fetcher,
)
from devcontainer_verify.core.verification.hashing import (
    algorithm_for_digest,
    compute_hash,
    validate_checksum_format,
)
from devcontainer_verify.core.verification.manifests import (
    KNOWN_CONVENTIONS,
    ManifestConvention,
    ManifestStyle,
)
from devcontainer_verify.core.verification.pinned import PinnedChecksums
from devcontainer_verify.core.verification.registry import FetcherRegistry
from devcontainer_verify.core.verification.results import (
    ArtifactRequest,
    ChecksumTier,
    TierOutcome,
    VerificationResult,
    VerificationStatus,
)
from devcontainer_verify.core.verification.service import VerificationService

__all__ = [
    "KNOWN_CONVENTIONS",
    "ArtifactRequest",
    "ChecksumEntry",
    "ChecksumFetcher",
    "ChecksumTier",
    "FetcherRegistry",
    "ManifestConvention",
    "ManifestStyle",
    "PageHash",
    "PinnedChecksums",
    "TierOutcome",
    "VerificationResult",
    "VerificationService",
    "VerificationStatus",
    "algorithm_for_digest",
    "compute_downloaded_hash",
    "compute_hash",
    "fetch_go_checksum",
    "fetch_individual_hash_file",
    "fetch_manifest_hash",
    "fetch_ruby_checksum",
    "fetch_vendor_page_hash",
    "find_checksum_entry",
    "hash_file_fetcher",
    "manifest_fetcher",
    "parse_checksum_file",
    "validate_checksum_format",
]
