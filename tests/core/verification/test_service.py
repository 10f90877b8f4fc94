"""Tests for the tiered verification service.

Covers the decision rules:
1. The first tier with a checksum decides; a match is VERIFIED
2. A mismatch at any tier is FAILED and later tiers are never consulted
3. Tiers with no checksum fall through in order
4. Tier 4 yields TRUSTED_ON_FIRST_USE with a security warning
5. require_verified turns TOFU into FAILED
6. Missing artifacts and timeouts are FAILED
"""

import asyncio
import hashlib
import logging
from unittest.mock import AsyncMock

import pytest
from aioresponses import aioresponses

from devcontainer_verify.core.verification import (
    ChecksumTier,
    FetcherRegistry,
    PinnedChecksums,
    TierOutcome,
    VerificationService,
    VerificationStatus,
)
from devcontainer_verify.core.verification.tiers import CalculatedTrustTier
from devcontainer_verify.exceptions import DownloadError

HELLO_SHA256 = hashlib.sha256(b"hello").hexdigest()
HELLO_SHA512 = hashlib.sha512(b"hello").hexdigest()
WRONG_SHA256 = "0" * 64

TERRAGRUNT_SUMS_URL = (
    "https://github.com/gruntwork-io/terragrunt/releases/download/"
    "v0.69.1/SHA256SUMS"
)
NODE_SUMS_URL = "https://nodejs.org/dist/v20.18.0/SHASUMS256.txt"


@pytest.fixture
def registry():
    return FetcherRegistry()


@pytest.fixture
def make_service(downloader, registry, write_checksums_db):
    """Build a service with an optional pinned database."""

    def _make(pinned_data=None, **kwargs):
        pinned = (
            PinnedChecksums(write_checksums_db(pinned_data))
            if pinned_data is not None
            else None
        )
        return VerificationService(downloader, registry, pinned, **kwargs)

    return _make


def pinned_tool(name, version, checksum):
    return {"tools": {name: {"versions": {version: {"sha256": checksum}}}}}


class TestPinnedTier:
    """Tier 1."""

    @pytest.mark.asyncio
    async def test_pinned_match_is_verified(self, make_service, artifact):
        service = make_service(pinned_tool("gh", "2.60.1", HELLO_SHA256))

        result = await service.verify("tool", "gh", "2.60.1", artifact)

        assert result.status is VerificationStatus.VERIFIED
        assert result.tier is ChecksumTier.PINNED
        assert result.checksum == HELLO_SHA256
        assert result.passed

    @pytest.mark.asyncio
    async def test_pinned_mismatch_fails_without_fallthrough(
        self, make_service, registry, artifact
    ):
        fetcher = AsyncMock(return_value=HELLO_SHA256)
        registry.register("gh", fetcher)
        service = make_service(pinned_tool("gh", "2.60.1", WRONG_SHA256))

        result = await service.verify("tool", "gh", "2.60.1", artifact)

        assert result.status is VerificationStatus.FAILED
        assert result.tier is ChecksumTier.PINNED
        assert "Checksum mismatch" in result.details
        fetcher.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_uppercase_pinned_digest_matches(
        self, make_service, artifact
    ):
        service = make_service(
            pinned_tool("gh", "2.60.1", HELLO_SHA256.upper())
        )

        result = await service.verify("tool", "gh", "2.60.1", artifact)

        assert result.status is VerificationStatus.VERIFIED

    @pytest.mark.asyncio
    async def test_corrupt_database_fails(self, make_service, artifact):
        service = make_service({"tools": {"gh": {"releases": {}}}})

        result = await service.verify("tool", "gh", "2.60.1", artifact)

        assert result.status is VerificationStatus.FAILED
        assert result.tier is ChecksumTier.PINNED

    @pytest.mark.asyncio
    async def test_placeholder_falls_through(
        self, make_service, registry, artifact
    ):
        registry.register("gh", AsyncMock(return_value=HELLO_SHA256))
        service = make_service(
            pinned_tool("gh", "2.60.1", "placeholder_actual_checksum_needed")
        )

        result = await service.verify("tool", "gh", "2.60.1", artifact)

        assert result.status is VerificationStatus.VERIFIED
        assert result.tier is ChecksumTier.REGISTERED_FETCHER

    @pytest.mark.asyncio
    async def test_unpinned_version_lists_pinned_ones(
        self, make_service, artifact, caplog
    ):
        caplog.set_level(logging.INFO)
        service = make_service(pinned_tool("gh", "2.60.1", HELLO_SHA256))

        result = await service.verify("tool", "gh", "2.61.0", artifact)

        assert result.status is VerificationStatus.TRUSTED_ON_FIRST_USE
        assert "Pinned versions of gh: 2.60.1" in caplog.text

    @pytest.mark.asyncio
    async def test_pinned_match_skips_wrong_later_tiers(
        self, make_service, registry, artifact
    ):
        fetcher = AsyncMock(return_value=WRONG_SHA256)
        registry.register("terragrunt", fetcher)
        service = make_service(
            pinned_tool("terragrunt", "0.69.1", HELLO_SHA256)
        )

        with aioresponses() as m:
            m.get(
                TERRAGRUNT_SUMS_URL,
                body=f"{WRONG_SHA256}  terragrunt_linux_amd64\n",
            )

            result = await service.verify(
                "tool", "terragrunt", "0.69.1", artifact, "amd64"
            )

            assert not m.requests

        assert result.status is VerificationStatus.VERIFIED
        assert result.tier is ChecksumTier.PINNED
        assert result.checksum == HELLO_SHA256
        fetcher.assert_not_awaited()


class TestVendorManifestTier:
    """Tier 2."""

    @pytest.mark.asyncio
    async def test_terragrunt_manifest_end_to_end(
        self, make_service, tmp_path
    ):
        arm64_build = tmp_path / "terragrunt_linux_arm64"
        arm64_build.write_bytes(b"terragrunt arm64 build")
        arm64_hash = hashlib.sha256(b"terragrunt arm64 build").hexdigest()
        body = (
            f"{WRONG_SHA256}  terragrunt_linux_amd64\n"
            f"{arm64_hash}  terragrunt_linux_arm64\n"
        )
        service = make_service()

        with aioresponses() as m:
            m.get(TERRAGRUNT_SUMS_URL, body=body)

            result = await service.verify(
                "tool", "terragrunt", "0.69.1", arm64_build, "arm64"
            )

        assert result.status is VerificationStatus.VERIFIED
        assert result.tier is ChecksumTier.VENDOR_MANIFEST
        assert result.details == TERRAGRUNT_SUMS_URL

    @pytest.mark.asyncio
    async def test_manifest_mismatch_is_fatal(
        self, make_service, registry, artifact
    ):
        fetcher = AsyncMock(return_value=HELLO_SHA256)
        registry.register("terragrunt", fetcher)
        service = make_service()

        with aioresponses() as m:
            m.get(
                TERRAGRUNT_SUMS_URL,
                body=f"{WRONG_SHA256}  terragrunt_linux_amd64\n",
            )

            result = await service.verify(
                "tool", "terragrunt", "0.69.1", artifact, "amd64"
            )

        assert result.status is VerificationStatus.FAILED
        assert result.tier is ChecksumTier.VENDOR_MANIFEST
        fetcher.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_manifest_unreachable_falls_through(
        self, make_service, artifact
    ):
        service = make_service()

        with aioresponses() as m:
            m.get(TERRAGRUNT_SUMS_URL, status=404)

            result = await service.verify(
                "tool", "terragrunt", "0.69.1", artifact, "amd64"
            )

        assert result.status is VerificationStatus.TRUSTED_ON_FIRST_USE
        assert result.tier is ChecksumTier.CALCULATED_TRUST

    @pytest.mark.asyncio
    async def test_explicit_filename_selects_listed_variant(
        self, make_service, artifact
    ):
        body = (
            f"{WRONG_SHA256}  node-v20.18.0-linux-x64.tar.xz\n"
            f"{HELLO_SHA256}  node-v20.18.0-linux-x64.tar.gz\n"
        )
        service = make_service()

        with aioresponses() as m:
            m.get(NODE_SUMS_URL, body=body)

            result = await service.verify(
                "language",
                "nodejs",
                "20.18.0",
                artifact,
                "amd64",
                filename="node-v20.18.0-linux-x64.tar.gz",
            )

        assert result.status is VerificationStatus.VERIFIED
        assert result.tier is ChecksumTier.VENDOR_MANIFEST
        assert result.details == NODE_SUMS_URL

    @pytest.mark.asyncio
    async def test_local_file_name_used_for_lookup(
        self, make_service, tmp_path
    ):
        tarball = tmp_path / "node-v20.18.0-linux-x64.tar.gz"
        tarball.write_bytes(b"hello")
        body = (
            f"{WRONG_SHA256}  node-v20.18.0-linux-x64.tar.xz\n"
            f"{HELLO_SHA256}  node-v20.18.0-linux-x64.tar.gz\n"
        )
        service = make_service()

        with aioresponses() as m:
            m.get(NODE_SUMS_URL, body=body)

            result = await service.verify(
                "language", "node", "20.18.0", tarball, "amd64"
            )

        assert result.status is VerificationStatus.VERIFIED
        assert result.tier is ChecksumTier.VENDOR_MANIFEST

    @pytest.mark.asyncio
    async def test_unlisted_explicit_filename_is_not_swapped_for_template(
        self, make_service, artifact
    ):
        service = make_service()

        with aioresponses() as m:
            m.get(
                NODE_SUMS_URL,
                body=f"{WRONG_SHA256}  node-v20.18.0-linux-x64.tar.xz\n",
            )

            result = await service.verify(
                "language",
                "nodejs",
                "20.18.0",
                artifact,
                "amd64",
                filename="node-v20.18.0-linux-x64.zip",
            )

        assert result.status is VerificationStatus.TRUSTED_ON_FIRST_USE
        assert result.tier is ChecksumTier.CALCULATED_TRUST

    @pytest.mark.asyncio
    async def test_undecodable_manifest_falls_through(
        self, make_service, artifact
    ):
        service = make_service()

        with aioresponses() as m:
            m.get(
                TERRAGRUNT_SUMS_URL,
                body=b"\xff\xfe\xfa not utf-8 \x80\x81",
                content_type="text/plain; charset=utf-8",
            )

            result = await service.verify(
                "tool", "terragrunt", "0.69.1", artifact, "amd64"
            )

        assert result.status is VerificationStatus.TRUSTED_ON_FIRST_USE
        assert result.tier is ChecksumTier.CALCULATED_TRUST


class TestRegisteredFetcherTier:
    """Tier 3."""

    @pytest.mark.asyncio
    async def test_fetcher_called_with_version_and_arch(
        self, make_service, registry, artifact
    ):
        fetcher = AsyncMock(return_value=HELLO_SHA256)
        registry.register("lazydocker", fetcher)
        service = make_service()

        result = await service.verify(
            "tool", "lazydocker", "0.24.1", artifact, "arm64"
        )

        fetcher.assert_awaited_once_with("0.24.1", "arm64")
        assert result.status is VerificationStatus.VERIFIED
        assert result.tier is ChecksumTier.REGISTERED_FETCHER

    @pytest.mark.asyncio
    async def test_sha512_digest_selects_sha512(
        self, make_service, registry, artifact
    ):
        registry.register("git-cliff", AsyncMock(return_value=HELLO_SHA512))
        service = make_service()

        result = await service.verify("tool", "git-cliff", "2.6.0", artifact)

        assert result.status is VerificationStatus.VERIFIED
        assert result.algorithm == "sha512"

    @pytest.mark.asyncio
    async def test_fetcher_mismatch_is_fatal(
        self, make_service, registry, artifact
    ):
        registry.register("cosign", AsyncMock(return_value=WRONG_SHA256))
        service = make_service()

        result = await service.verify("tool", "cosign", "2.4.1", artifact)

        assert result.status is VerificationStatus.FAILED
        assert result.tier is ChecksumTier.REGISTERED_FETCHER
        assert result.checksum == WRONG_SHA256

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "returned", [None, "not-a-checksum", "a" * 40, "a" * 63]
    )
    async def test_unusable_value_falls_through_to_tofu(
        self, make_service, registry, artifact, returned
    ):
        registry.register("cosign", AsyncMock(return_value=returned))
        service = make_service()

        result = await service.verify("tool", "cosign", "2.4.1", artifact)

        assert result.status is VerificationStatus.TRUSTED_ON_FIRST_USE

    @pytest.mark.asyncio
    async def test_fetcher_download_error_falls_through(
        self, make_service, registry, artifact
    ):
        registry.register(
            "cosign",
            AsyncMock(side_effect=DownloadError("HTTP 404", retryable=False)),
        )
        service = make_service()

        result = await service.verify("tool", "cosign", "2.4.1", artifact)

        assert result.status is VerificationStatus.TRUSTED_ON_FIRST_USE

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error", [KeyError("sha256"), ValueError("bad"), RuntimeError("boom")]
    )
    async def test_fetcher_exception_falls_through(
        self, make_service, registry, artifact, caplog, error
    ):
        registry.register("cosign", AsyncMock(side_effect=error))
        service = make_service()

        result = await service.verify("tool", "cosign", "2.4.1", artifact)

        assert result.status is VerificationStatus.TRUSTED_ON_FIRST_USE
        assert result.tier is ChecksumTier.CALCULATED_TRUST
        assert "Checksum fetcher for cosign failed" in caplog.text

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "returned", [HELLO_SHA256.encode(), 42, [HELLO_SHA256]]
    )
    async def test_non_string_value_falls_through(
        self, make_service, registry, artifact, returned
    ):
        registry.register("cosign", AsyncMock(return_value=returned))
        service = make_service()

        result = await service.verify("tool", "cosign", "2.4.1", artifact)

        assert result.status is VerificationStatus.TRUSTED_ON_FIRST_USE


class TestCalculatedTrust:
    """Tier 4 and the require-verified policy."""

    @pytest.mark.asyncio
    async def test_tofu_result(self, make_service, artifact, caplog):
        service = make_service()

        result = await service.verify("tool", "unknown-tool", "1.0", artifact)

        assert result.status is VerificationStatus.TRUSTED_ON_FIRST_USE
        assert result.tier is ChecksumTier.CALCULATED_TRUST
        assert result.checksum == HELLO_SHA256
        assert result.passed
        assert "SECURITY WARNING" in caplog.text

    @pytest.mark.asyncio
    async def test_require_verified_blocks_tofu(
        self, make_service, artifact, caplog
    ):
        service = make_service(require_verified=True)

        result = await service.verify("tool", "unknown-tool", "1.0", artifact)

        assert result.status is VerificationStatus.FAILED
        assert result.tier is ChecksumTier.CALCULATED_TRUST
        assert not result.passed
        assert "REQUIRE_VERIFIED_DOWNLOADS" in caplog.text

    @pytest.mark.asyncio
    async def test_require_verified_allows_verified(
        self, make_service, artifact
    ):
        service = make_service(
            pinned_tool("gh", "2.60.1", HELLO_SHA256),
            require_verified=True,
        )

        result = await service.verify("tool", "gh", "2.60.1", artifact)

        assert result.status is VerificationStatus.VERIFIED


class TestBoundaries:
    """Missing files, timeouts, audit output."""

    @pytest.mark.asyncio
    async def test_missing_artifact_fails(self, make_service, tmp_path):
        service = make_service()

        result = await service.verify(
            "tool", "gh", "2.60.1", tmp_path / "missing.tar.gz"
        )

        assert result.status is VerificationStatus.FAILED
        assert result.tier is None

    @pytest.mark.asyncio
    async def test_timeout_fails(self, downloader, artifact):
        class SlowTier:
            tier = ChecksumTier.REGISTERED_FETCHER

            async def resolve(self, request, artifact_path):
                await asyncio.sleep(5)
                return TierOutcome(None)

        service = VerificationService(
            downloader,
            timeout_seconds=0.05,
            tiers=[SlowTier(), CalculatedTrustTier()],
        )

        result = await service.verify("tool", "gh", "2.60.1", artifact)

        assert result.status is VerificationStatus.FAILED
        assert result.details == "timeout"

    @pytest.mark.asyncio
    async def test_result_to_dict(self, make_service, artifact):
        service = make_service(pinned_tool("gh", "2.60.1", HELLO_SHA256))

        result = await service.verify("tool", "gh", "2.60.1", artifact)

        assert result.to_dict() == {
            "status": "verified",
            "checksum": HELLO_SHA256,
            "tier": 1,
            "tier_name": "PINNED",
            "algorithm": "sha256",
            "details": result.details,
        }

    @pytest.mark.asyncio
    async def test_from_settings(self, downloader, settings, artifact):
        service = VerificationService.from_settings(downloader, settings)

        assert service.require_verified is settings.require_verified
        assert service.pinned is not None
        assert service.pinned.path == settings.checksums_db
