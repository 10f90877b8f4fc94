"""Tests for checksum fetchers against mocked vendor sources."""

import hashlib

import pytest
from aioresponses import aioresponses

from devcontainer_verify.core.verification.fetchers import (
    GO_DOWNLOADS_URL,
    RUBY_DOWNLOADS_URL,
    compute_downloaded_hash,
    fetch_go_checksum,
    fetch_individual_hash_file,
    fetch_manifest_hash,
    fetch_ruby_checksum,
    fetch_vendor_page_hash,
    hash_file_fetcher,
    is_partial_version,
    manifest_fetcher,
)
from devcontainer_verify.exceptions import DownloadError

HASH_A = "a" * 64
HASH_B = "b" * 64
HASH_C = "c" * 64
HASH_D = "d" * 64


def go_row(version: str, arch: str, checksum: str) -> str:
    filename = f"go{version}.linux-{arch}.tar.gz"
    return f"""\
<tr>
  <td class="filename"><a class="download" href="/dl/{filename}">{filename}</a></td>
  <td>Archive</td>
  <td>Linux</td>
  <td>{arch}</td>
  <td>73MB</td>
  <td><tt>{checksum}</tt></td>
</tr>
"""


GO_PAGE = (
    "<table>\n"
    + go_row("1.23.4", "amd64", HASH_A)
    + go_row("1.23.10", "amd64", HASH_B)
    + go_row("1.23.10", "arm64", HASH_C)
    + go_row("1.22.9", "amd64", HASH_D)
    + "</table>\n"
)

RUBY_PAGE = f"""\
<ul>
<li><a href="https://cache.ruby-lang.org/pub/ruby/3.4/ruby-3.4.7.tar.gz">Ruby 3.4.7</a><br />
  sha256: {HASH_A}</li>
<li><a href="https://cache.ruby-lang.org/pub/ruby/3.3/ruby-3.3.10.tar.gz">Ruby 3.3.10</a><br />
  sha256: {HASH_B}</li>
<li><a href="https://cache.ruby-lang.org/pub/ruby/3.3/ruby-3.3.9.tar.gz">Ruby 3.3.9</a><br />
  sha256: {HASH_C}</li>
</ul>
"""


@pytest.mark.parametrize(
    ("version", "expected"),
    [("1.23", True), ("1.23.4", False), ("3", False), ("1.2.3.4", False)],
)
def test_is_partial_version(version, expected):
    assert is_partial_version(version) is expected


class TestManifestFetcher:
    """fetch_manifest_hash."""

    @pytest.mark.asyncio
    async def test_returns_matching_digest(self, downloader):
        url = "https://example.com/v1.0/SHA256SUMS"
        body = f"{HASH_A}  tool_linux_amd64\n{HASH_B}  tool_linux_arm64\n"
        with aioresponses() as m:
            m.get(url, body=body)

            checksum = await fetch_manifest_hash(
                downloader, url, "tool_linux_arm64"
            )

        assert checksum == HASH_B

    @pytest.mark.asyncio
    async def test_missing_filename_returns_none(self, downloader):
        url = "https://example.com/v1.0/SHA256SUMS"
        with aioresponses() as m:
            m.get(url, body=f"{HASH_A}  tool_linux_amd64\n")

            checksum = await fetch_manifest_hash(
                downloader, url, "tool_linux_riscv64"
            )

        assert checksum is None

    @pytest.mark.asyncio
    async def test_not_found_raises_download_error(self, downloader):
        url = "https://example.com/v9.9/SHA256SUMS"
        with aioresponses() as m:
            m.get(url, status=404)

            with pytest.raises(DownloadError):
                await fetch_manifest_hash(downloader, url, "tool")

    @pytest.mark.asyncio
    async def test_fallback_names_tried_in_order(self, downloader):
        url = "https://example.com/v1.0/SHA256SUMS"
        body = f"{HASH_A}  tool.tar.xz\n{HASH_B}  tool.zip\n"
        with aioresponses() as m:
            m.get(url, body=body)

            checksum = await fetch_manifest_hash(
                downloader, url, "tool.tar.gz", ("tool.zip", "tool.tar.xz")
            )

        assert checksum == HASH_B

    @pytest.mark.asyncio
    async def test_primary_name_beats_fallbacks(self, downloader):
        url = "https://example.com/v1.0/SHA256SUMS"
        body = f"{HASH_A}  tool.tar.xz\n{HASH_B}  tool.tar.gz\n"
        with aioresponses() as m:
            m.get(url, body=body)

            checksum = await fetch_manifest_hash(
                downloader, url, "tool.tar.gz", ("tool.tar.xz",)
            )

        assert checksum == HASH_B

    @pytest.mark.asyncio
    async def test_no_listed_name_returns_none(self, downloader):
        url = "https://example.com/v1.0/SHA256SUMS"
        with aioresponses() as m:
            m.get(url, body=f"{HASH_A}  other.tar.gz\n")

            checksum = await fetch_manifest_hash(
                downloader, url, "tool.tar.gz", ("tool.tar.xz",)
            )

        assert checksum is None


class TestIndividualHashFile:
    """fetch_individual_hash_file."""

    @pytest.mark.asyncio
    async def test_first_token_is_used(self, downloader):
        url = "https://example.com/Python-3.12.7.tgz.sha256"
        with aioresponses() as m:
            m.get(url, body=f"{HASH_A}  Python-3.12.7.tgz\n")

            checksum = await fetch_individual_hash_file(downloader, url)

        assert checksum == HASH_A

    @pytest.mark.asyncio
    async def test_sha512_file(self, downloader):
        url = "https://example.com/tool.tar.gz.sha512"
        digest = "e" * 128
        with aioresponses() as m:
            m.get(url, body=f"{digest}\n")

            checksum = await fetch_individual_hash_file(
                downloader, url, "sha512"
            )

        assert checksum == digest

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body", ["", "\n", "a" * 63, "a" * 128, "<html>Not Found</html>"]
    )
    async def test_invalid_content_returns_none(self, downloader, body):
        url = "https://example.com/tool.tar.gz.sha256"
        with aioresponses() as m:
            m.get(url, body=body)

            checksum = await fetch_individual_hash_file(downloader, url)

        assert checksum is None


class TestGoChecksum:
    """go.dev page scraping."""

    @pytest.mark.asyncio
    async def test_vendor_page_hash(self, downloader):
        with aioresponses() as m:
            m.get(GO_DOWNLOADS_URL, body=GO_PAGE)

            checksum = await fetch_vendor_page_hash(
                downloader, GO_DOWNLOADS_URL, "go1.23.4.linux-amd64.tar.gz"
            )

        assert checksum == HASH_A

    @pytest.mark.asyncio
    async def test_exact_version(self, downloader):
        with aioresponses() as m:
            m.get(GO_DOWNLOADS_URL, body=GO_PAGE)

            page_hash = await fetch_go_checksum(downloader, "1.23.10", "arm64")

        assert page_hash is not None
        assert page_hash.checksum == HASH_C
        assert page_hash.version == "1.23.10"

    @pytest.mark.asyncio
    async def test_partial_version_resolves_to_newest(self, downloader):
        with aioresponses() as m:
            m.get(GO_DOWNLOADS_URL, body=GO_PAGE)

            page_hash = await fetch_go_checksum(downloader, "1.23", "amd64")

        assert page_hash is not None
        assert page_hash.version == "1.23.10"
        assert page_hash.checksum == HASH_B

    @pytest.mark.asyncio
    async def test_unknown_version_returns_none(self, downloader):
        with aioresponses() as m:
            m.get(GO_DOWNLOADS_URL, body=GO_PAGE)

            page_hash = await fetch_go_checksum(downloader, "1.99.0", "amd64")

        assert page_hash is None


class TestRubyChecksum:
    """ruby-lang.org downloads page scraping."""

    @pytest.mark.asyncio
    async def test_exact_version(self, downloader):
        with aioresponses() as m:
            m.get(RUBY_DOWNLOADS_URL, body=RUBY_PAGE)

            page_hash = await fetch_ruby_checksum(downloader, "3.3.9")

        assert page_hash is not None
        assert page_hash.checksum == HASH_C

    @pytest.mark.asyncio
    async def test_partial_version_resolves_to_newest(self, downloader):
        with aioresponses() as m:
            m.get(RUBY_DOWNLOADS_URL, body=RUBY_PAGE)

            page_hash = await fetch_ruby_checksum(downloader, "3.3")

        assert page_hash is not None
        assert page_hash.version == "3.3.10"
        assert page_hash.checksum == HASH_B

    @pytest.mark.asyncio
    async def test_version_prefix_does_not_match_longer_version(
        self, downloader
    ):
        with aioresponses() as m:
            m.get(RUBY_DOWNLOADS_URL, body=RUBY_PAGE)

            page_hash = await fetch_ruby_checksum(downloader, "3.3.1")

        assert page_hash is None


class TestFetcherFactories:
    """manifest_fetcher and hash_file_fetcher."""

    @pytest.mark.asyncio
    async def test_manifest_fetcher_maps_arch(self, downloader):
        fetcher = manifest_fetcher(
            downloader,
            "https://example.com/v{version}/checksums.txt",
            "lazygit_{version}_Linux_{arch}.tar.gz",
            {"amd64": "x86_64", "arm64": "arm64"},
        )
        body = f"{HASH_A}  lazygit_0.56.0_Linux_x86_64.tar.gz\n"
        with aioresponses() as m:
            m.get("https://example.com/v0.56.0/checksums.txt", body=body)

            checksum = await fetcher("0.56.0", "amd64")

        assert checksum == HASH_A

    @pytest.mark.asyncio
    async def test_unmapped_arch_returns_none_without_request(
        self, downloader
    ):
        fetcher = hash_file_fetcher(
            downloader,
            "https://example.com/v{version}/tool-{arch}.sha256",
            arch_map={"amd64": "x86_64"},
        )
        with aioresponses():
            checksum = await fetcher("1.0.0", "arm64")

        assert checksum is None

    @pytest.mark.asyncio
    async def test_hash_file_fetcher(self, downloader):
        fetcher = hash_file_fetcher(
            downloader,
            "https://example.com/v{version}/tool-{arch}.sha512",
            "sha512",
        )
        digest = "f" * 128
        with aioresponses() as m:
            m.get("https://example.com/v2.0/tool-arm64.sha512", body=digest)

            checksum = await fetcher("2.0", "arm64")

        assert checksum == digest


@pytest.mark.asyncio
async def test_compute_downloaded_hash(artifact):
    expected = hashlib.sha256(b"hello").hexdigest()

    assert await compute_downloaded_hash(artifact) == expected
