"""Checksum fetchers for the vendor integrity formats seen in the wild.

Every fetcher returns the checksum string, or None when the source does
not list the artifact. Only protocol failures propagate, as DownloadError
from the download service (exhausted retries or a 4xx response).
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from packaging.version import InvalidVersion, Version

from devcontainer_verify.constants import DEFAULT_HASH_TYPE, HashType
from devcontainer_verify.core.verification.checksum_parser import (
    parse_all_checksums,
    parse_checksum_file,
)
from devcontainer_verify.core.verification.hashing import (
    compute_hash,
    validate_checksum_format,
)
from devcontainer_verify.logger import get_logger

if TYPE_CHECKING:
    from pathlib import Path

    from devcontainer_verify.core.download import DownloadService

logger = get_logger(__name__)

GO_DOWNLOADS_URL = "https://go.dev/dl/"
RUBY_DOWNLOADS_URL = "https://www.ruby-lang.org/en/downloads/"

GO_CONTEXT_LINES = 5
RUBY_CONTEXT_LINES = 2

_TT_HASH_RE = re.compile(r"<tt>([a-f0-9]{64})</tt>")
_RUBY_SHA256_RE = re.compile(r"sha256: ([a-f0-9]{64})")

ChecksumFetcher = Callable[[str, str], Awaitable[str | None]]


@dataclass(slots=True, frozen=True)
class PageHash:
    """Checksum scraped from a vendor release page.

    ``version`` is the version the checksum belongs to, which differs
    from the requested one when a partial version was resolved.
    """

    checksum: str
    version: str
    source: str


def is_partial_version(version: str) -> bool:
    """Return True for "major.minor" versions such as "1.23"."""
    return version.count(".") == 1


def _newest(versions: list[str]) -> str | None:
    candidates: list[tuple[Version, str]] = []
    for raw in versions:
        try:
            candidates.append((Version(raw), raw))
        except InvalidVersion:
            logger.debug("Ignoring unparseable version %s", raw)
    if not candidates:
        return None
    return max(candidates)[1]


def find_hash_near(
    content: str,
    needle: str,
    pattern: re.Pattern[str],
    context_lines: int,
) -> str | None:
    """Find the first pattern match in the lines at or after ``needle``.

    Each line containing ``needle`` opens a window of itself plus the
    next ``context_lines`` lines; windows are searched in page order.
    """
    lines = content.splitlines()
    for index, line in enumerate(lines):
        if needle not in line:
            continue
        for candidate in lines[index : index + context_lines + 1]:
            match = pattern.search(candidate)
            if match:
                return match.group(1)
    return None


async def fetch_manifest_hash(
    downloader: DownloadService,
    manifest_url: str,
    filename: str,
    fallback_filenames: Sequence[str] = (),
) -> str | None:
    """Look up filename in a sha256sum-compatible manifest.

    Args:
        downloader: Download service used for the request
        manifest_url: URL of SHA256SUMS, checksums.txt, SHASUMS256.txt...
        filename: Exact release filename to look up
        fallback_filenames: Names tried in order when filename is not
            listed

    Returns:
        The digest, or None if the manifest lists none of the names

    """
    logger.debug("🌐 Fetching manifest %s", manifest_url)
    content = await downloader.fetch_text(manifest_url)
    if not fallback_filenames:
        checksum = parse_checksum_file(content, filename)
        if checksum is None:
            logger.debug("   %s not listed in %s", filename, manifest_url)
        return checksum

    hashes = parse_all_checksums(content)
    for candidate in (filename, *fallback_filenames):
        if candidate in hashes:
            logger.debug("   Found %s in %s", candidate, manifest_url)
            return hashes[candidate]

    logger.debug(
        "   None of %s listed in %s",
        ", ".join((filename, *fallback_filenames)),
        manifest_url,
    )
    return None


async def fetch_individual_hash_file(
    downloader: DownloadService,
    url: str,
    algorithm: str = DEFAULT_HASH_TYPE,
) -> str | None:
    """Read a single-digest file such as ``artifact.tar.gz.sha256``.

    The first whitespace-separated token must be exactly the digest
    length for ``algorithm``; anything else counts as not found.
    """
    logger.debug("🌐 Fetching hash file %s", url)
    content = await downloader.fetch_text(url)
    tokens = content.split()
    if not tokens:
        logger.debug("   Hash file %s is empty", url)
        return None

    checksum = tokens[0]
    if not validate_checksum_format(checksum, algorithm):
        logger.warning(
            "⚠️  Hash file %s does not contain a valid %s digest",
            url,
            algorithm,
        )
        return None
    return checksum


async def fetch_vendor_page_hash(
    downloader: DownloadService,
    page_url: str,
    filename_pattern: str,
) -> str | None:
    """Scrape a digest from a go.dev-style HTML release index.

    Returns the first ``<tt>``-wrapped 64-hex digest within the five
    lines that follow the first line mentioning ``filename_pattern``.
    """
    logger.debug("🌐 Fetching release page %s", page_url)
    content = await downloader.fetch_text(page_url)
    return find_hash_near(
        content, filename_pattern, _TT_HASH_RE, GO_CONTEXT_LINES
    )


async def fetch_go_checksum(
    downloader: DownloadService, version: str, arch: str
) -> PageHash | None:
    """Checksum of the Go linux tarball from https://go.dev/dl/.

    A partial version ("1.23") resolves to the newest listed 1.23.x.
    """
    content = await downloader.fetch_text(GO_DOWNLOADS_URL)

    filename = f"go{version}.linux-{arch}.tar.gz"
    checksum = find_hash_near(content, filename, _TT_HASH_RE, GO_CONTEXT_LINES)
    if checksum:
        return PageHash(checksum, version, GO_DOWNLOADS_URL)

    if not is_partial_version(version):
        return None

    pattern = re.compile(
        rf"go({re.escape(version)}\.\d+)\.linux-{re.escape(arch)}\.tar\.gz"
    )
    resolved = _newest(pattern.findall(content))
    if resolved is None:
        return None

    filename = f"go{resolved}.linux-{arch}.tar.gz"
    checksum = find_hash_near(content, filename, _TT_HASH_RE, GO_CONTEXT_LINES)
    if not checksum:
        return None

    logger.info("   Resolved Go %s to %s", version, resolved)
    return PageHash(checksum, resolved, GO_DOWNLOADS_URL)


async def fetch_ruby_checksum(
    downloader: DownloadService, version: str
) -> PageHash | None:
    """Checksum of the Ruby source tarball from the ruby-lang downloads page.

    A partial version ("3.3") resolves to the newest listed 3.3.x.
    """
    content = await downloader.fetch_text(RUBY_DOWNLOADS_URL)

    exact = re.compile(rf">Ruby {re.escape(version)}(?![\d.])")
    lines = content.splitlines()
    for index, line in enumerate(lines):
        if not exact.search(line):
            continue
        for candidate in lines[index : index + RUBY_CONTEXT_LINES + 1]:
            match = _RUBY_SHA256_RE.search(candidate)
            if match:
                return PageHash(match.group(1), version, RUBY_DOWNLOADS_URL)

    if not is_partial_version(version):
        return None

    pattern = re.compile(rf">Ruby ({re.escape(version)}\.\d+)")
    resolved = _newest(pattern.findall(content))
    if resolved is None:
        return None

    checksum = find_hash_near(
        content, f">Ruby {resolved}", _RUBY_SHA256_RE, RUBY_CONTEXT_LINES
    )
    if not checksum:
        return None

    logger.info("   Resolved Ruby %s to %s", version, resolved)
    return PageHash(checksum, resolved, RUBY_DOWNLOADS_URL)


async def compute_downloaded_hash(
    path: Path, algorithm: HashType = DEFAULT_HASH_TYPE
) -> str:
    """Hash a downloaded file without blocking the event loop."""
    return await asyncio.to_thread(compute_hash, path, algorithm)


def _vendor_arch(arch: str, arch_map: Mapping[str, str] | None) -> str | None:
    if arch_map is None:
        return arch
    return arch_map.get(arch)


def manifest_fetcher(
    downloader: DownloadService,
    manifest_url_template: str,
    filename_template: str,
    arch_map: Mapping[str, str] | None = None,
) -> ChecksumFetcher:
    """Build a fetcher for tools that publish an aggregate manifest.

    Templates are ``str.format`` strings with ``{version}`` and ``{arch}``
    placeholders; ``arch`` is first translated through ``arch_map``.

    Example:
        >>> fetcher = manifest_fetcher(
        ...     downloader,
        ...     "https://github.com/jesseduffield/lazygit/releases/download/"
        ...     "v{version}/checksums.txt",
        ...     "lazygit_{version}_Linux_{arch}.tar.gz",
        ...     {"amd64": "x86_64", "arm64": "arm64"},
        ... )
    """

    async def fetch(version: str, arch: str) -> str | None:
        vendor_arch = _vendor_arch(arch, arch_map)
        if vendor_arch is None:
            return None
        return await fetch_manifest_hash(
            downloader,
            manifest_url_template.format(version=version, arch=vendor_arch),
            filename_template.format(version=version, arch=vendor_arch),
        )

    return fetch


def hash_file_fetcher(
    downloader: DownloadService,
    url_template: str,
    algorithm: str = DEFAULT_HASH_TYPE,
    arch_map: Mapping[str, str] | None = None,
) -> ChecksumFetcher:
    """Build a fetcher for tools that publish one hash file per artifact."""

    async def fetch(version: str, arch: str) -> str | None:
        vendor_arch = _vendor_arch(arch, arch_map)
        if vendor_arch is None:
            return None
        return await fetch_individual_hash_file(
            downloader,
            url_template.format(version=version, arch=vendor_arch),
            algorithm,
        )

    return fetch
