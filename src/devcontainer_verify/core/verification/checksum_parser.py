"""Parser for sha256sum/sha512sum-compatible manifest files.

Lines look like ``<hex-digest><whitespace>[*]<filename>``. The ``*``
binary-mode marker and a leading ``./`` are stripped. Only exact filename
matches count: a manifest that lists ``tool_1.0_linux_amd64.tar.gz`` must
not satisfy a request for ``tool_1.0_linux_arm64.tar.gz``.
"""

from __future__ import annotations

from dataclasses import dataclass

from devcontainer_verify.core.verification.hashing import (
    algorithm_for_digest,
    is_hex,
)
from devcontainer_verify.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ChecksumEntry:
    """Parsed manifest entry."""

    filename: str
    hash_value: str
    algorithm: str | None


def parse_manifest_line(line: str) -> tuple[str, str] | None:
    """Parse a single manifest line into (hash_value, filename).

    Returns:
        The pair, or None for blank, comment, or malformed lines.
    """
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None

    parts = stripped.split(None, 1)
    expected_parts = 2
    if len(parts) != expected_parts:
        return None

    hash_value, filename = parts
    if not is_hex(hash_value):
        return None

    filename = filename.strip().removeprefix("*").removeprefix("./")
    return hash_value, filename


def parse_all_checksums(content: str) -> dict[str, str]:
    """Parse every filename-to-hash mapping in a manifest.

    The first entry wins when a filename is listed twice.
    """
    hashes: dict[str, str] = {}
    for raw_line in content.splitlines():
        parsed = parse_manifest_line(raw_line)
        if parsed is None:
            continue
        hash_value, filename = parsed
        hashes.setdefault(filename, hash_value)
    return hashes


def find_checksum_entry(content: str, filename: str) -> ChecksumEntry | None:
    """Find the manifest entry whose filename matches exactly."""
    logger.debug("   Looking for %s in manifest", filename)
    for line_num, raw_line in enumerate(content.splitlines(), 1):
        parsed = parse_manifest_line(raw_line)
        if parsed is None:
            continue
        hash_value, file_in_manifest = parsed
        if file_in_manifest == filename:
            logger.debug("   ✅ Match found on line %d", line_num)
            return ChecksumEntry(
                filename=file_in_manifest,
                hash_value=hash_value,
                algorithm=algorithm_for_digest(hash_value),
            )

    logger.debug("   No manifest entry for %s", filename)
    return None


def parse_checksum_file(content: str, filename: str) -> str | None:
    """Return the digest for filename, or None if it is not listed."""
    entry = find_checksum_entry(content, filename)
    return entry.hash_value if entry else None
