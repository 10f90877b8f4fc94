"""Hash computation and digest format validation."""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING

from devcontainer_verify.constants import (
    DEFAULT_HASH_TYPE,
    HASH_CHUNK_SIZE,
    HASH_HEX_LENGTHS,
    HEX_CHARS,
    SUPPORTED_HASH_ALGORITHMS,
    HashType,
)
from devcontainer_verify.logger import get_logger

if TYPE_CHECKING:
    from pathlib import Path

logger = get_logger(__name__)

BYTES_PER_UNIT = 1024.0


def format_bytes(num_bytes: float) -> str:
    """Convert a byte count to a human-readable string."""
    if num_bytes < 0:
        message = "Byte size cannot be negative"
        raise ValueError(message)

    units = ["B", "KB", "MB", "GB", "TB"]
    size = float(num_bytes)
    unit_index = 0
    while size >= BYTES_PER_UNIT and unit_index < len(units) - 1:
        size /= BYTES_PER_UNIT
        unit_index += 1

    return f"{size:.1f} {units[unit_index]}"


def is_hex(value: str) -> bool:
    """Return True if value is non-empty and only hexadecimal digits."""
    return bool(value) and all(char in HEX_CHARS for char in value)


def validate_checksum_format(
    checksum: str, algorithm: str = DEFAULT_HASH_TYPE
) -> bool:
    """Check that a digest is exactly the right number of hex characters.

    A truncated or padded response must never pass as a valid checksum,
    so no whitespace trimming happens here.

    Examples:
        >>> validate_checksum_format("a" * 64, "sha256")
        True
        >>> validate_checksum_format("a" * 63, "sha256")
        False
        >>> validate_checksum_format("g" * 128, "sha512")
        False
    """
    expected_length = HASH_HEX_LENGTHS.get(algorithm)  # type: ignore[call-overload]
    if expected_length is None:
        return False
    return len(checksum) == expected_length and is_hex(checksum)


def algorithm_for_digest(checksum: str) -> HashType | None:
    """Infer the algorithm from a hex digest's length (64/128)."""
    for algorithm in SUPPORTED_HASH_ALGORITHMS:
        if validate_checksum_format(checksum, algorithm):
            return algorithm
    return None


def compute_hash(file_path: Path, algorithm: HashType = DEFAULT_HASH_TYPE) -> str:
    """Compute the hex digest of a file.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the algorithm is not supported

    """
    if algorithm not in SUPPORTED_HASH_ALGORITHMS:
        message = f"Unsupported hash type: {algorithm}"
        raise ValueError(message)

    if not file_path.is_file():
        message = f"File not found: {file_path}"
        raise FileNotFoundError(message)

    hasher = hashlib.new(algorithm)
    bytes_processed = 0
    with file_path.open("rb") as f:
        for chunk in iter(lambda: f.read(HASH_CHUNK_SIZE), b""):
            hasher.update(chunk)
            bytes_processed += len(chunk)

    digest = hasher.hexdigest()
    logger.debug(
        "🧮 %s of %s (%s): %s",
        algorithm.upper(),
        file_path.name,
        format_bytes(bytes_processed),
        digest,
    )
    return digest


def digests_match(expected: str, actual: str) -> bool:
    """Case-insensitive digest comparison."""
    return expected.strip().lower() == actual.strip().lower()
