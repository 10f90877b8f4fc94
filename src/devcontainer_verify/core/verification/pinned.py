"""Pinned checksum database (git-tracked ``checksums.json``).

Layout::

    {
      "languages": {"python": {"versions": {"3.12.7": {"sha256": "..."}}}},
      "tools": {
        "kubectl": {
          "versions": {
            "1.31.0": {"arch": {"amd64": "...", "arm64": {"sha256": "..."}}}
          }
        }
      }
    }

Null values and the ``placeholder_actual_checksum_needed`` marker count
as absent.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson
from jsonschema import Draft7Validator
from jsonschema.exceptions import best_match

from devcontainer_verify.constants import (
    DEFAULT_HASH_TYPE,
    PINNED_PLACEHOLDER,
    SUPPORTED_HASH_ALGORITHMS,
)
from devcontainer_verify.exceptions import PinnedDatabaseError
from devcontainer_verify.logger import get_logger

logger = get_logger(__name__)

SCHEMA_PATH = Path(__file__).parents[2] / "schemas" / "checksums.schema.json"

_SECTIONS = {"language": "languages", "tool": "tools"}


def _load_schema() -> dict[str, Any]:
    with SCHEMA_PATH.open("rb") as f:
        return orjson.loads(f.read())  # type: ignore[no-any-return]


def _usable(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value or value == PINNED_PLACEHOLDER:
        return None
    return value


def _pick_digest(entry: Any, algorithm: str) -> str | None:
    """Pick a digest from a string or ``{"sha256": ..., "sha512": ...}``."""
    if isinstance(entry, str) or entry is None:
        return _usable(entry)
    if not isinstance(entry, dict):
        return None

    preferred = [algorithm] + [
        alg for alg in SUPPORTED_HASH_ALGORITHMS if alg != algorithm
    ]
    for alg in preferred:
        digest = _usable(entry.get(alg))
        if digest:
            return digest
    return None


class PinnedChecksums:
    """Read-only view of the pinned checksum database.

    The file is loaded on first lookup. A missing file is an empty
    database; malformed JSON or a schema violation raises
    PinnedDatabaseError.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._data: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PinnedChecksums:
        """Build a database from already-parsed data (validated)."""
        db = cls(Path("<memory>"))
        db._validate(data)
        db._data = data
        return db

    def _validate(self, data: Any) -> None:
        validator = Draft7Validator(_load_schema())
        errors = list(validator.iter_errors(data))
        if not errors:
            return
        error = best_match(errors)
        location = (
            ".".join(str(p) for p in error.absolute_path)
            if error.absolute_path
            else "root"
        )
        msg = f"{error.message} (at '{location}')"
        raise PinnedDatabaseError(msg, str(self.path))

    def load(self) -> dict[str, Any]:
        """Load and validate the database, caching the result.

        Raises:
            PinnedDatabaseError: If the file is not valid JSON or does not
                match the database schema

        """
        if self._data is not None:
            return self._data

        if not self.path.is_file():
            logger.debug("No pinned checksum database at %s", self.path)
            self._data = {}
            return self._data

        try:
            data = orjson.loads(self.path.read_bytes())
        except orjson.JSONDecodeError as e:
            msg = f"invalid JSON: {e}"
            raise PinnedDatabaseError(msg, str(self.path)) from e
        except OSError as e:
            msg = f"cannot read file: {e}"
            raise PinnedDatabaseError(msg, str(self.path)) from e

        self._validate(data)
        self._data = data
        logger.debug("Loaded pinned checksum database %s", self.path)
        return self._data

    def lookup(
        self,
        kind: str,
        name: str,
        version: str,
        arch: str | None = None,
        algorithm: str = DEFAULT_HASH_TYPE,
    ) -> str | None:
        """Return the pinned digest, or None if nothing usable is pinned.

        A per-architecture entry takes precedence over the version-wide
        digest.
        """
        section = _SECTIONS.get(kind)
        if section is None:
            logger.debug("Unknown artifact kind %s", kind)
            return None

        entry = (
            self.load()
            .get(section, {})
            .get(name, {})
            .get("versions", {})
            .get(version)
        )
        if not isinstance(entry, dict):
            return None

        arch_map = entry.get("arch")
        if arch and isinstance(arch_map, dict) and arch in arch_map:
            digest = _pick_digest(arch_map[arch], algorithm)
            if digest:
                return digest

        return _pick_digest(entry, algorithm)

    def versions(self, kind: str, name: str) -> list[str]:
        """Versions with an entry for name, in file order."""
        section = _SECTIONS.get(kind, "")
        return list(
            self.load().get(section, {}).get(name, {}).get("versions", {})
        )
