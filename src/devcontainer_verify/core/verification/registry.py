"""Per-session registry of tool-specific checksum fetchers."""

from __future__ import annotations

from typing import TYPE_CHECKING

from devcontainer_verify.logger import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterator

    from devcontainer_verify.core.verification.fetchers import (
        ChecksumFetcher,
    )

logger = get_logger(__name__)


class FetcherRegistry:
    """Maps tool names to checksum fetchers for one build session.

    A fetcher is any ``async (version, arch) -> str | None`` callable.
    Registering a name twice replaces the earlier fetcher.
    """

    def __init__(self) -> None:
        self._fetchers: dict[str, ChecksumFetcher] = {}

    def register(self, tool_name: str, fetcher: ChecksumFetcher) -> None:
        """Associate a fetcher with a tool, replacing any earlier one."""
        if tool_name in self._fetchers:
            logger.debug("Replacing checksum fetcher for %s", tool_name)
        else:
            logger.debug("Registered checksum fetcher for %s", tool_name)
        self._fetchers[tool_name] = fetcher

    def lookup(self, tool_name: str) -> ChecksumFetcher | None:
        return self._fetchers.get(tool_name)

    def unregister(self, tool_name: str) -> bool:
        """Remove a registration. Returns False if none existed."""
        return self._fetchers.pop(tool_name, None) is not None

    def copy(self) -> FetcherRegistry:
        """Return an independent registry with the same registrations."""
        registry = FetcherRegistry()
        registry._fetchers = dict(self._fetchers)
        return registry

    def names(self) -> list[str]:
        return sorted(self._fetchers)

    def __contains__(self, tool_name: object) -> bool:
        return tool_name in self._fetchers

    def __len__(self) -> int:
        return len(self._fetchers)

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())
