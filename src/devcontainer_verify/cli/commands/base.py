"""Base command handler for devcontainer-verify CLI commands.

This module provides the abstract base class that all command handlers
inherit from, ensuring consistent interface and shared functionality
across commands.
"""

import dataclasses
from abc import ABC, abstractmethod
from argparse import Namespace
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager

import aiohttp

from devcontainer_verify.config import Settings
from devcontainer_verify.core.arch import host_architecture
from devcontainer_verify.core.download import (
    DownloadService,
    create_http_session,
)
from devcontainer_verify.core.verification import (
    FetcherRegistry,
    hash_file_fetcher,
    manifest_fetcher,
)
from devcontainer_verify.logger import get_logger

logger = get_logger(__name__)

SessionFactory = Callable[
    [Settings], AbstractAsyncContextManager[aiohttp.ClientSession]
]


class BaseCommandHandler(ABC):
    """Abstract base class for all command handlers.

    Handlers return the process exit code from execute(). CLIRunner is the
    composition root: it loads settings, creates the session registry and
    injects both.
    """

    def __init__(
        self,
        settings: Settings,
        registry: FetcherRegistry | None = None,
        session_factory: SessionFactory = create_http_session,
    ) -> None:
        """Initialize the command handler with shared dependencies.

        Args:
            settings: Loaded settings
            registry: Fetcher registry for this session
            session_factory: Creates the aiohttp session (injectable for
                tests)

        """
        self.settings = settings
        self.registry = registry if registry is not None else FetcherRegistry()
        self.session_factory = session_factory

    @abstractmethod
    async def execute(self, args: Namespace) -> int:
        """Execute the command and return the exit code.

        Args:
            args: Parsed command-line arguments

        """

    def _effective_settings(self, args: Namespace) -> Settings:
        """Apply command-line overrides on top of the loaded settings."""
        if getattr(args, "require_verified", None):
            return dataclasses.replace(self.settings, require_verified=True)
        return self.settings

    @staticmethod
    def _arch(args: Namespace) -> str:
        return getattr(args, "arch", None) or host_architecture()

    def _session_registry(
        self,
        args: Namespace,
        downloader: DownloadService,
        filename: str,
    ) -> FetcherRegistry:
        """Registry with the fetcher from --manifest-url or --hash-url.

        ``filename`` is the manifest lookup name when --manifest-filename
        is not given.
        """
        manifest_url = getattr(args, "manifest_url", None)
        hash_url = getattr(args, "hash_url", None)
        if not manifest_url and not hash_url:
            return self.registry

        registry = self.registry.copy()
        if manifest_url:
            filename_template = args.manifest_filename or (
                filename.replace("{", "{{").replace("}", "}}")
            )
            fetcher = manifest_fetcher(
                downloader, manifest_url, filename_template, args.arch_map
            )
        else:
            fetcher = hash_file_fetcher(
                downloader, hash_url, args.algorithm, args.arch_map
            )
        registry.register(args.name, fetcher)
        logger.debug("Registered command-line fetcher for %s", args.name)
        return registry

    @asynccontextmanager
    async def _downloader(
        self, settings: Settings
    ) -> AsyncIterator[DownloadService]:
        """Yield a download service bound to a fresh HTTP session."""
        async with self.session_factory(settings) as session:
            yield DownloadService.from_settings(session, settings)
