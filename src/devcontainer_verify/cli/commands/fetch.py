"""Fetch command handler.

Downloads an artifact into a private workspace, verifies it, and copies
(or extracts) it to the requested output only when verification allows
it.
"""

from argparse import Namespace
from pathlib import Path

from devcontainer_verify.cli.commands.base import BaseCommandHandler
from devcontainer_verify.cli.commands.verify import (
    exit_code_for,
    print_result,
)
from devcontainer_verify.constants import EXIT_FAILED, EXIT_RETRYABLE
from devcontainer_verify.core.acquire import ArtifactAcquirer
from devcontainer_verify.core.verification import ArtifactRequest
from devcontainer_verify.exceptions import AcquisitionError, FailureKind
from devcontainer_verify.logger import get_logger

logger = get_logger(__name__)


class FetchHandler(BaseCommandHandler):
    """Handler for the fetch command."""

    async def execute(self, args: Namespace) -> int:
        """Acquire args.url and copy or extract it to args.output."""
        settings = self._effective_settings(args)
        output = Path(args.output)

        async with self._downloader(settings) as downloader:
            request = ArtifactRequest(
                kind=args.kind,
                name=args.name,
                version=args.version,
                filename=(
                    args.filename
                    or downloader.get_filename_from_url(args.url)
                ),
                arch=self._arch(args),
                algorithm=args.algorithm,
            )
            registry = self._session_registry(
                args, downloader, request.filename
            )
            acquirer = ArtifactAcquirer.from_settings(
                downloader, settings, registry
            )
            try:
                async with acquirer.acquire(
                    request, args.url, allow_tofu=not args.no_tofu
                ) as artifact:
                    if args.extract:
                        destination = artifact.extract_to(
                            output, args.members
                        )
                    else:
                        destination = artifact.install_to(output)
            except AcquisitionError as e:
                logger.error("❌ %s", e)
                if e.result is not None:
                    print_result(e.result)
                if e.kind is FailureKind.RETRYABLE:
                    return EXIT_RETRYABLE
                return EXIT_FAILED

        logger.info("✅ %s %s saved to %s", args.name, args.version, destination)
        print_result(artifact.result)
        return exit_code_for(artifact.result)
