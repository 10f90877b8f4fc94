"""Verify command handler.

Runs an already-downloaded file through the checksum tiers, prints the
result as JSON and maps it to the installer exit-code contract.
"""

from argparse import Namespace
from pathlib import Path

import orjson

from devcontainer_verify.cli.commands.base import BaseCommandHandler
from devcontainer_verify.constants import (
    EXIT_FAILED,
    EXIT_TRUSTED_ON_FIRST_USE,
    EXIT_VERIFIED,
)
from devcontainer_verify.core.verification import (
    VerificationResult,
    VerificationService,
    VerificationStatus,
)
from devcontainer_verify.logger import get_logger

logger = get_logger(__name__)

EXIT_CODES = {
    VerificationStatus.VERIFIED: EXIT_VERIFIED,
    VerificationStatus.TRUSTED_ON_FIRST_USE: EXIT_TRUSTED_ON_FIRST_USE,
    VerificationStatus.FAILED: EXIT_FAILED,
}


def exit_code_for(result: VerificationResult) -> int:
    """Map a result to 0 (verified), 2 (TOFU) or 1 (failed)."""
    return EXIT_CODES[result.status]


def print_result(result: VerificationResult) -> None:
    print(orjson.dumps(result.to_dict(), option=orjson.OPT_INDENT_2).decode())


class VerifyHandler(BaseCommandHandler):
    """Handler for the verify command."""

    async def execute(self, args: Namespace) -> int:
        """Verify args.file and print the result."""
        settings = self._effective_settings(args)
        artifact_path = Path(args.file)
        async with self._downloader(settings) as downloader:
            registry = self._session_registry(
                args, downloader, args.filename or artifact_path.name
            )
            service = VerificationService.from_settings(
                downloader, settings, registry
            )
            result = await service.verify(
                args.kind,
                args.name,
                args.version,
                artifact_path,
                self._arch(args),
                filename=args.filename,
                algorithm=args.algorithm,
            )

        print_result(result)
        return exit_code_for(result)
