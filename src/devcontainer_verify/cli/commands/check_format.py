"""Check-format command handler."""

from argparse import Namespace

from devcontainer_verify.cli.commands.base import BaseCommandHandler
from devcontainer_verify.constants import EXIT_FAILED
from devcontainer_verify.core.verification import (
    algorithm_for_digest,
    validate_checksum_format,
)


class CheckFormatHandler(BaseCommandHandler):
    """Handler for the check-format command."""

    async def execute(self, args: Namespace) -> int:
        """Print the digest's algorithm, or exit 1 when malformed."""
        if args.algorithm:
            algorithm = (
                args.algorithm
                if validate_checksum_format(args.digest, args.algorithm)
                else None
            )
        else:
            algorithm = algorithm_for_digest(args.digest)

        if algorithm is None:
            print("invalid")
            return EXIT_FAILED

        print(algorithm)
        return 0
