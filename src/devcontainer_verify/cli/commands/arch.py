"""Arch command handler."""

from argparse import Namespace

from devcontainer_verify.cli.commands.base import BaseCommandHandler
from devcontainer_verify.constants import EXIT_UNSUPPORTED_ARCH
from devcontainer_verify.core.arch import host_architecture, resolve
from devcontainer_verify.logger import get_logger

logger = get_logger(__name__)


class ArchHandler(BaseCommandHandler):
    """Handler for the arch command."""

    async def execute(self, args: Namespace) -> int:
        """Print the vendor token, or exit 3 when the host is unsupported."""
        host_arch = args.host_arch or host_architecture()
        vendor_arch = resolve(args.amd64_name, args.arm64_name, host_arch)
        if not vendor_arch:
            logger.warning(
                "⚠️  Architecture %s is not supported by this tool, skipping",
                host_arch,
            )
            return EXIT_UNSUPPORTED_ARCH

        print(vendor_arch)
        return 0
