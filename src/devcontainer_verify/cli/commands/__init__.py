"""Command handlers for the devcontainer-verify CLI."""

from devcontainer_verify.cli.commands.arch import ArchHandler
from devcontainer_verify.cli.commands.base import BaseCommandHandler
from devcontainer_verify.cli.commands.check_format import CheckFormatHandler
from devcontainer_verify.cli.commands.fetch import FetchHandler
from devcontainer_verify.cli.commands.verify import VerifyHandler

__all__ = [
    "ArchHandler",
    "BaseCommandHandler",
    "CheckFormatHandler",
    "FetchHandler",
    "VerifyHandler",
]
