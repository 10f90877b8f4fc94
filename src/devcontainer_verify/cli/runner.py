"""CLI runner for devcontainer-verify.

Orchestrates the execution of CLI commands by routing parsed
arguments to the appropriate command handlers.
"""

from argparse import Namespace
from collections.abc import Sequence

from devcontainer_verify import __version__
from devcontainer_verify.cli.commands import (
    ArchHandler,
    BaseCommandHandler,
    CheckFormatHandler,
    FetchHandler,
    VerifyHandler,
)
from devcontainer_verify.cli.parser import CLIParser
from devcontainer_verify.config import Settings, SettingsManager
from devcontainer_verify.constants import EXIT_FAILED
from devcontainer_verify.core.verification import FetcherRegistry
from devcontainer_verify.exceptions import DevcontainerVerifyError
from devcontainer_verify.logger import (
    get_logger,
    set_console_level,
    update_logger_from_config,
)

logger = get_logger(__name__)


class CLIRunner:
    """CLI command runner and orchestrator."""

    def __init__(
        self,
        settings: Settings | None = None,
        registry: FetcherRegistry | None = None,
    ) -> None:
        """Initialize CLI runner with shared dependencies.

        Args:
            settings: Pre-loaded settings (read from settings.conf and the
                environment when omitted)
            registry: Fetcher registry for this session

        """
        if settings is None:
            settings = SettingsManager().load()
            update_logger_from_config(settings)
        self.settings = settings
        self.registry = registry if registry is not None else FetcherRegistry()
        self._init_command_handlers()

    def _init_command_handlers(self) -> None:
        self.command_handlers: dict[str, BaseCommandHandler] = {
            "verify": VerifyHandler(self.settings, self.registry),
            "arch": ArchHandler(self.settings, self.registry),
            "fetch": FetchHandler(self.settings, self.registry),
            "check-format": CheckFormatHandler(self.settings, self.registry),
        }

    async def run(self, argv: Sequence[str] | None = None) -> int:
        """Run the CLI application.

        Parses arguments, handles global flags, and routes to the
        appropriate handler.

        Returns:
            Process exit code

        """
        parser = CLIParser(self.settings)
        args = parser.parse_args(argv)

        if args.show_version:
            print(__version__)
            return 0

        if not args.command:
            print("❌ No command specified. Use --help.")
            return EXIT_FAILED

        return await self._execute_command(args)

    async def _execute_command(self, args: Namespace) -> int:
        handler = self.command_handlers[args.command]

        if args.verbose:
            set_console_level("DEBUG")

        try:
            return await handler.execute(args)
        except DevcontainerVerifyError as e:
            logger.error("❌ %s", e)
            return EXIT_FAILED
        finally:
            if args.verbose:
                set_console_level(self.settings.console_log_level)
