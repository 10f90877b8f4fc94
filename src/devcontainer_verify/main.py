"""Main CLI entry point for devcontainer-verify.

This module provides the minimal entry point for the command-line
interface, delegating all functionality to the CLI runner and its
command handlers.
"""

import sys
from collections.abc import Sequence

import uvloop

from devcontainer_verify.cli import CLIRunner
from devcontainer_verify.constants import EXIT_FAILED
from devcontainer_verify.logger import flush_all_handlers, get_logger

logger = get_logger(__name__)


async def async_main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI asynchronously and return the exit code."""
    logger.debug("CLI started")
    runner = CLIRunner()
    try:
        code = await runner.run(argv)
    except Exception:
        logger.exception("CLI encountered an error")
        raise
    logger.debug("CLI finished with exit code %s", code)
    return code


def main() -> None:
    """Run the CLI application on the uvloop event loop.

    Exit codes: 0 verified, 1 failed, 2 trusted on first use,
    3 unsupported architecture, 4 retryable download failure.
    """
    try:
        code = uvloop.run(async_main())
    except KeyboardInterrupt:
        logger.info("⏹️  Operation cancelled by user")
        code = EXIT_FAILED
    except Exception:
        logger.exception("❌ Unexpected error")
        code = EXIT_FAILED
    finally:
        flush_all_handlers()
    sys.exit(code)


if __name__ == "__main__":
    main()
