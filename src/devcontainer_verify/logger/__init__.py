"""Logging utilities for devcontainer-verify.

This package provides structured logging with:
- Colored console output, message-only for INFO lines
- File rotation under the build log directory (BUILD_LOG_DIR)
- QueueHandler/QueueListener so async downloads never block on log I/O
- Hierarchical logger naming (e.g., devcontainer_verify.core.download)

Usage:
    >>> from devcontainer_verify.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Verifying %s %s", name, version)

Environment Variables:
    LOG_LEVEL: Override console log level
    BUILD_LOG_DIR: Directory for devcontainer-verify.log

Rules:
    1. Always use: logger = get_logger(__name__)
    2. Never call logging.basicConfig()
    3. Never attach handlers to child loggers
    4. Use %-formatting in log calls, never f-strings
"""

from typing import TYPE_CHECKING

from devcontainer_verify.logger.config import (
    update_logger_from_config as _update_config,
)
from devcontainer_verify.logger.formatters import (
    ColoredConsoleFormatter,
    HybridConsoleFormatter,
    SimpleConsoleFormatter,
)
from devcontainer_verify.logger.handlers import ConfigurationError
from devcontainer_verify.logger.logger import (
    clear_logger_state,
    flush_all_handlers,
    get_logger,
    set_console_level,
    setup_logging,
)
from devcontainer_verify.logger.state import get_state

if TYPE_CHECKING:
    from devcontainer_verify.config import Settings

__all__ = [
    "ColoredConsoleFormatter",
    "ConfigurationError",
    "HybridConsoleFormatter",
    "SimpleConsoleFormatter",
    "clear_logger_state",
    "flush_all_handlers",
    "get_logger",
    "set_console_level",
    "setup_logging",
    "update_logger_from_config",
]


def update_logger_from_config(settings: "Settings | None" = None) -> None:
    """Update logger handler levels from settings (settings.conf if None)."""
    _update_config(get_state(), settings)
