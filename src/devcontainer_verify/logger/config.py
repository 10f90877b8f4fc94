"""Configuration loading and updating for logging system.

The logger is imported by almost every module, including the config
package, so bootstrap values come from the environment only and config
file levels are applied later through update_logger_from_config().
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

from devcontainer_verify.constants import (
    DEFAULT_CONSOLE_LOG_LEVEL,
    DEFAULT_LOG_LEVEL,
    LOG_DIR_CANDIDATES,
    LOG_DIR_ENV,
    LOG_FILE_NAME,
)

if TYPE_CHECKING:
    from devcontainer_verify.config import Settings
    from devcontainer_verify.logger.state import _LoggerState


def resolve_log_dir() -> Path | None:
    """Pick the build log directory.

    BUILD_LOG_DIR wins when set. Otherwise the first candidate directory
    that can be created is used. Returns None when none is writable, in
    which case only console logging is enabled.
    """
    env_log_dir = os.getenv(LOG_DIR_ENV)
    candidates = [env_log_dir] if env_log_dir else list(LOG_DIR_CANDIDATES)

    for candidate in candidates:
        path = Path(candidate).expanduser()
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError:
            continue
        if os.access(path, os.W_OK):
            return path
    return None


def load_log_settings() -> tuple[str, str, Path | None]:
    """Load bootstrap console level, file level, and file path.

    Environment Variable Override:
        LOG_LEVEL: console level override, mainly for test runs.
        BUILD_LOG_DIR: directory for the log file.

    Returns:
        Tuple of (console_level, file_level, log_path)

    """
    console_level = os.getenv("LOG_LEVEL", DEFAULT_CONSOLE_LOG_LEVEL).upper()
    log_dir = resolve_log_dir()
    log_path = log_dir / LOG_FILE_NAME if log_dir is not None else None
    return console_level, DEFAULT_LOG_LEVEL, log_path


def update_logger_from_config(
    state: "_LoggerState", settings: "Settings | None" = None
) -> None:
    """Update logger handler levels from already-loaded settings.

    Settings are read from settings.conf when not given. Only handler
    levels change; handlers are never added or removed. A settings file
    that cannot be read leaves bootstrap levels in place.
    """
    if settings is None:
        from devcontainer_verify.config import SettingsManager  # noqa: PLC0415

        try:
            settings = SettingsManager().load()
        except (OSError, ValueError) as e:
            logging.getLogger(__name__).debug(
                "Keeping bootstrap log levels: %s", e
            )
            return

    console_level = getattr(
        logging, settings.console_log_level, logging.INFO
    )
    file_level = getattr(logging, settings.log_level, logging.INFO)

    if state.queue_listener is not None:
        for handler in state.queue_listener.handlers:
            if isinstance(handler, RotatingFileHandler):
                handler.setLevel(file_level)
            elif isinstance(handler, logging.StreamHandler):
                handler.setLevel(console_level)

    state.config_applied = True
