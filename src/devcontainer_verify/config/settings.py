"""Settings manager for the INI configuration file.

Settings come from three layers, later ones winning:
built-in defaults, ``settings.conf``, and the environment variables the
build scripts already export (RETRY_MAX_ATTEMPTS, REQUIRE_VERIFIED_DOWNLOADS,
CHECKSUMS_DB, ...).
"""

import configparser
import logging
import math
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from devcontainer_verify.constants import (
    CONFIG_DIR_ENV,
    CONFIG_FILE_NAME,
    DEFAULT_CHECKSUMS_DB,
    DEFAULT_CONSOLE_LOG_LEVEL,
    DEFAULT_INITIAL_DELAY,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_DELAY,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_VERIFICATION_TIMEOUT_SECONDS,
    SECTION_DEFAULT,
    SECTION_NETWORK,
    SECTION_VERIFICATION,
)

logger = logging.getLogger(__name__)

RawConfigDict = dict[str, str | dict[str, str]]

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})

FILE_HEADER = """\
# devcontainer-verify settings
#
# Environment variables override these values at build time:
#   RETRY_MAX_ATTEMPTS, RETRY_INITIAL_DELAY, RETRY_MAX_DELAY,
#   REQUIRE_VERIFIED_DOWNLOADS (defaults to PRODUCTION_MODE), CHECKSUMS_DB

"""


@dataclass(frozen=True, slots=True)
class Settings:
    """Resolved settings for one build session."""

    log_level: str = DEFAULT_LOG_LEVEL
    console_log_level: str = DEFAULT_CONSOLE_LOG_LEVEL
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    initial_delay: float = DEFAULT_INITIAL_DELAY
    max_delay: float = DEFAULT_MAX_DELAY
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    require_verified: bool = False
    checksums_db: Path = Path(DEFAULT_CHECKSUMS_DB)
    verification_timeout_seconds: int = DEFAULT_VERIFICATION_TIMEOUT_SECONDS


def default_config_dir() -> Path:
    """Return the configuration directory, honoring the env override."""
    env_dir = os.getenv(CONFIG_DIR_ENV)
    if env_dir:
        return Path(env_dir).expanduser()
    return Path.home() / ".config" / "devcontainer-verify"


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


class SettingsManager:
    """Loads and saves ``settings.conf``."""

    def __init__(
        self,
        config_dir: Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize settings manager.

        Args:
            config_dir: Configuration directory
                (defaults to $DEVCONTAINER_VERIFY_CONFIG_DIR or
                ~/.config/devcontainer-verify)
            environ: Environment mapping used for overrides
                (defaults to os.environ)

        """
        self.config_dir = config_dir or default_config_dir()
        self.settings_file = self.config_dir / CONFIG_FILE_NAME
        self.environ = os.environ if environ is None else environ

    def get_default_config(self) -> RawConfigDict:
        """Get default configuration values."""
        return {
            "log_level": DEFAULT_LOG_LEVEL,
            "console_log_level": DEFAULT_CONSOLE_LOG_LEVEL,
            SECTION_NETWORK: {
                "retry_attempts": str(DEFAULT_RETRY_ATTEMPTS),
                "initial_delay": str(DEFAULT_INITIAL_DELAY),
                "max_delay": str(DEFAULT_MAX_DELAY),
                "timeout_seconds": str(DEFAULT_TIMEOUT_SECONDS),
            },
            SECTION_VERIFICATION: {
                "require_verified": "false",
                "checksums_db": DEFAULT_CHECKSUMS_DB,
                "verification_timeout_seconds": str(
                    DEFAULT_VERIFICATION_TIMEOUT_SECONDS
                ),
            },
        }

    def _create_config_from_defaults(
        self, defaults: RawConfigDict
    ) -> configparser.ConfigParser:
        config = configparser.ConfigParser(
            inline_comment_prefixes=("#", ";"),
            interpolation=None,
        )
        flat_defaults = {
            key: str(value)
            for key, value in defaults.items()
            if not isinstance(value, dict)
        }
        config.read_dict({SECTION_DEFAULT: flat_defaults})

        for key, value in defaults.items():
            if isinstance(value, dict):
                config.add_section(key)
                for subkey, subvalue in value.items():
                    config.set(key, subkey, str(subvalue))

        return config

    def load(self) -> Settings:
        """Load settings from file and environment.

        A missing settings file is created from defaults. A file that
        cannot be written (read-only image layers) is not an error.
        """
        defaults = self.get_default_config()
        config = self._create_config_from_defaults(defaults)

        if self.settings_file.exists():
            config.read(self.settings_file, encoding="utf-8")
        else:
            try:
                self.save(config)
            except OSError as e:
                logger.debug(
                    "Could not write default settings to %s: %s",
                    self.settings_file,
                    e,
                )

        return self._to_settings(config)

    def save(self, config: configparser.ConfigParser) -> None:
        """Write configuration to ``settings.conf``."""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        with self.settings_file.open("w", encoding="utf-8") as f:
            f.write(FILE_HEADER)
            config.write(f)

    def _get_number(
        self,
        config: configparser.ConfigParser,
        section: str,
        key: str,
        default: float,
        env_var: str | None = None,
    ) -> float:
        raw = config.get(section, key, fallback=str(default))
        source = f"{section}.{key}"
        if env_var and self.environ.get(env_var):
            raw = self.environ[env_var]
            source = env_var
        try:
            value = float(raw)
        except ValueError:
            logger.warning(
                "Invalid value %r for %s, using default %s",
                raw,
                source,
                default,
            )
            return default
        if not math.isfinite(value):
            logger.warning(
                "Non-finite value %r for %s, using default %s",
                raw,
                source,
                default,
            )
            return default
        if value < 0:
            logger.warning(
                "Negative value %r for %s, using default %s",
                raw,
                source,
                default,
            )
            return default
        return value

    def _require_verified(self, config: configparser.ConfigParser) -> bool:
        env_value = self.environ.get("REQUIRE_VERIFIED_DOWNLOADS")
        if env_value is None:
            env_value = self.environ.get("PRODUCTION_MODE")
        if env_value:
            return _parse_bool(env_value)
        return _parse_bool(
            config.get(SECTION_VERIFICATION, "require_verified", fallback="")
        )

    def _to_settings(self, config: configparser.ConfigParser) -> Settings:
        checksums_db = self.environ.get("CHECKSUMS_DB") or config.get(
            SECTION_VERIFICATION,
            "checksums_db",
            fallback=DEFAULT_CHECKSUMS_DB,
        )
        retry_attempts = max(
            1,
            int(
                self._get_number(
                    config,
                    SECTION_NETWORK,
                    "retry_attempts",
                    DEFAULT_RETRY_ATTEMPTS,
                    "RETRY_MAX_ATTEMPTS",
                )
            ),
        )
        return Settings(
            log_level=config.get(
                SECTION_DEFAULT, "log_level", fallback=DEFAULT_LOG_LEVEL
            ).upper(),
            console_log_level=config.get(
                SECTION_DEFAULT,
                "console_log_level",
                fallback=DEFAULT_CONSOLE_LOG_LEVEL,
            ).upper(),
            retry_attempts=retry_attempts,
            initial_delay=self._get_number(
                config,
                SECTION_NETWORK,
                "initial_delay",
                DEFAULT_INITIAL_DELAY,
                "RETRY_INITIAL_DELAY",
            ),
            max_delay=self._get_number(
                config,
                SECTION_NETWORK,
                "max_delay",
                DEFAULT_MAX_DELAY,
                "RETRY_MAX_DELAY",
            ),
            timeout_seconds=int(
                self._get_number(
                    config,
                    SECTION_NETWORK,
                    "timeout_seconds",
                    DEFAULT_TIMEOUT_SECONDS,
                )
            ),
            require_verified=self._require_verified(config),
            checksums_db=Path(checksums_db).expanduser(),
            verification_timeout_seconds=int(
                self._get_number(
                    config,
                    SECTION_VERIFICATION,
                    "verification_timeout_seconds",
                    DEFAULT_VERIFICATION_TIMEOUT_SECONDS,
                )
            ),
        )
