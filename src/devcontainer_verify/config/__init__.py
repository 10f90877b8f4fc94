"""Configuration for devcontainer-verify."""

from devcontainer_verify.config.settings import (
    Settings,
    SettingsManager,
    default_config_dir,
)

__all__ = ["Settings", "SettingsManager", "default_config_dir"]
