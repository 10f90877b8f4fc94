"""Top-level package for devcontainer-verify."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("devcontainer-verify")
except PackageNotFoundError:
    # Fallback for development environments where package isn't installed
    __version__ = "dev"
