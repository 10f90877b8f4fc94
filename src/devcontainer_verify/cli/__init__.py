"""Command-line interface for devcontainer-verify."""

from devcontainer_verify.cli.runner import CLIRunner

__all__ = ["CLIRunner"]
