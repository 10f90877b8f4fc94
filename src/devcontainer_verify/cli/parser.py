"""CLI argument parser for devcontainer-verify.

Handles parsing of command-line arguments and provides a clean
interface for defining CLI commands and their options.
"""

import argparse
from argparse import Namespace
from collections.abc import Sequence

from devcontainer_verify.config import Settings
from devcontainer_verify.constants import (
    ARTIFACT_KINDS,
    DEFAULT_HASH_TYPE,
    SUPPORTED_HASH_ALGORITHMS,
)


def parse_arch_map(value: str) -> dict[str, str]:
    """Parse "amd64=x86_64,arm64=aarch64" into a mapping."""
    arch_map: dict[str, str] = {}
    for pair in value.split(","):
        arch, sep, token = pair.strip().partition("=")
        if not sep or not arch.strip() or not token.strip():
            msg = f"expected ARCH=TOKEN, got {pair.strip()!r}"
            raise argparse.ArgumentTypeError(msg)
        arch_map[arch.strip()] = token.strip()
    return arch_map


class CLIParser:
    """Command-line argument parser for devcontainer-verify."""

    def __init__(self, settings: Settings) -> None:
        """Initialize the CLI parser with the loaded settings.

        Args:
            settings: Settings used for option defaults

        """
        self.settings = settings

    def parse_args(self, argv: Sequence[str] | None = None) -> Namespace:
        """Parse command-line arguments.

        Args:
            argv: Arguments to parse (defaults to sys.argv[1:])

        Returns:
            Namespace: Parsed arguments namespace.

        """
        parser = self.build_parser()
        return parser.parse_args(argv)

    def build_parser(self) -> argparse.ArgumentParser:
        """Create the main parser with global options and subcommands."""
        parser = self._create_main_parser()
        self._add_global_options(parser)
        self._add_subcommands(parser)
        return parser

    def _create_main_parser(self) -> argparse.ArgumentParser:
        return argparse.ArgumentParser(
            prog="devcontainer-verify",
            description="Download and verify dev container release artifacts",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  # Verify a downloaded file (exit 0 verified, 2 TOFU, 1 failed)
  %(prog)s verify --kind tool --name terragrunt --version 0.69.1 \\
      --file /tmp/terragrunt_linux_amd64

  # Map the host architecture to a vendor's naming (exit 3 if unsupported)
  %(prog)s arch x86_64 aarch64

  # Download, verify and copy an artifact
  %(prog)s fetch --kind language --name python --version 3.12.7 \\
      --url https://www.python.org/ftp/python/3.12.7/Python-3.12.7.tgz \\
      --output /tmp/Python-3.12.7.tgz

  # Verify against the vendor's checksums.txt and extract one binary
  %(prog)s fetch --name lazygit --version 0.44.1 \\
      --url https://github.com/jesseduffield/lazygit/releases/download/v0.44.1/lazygit_0.44.1_Linux_x86_64.tar.gz \\
      --manifest-url 'https://github.com/jesseduffield/lazygit/releases/download/v{version}/checksums.txt' \\
      --extract --member lazygit --output /usr/local/bin

  # Check a digest's format
  %(prog)s check-format 9f86d081884c7d659a2feaa0c55ad015a3bf4f1b2b0b822cd15d6c15b0f00a08
            """,
        )

    def _add_global_options(self, parser: argparse.ArgumentParser) -> None:
        """Add --version and --verbose to the main parser."""
        parser.add_argument(
            "--version",
            dest="show_version",
            action="store_true",
            help="Show devcontainer-verify version and exit",
        )
        parser.add_argument(
            "--verbose",
            action="store_true",
            help="Show debug logging on the console",
        )

    def _add_subcommands(self, parser: argparse.ArgumentParser) -> None:
        subparsers = parser.add_subparsers(
            dest="command", help="Available commands"
        )

        self._add_verify_command(subparsers)
        self._add_arch_command(subparsers)
        self._add_fetch_command(subparsers)
        self._add_check_format_command(subparsers)

    @staticmethod
    def _add_artifact_options(
        command_parser: argparse.ArgumentParser,
    ) -> None:
        command_parser.add_argument(
            "--kind",
            choices=ARTIFACT_KINDS,
            default="tool",
            help="Artifact kind (selects the pinned database section)",
        )
        command_parser.add_argument(
            "--name", required=True, help="Tool or language name"
        )
        command_parser.add_argument(
            "--version", required=True, help="Version to verify"
        )
        command_parser.add_argument(
            "--arch",
            default=None,
            help="Host architecture in dpkg naming (detected by default)",
        )
        command_parser.add_argument(
            "--filename",
            default=None,
            help="Release filename for manifest lookups",
        )
        command_parser.add_argument(
            "--algorithm",
            choices=SUPPORTED_HASH_ALGORITHMS,
            default=DEFAULT_HASH_TYPE,
            help="Preferred hash algorithm",
        )
        command_parser.add_argument(
            "--require-verified",
            action="store_true",
            default=None,
            help="Fail instead of trusting on first use",
        )

        fetcher_group = command_parser.add_argument_group(
            "published checksum",
            "Register a checksum fetcher for --name. Templates may use "
            "{version} and {arch}.",
        )
        source = fetcher_group.add_mutually_exclusive_group()
        source.add_argument(
            "--manifest-url",
            metavar="TEMPLATE",
            help="URL of a SHA256SUMS-style manifest listing the artifact",
        )
        source.add_argument(
            "--hash-url",
            metavar="TEMPLATE",
            help="URL of a file holding only the artifact's digest",
        )
        fetcher_group.add_argument(
            "--manifest-filename",
            metavar="TEMPLATE",
            help="Name to look up in the manifest (default: --filename)",
        )
        fetcher_group.add_argument(
            "--arch-map",
            type=parse_arch_map,
            default=None,
            metavar="ARCH=TOKEN,...",
            help="Vendor {arch} tokens, e.g. amd64=x86_64,arm64=aarch64",
        )

    def _add_verify_command(self, subparsers) -> None:
        """Add verify command parser."""
        verify_parser = subparsers.add_parser(
            "verify",
            help="Verify a downloaded artifact through the checksum tiers",
        )
        self._add_artifact_options(verify_parser)
        verify_parser.add_argument(
            "--file", required=True, help="Path of the downloaded artifact"
        )

    def _add_arch_command(self, subparsers) -> None:
        """Add arch command parser."""
        arch_parser = subparsers.add_parser(
            "arch",
            help="Print the vendor architecture token for this host",
        )
        arch_parser.add_argument(
            "amd64_name", help="Vendor token used for amd64 builds"
        )
        arch_parser.add_argument(
            "arm64_name", help="Vendor token used for arm64 builds"
        )
        arch_parser.add_argument(
            "--host-arch",
            default=None,
            help="Pretend to be this architecture instead of detecting",
        )

    def _add_fetch_command(self, subparsers) -> None:
        """Add fetch command parser."""
        fetch_parser = subparsers.add_parser(
            "fetch",
            help="Download, verify, and copy an artifact",
        )
        self._add_artifact_options(fetch_parser)
        fetch_parser.add_argument(
            "--url", required=True, help="Artifact download URL"
        )
        fetch_parser.add_argument(
            "--output",
            required=True,
            help="Destination file or directory for the verified artifact",
        )
        fetch_parser.add_argument(
            "--no-tofu",
            action="store_true",
            help="Reject artifacts that could only be trusted on first use",
        )
        fetch_parser.add_argument(
            "--extract",
            action="store_true",
            help="Extract the tar archive into --output instead of copying",
        )
        fetch_parser.add_argument(
            "--member",
            dest="members",
            action="append",
            default=None,
            help="Archive member to extract (repeatable; default: all)",
        )

    def _add_check_format_command(self, subparsers) -> None:
        """Add check-format command parser."""
        check_parser = subparsers.add_parser(
            "check-format",
            help="Check that a digest is well-formed hex of the right length",
        )
        check_parser.add_argument("digest", help="Digest to check")
        check_parser.add_argument(
            "--algorithm",
            choices=SUPPORTED_HASH_ALGORITHMS,
            default=None,
            help="Expected algorithm (inferred from length by default)",
        )
