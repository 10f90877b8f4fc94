"""Constants shared across devcontainer-verify.

Keeping these in one module lets the logger, config, and verification
layers agree on defaults without importing each other.
"""

from typing import Final, Literal

APP_NAME: Final = "devcontainer-verify"
LOGGER_ROOT: Final = "devcontainer_verify"

# Hash algorithms
HashType = Literal["sha256", "sha512"]
SUPPORTED_HASH_ALGORITHMS: Final[tuple[HashType, ...]] = ("sha256", "sha512")
DEFAULT_HASH_TYPE: Final[HashType] = "sha256"
HASH_HEX_LENGTHS: Final[dict[HashType, int]] = {
    "sha256": 64,
    "sha512": 128,
}
HASH_CHUNK_SIZE: Final = 65536
HEX_CHARS: Final = frozenset("0123456789abcdefABCDEF")

# Artifact kinds accepted by the orchestrator
ArtifactKind = Literal["tool", "language"]
ARTIFACT_KINDS: Final[tuple[str, ...]] = ("tool", "language")

# Pinned checksum database
PINNED_PLACEHOLDER: Final = "placeholder_actual_checksum_needed"
DEFAULT_CHECKSUMS_DB: Final = "/tmp/build-scripts/checksums.json"  # noqa: S108

# Architecture identifiers (dpkg naming)
ARCH_AMD64: Final = "amd64"
ARCH_ARM64: Final = "arm64"
DEFAULT_ARCH: Final = ARCH_AMD64
MACHINE_TO_DPKG_ARCH: Final[dict[str, str]] = {
    "x86_64": ARCH_AMD64,
    "amd64": ARCH_AMD64,
    "aarch64": ARCH_ARM64,
    "arm64": ARCH_ARM64,
    "armv7l": "armhf",
    "armv6l": "armel",
    "i686": "i386",
    "i386": "i386",
    "ppc64le": "ppc64el",
    "s390x": "s390x",
    "riscv64": "riscv64",
}

# Network defaults
DEFAULT_RETRY_ATTEMPTS: Final = 3
DEFAULT_INITIAL_DELAY: Final = 2.0
DEFAULT_MAX_DELAY: Final = 30.0
DEFAULT_TIMEOUT_SECONDS: Final = 10
DEFAULT_VERIFICATION_TIMEOUT_SECONDS: Final = 600
DOWNLOAD_CHUNK_SIZE: Final = 8192
CONTENT_PREVIEW_MAX: Final = 200
GITHUB_HOSTS: Final = frozenset({"github.com", "api.github.com"})

# Workspace
WORKSPACE_PREFIX: Final = "devcontainer-verify-"
WORKSPACE_MODE: Final = 0o700

# Configuration file
CONFIG_DIR_ENV: Final = "DEVCONTAINER_VERIFY_CONFIG_DIR"
CONFIG_FILE_NAME: Final = "settings.conf"
SECTION_DEFAULT: Final = "DEFAULT"
SECTION_NETWORK: Final = "network"
SECTION_VERIFICATION: Final = "verification"

# Logging
DEFAULT_LOG_LEVEL: Final = "INFO"
DEFAULT_CONSOLE_LOG_LEVEL: Final = "INFO"
LOG_FILE_NAME: Final = "devcontainer-verify.log"
LOG_DIR_ENV: Final = "BUILD_LOG_DIR"
LOG_DIR_CANDIDATES: Final[tuple[str, ...]] = (
    "/var/log/container-build",
    "/tmp/container-build",  # noqa: S108
)
LOG_ROTATION_THRESHOLD_BYTES: Final = 10 * 1024 * 1024
LOG_BACKUP_COUNT: Final = 5
LOG_CONSOLE_FORMAT: Final = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_CONSOLE_DATE_FORMAT: Final = "%H:%M:%S"
LOG_FILE_FORMAT: Final = (
    "%(asctime)s - %(name)s - %(levelname)s - "
    "[%(funcName)s:%(lineno)d] - %(message)s"
)
LOG_FILE_DATE_FORMAT: Final = "%Y-%m-%d %H:%M:%S"
LOG_COLORS: Final[dict[str, str]] = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
    "RESET": "\033[0m",
}

# CLI exit codes (verify_download contract)
EXIT_VERIFIED: Final = 0
EXIT_FAILED: Final = 1
EXIT_TRUSTED_ON_FIRST_USE: Final = 2
EXIT_UNSUPPORTED_ARCH: Final = 3
EXIT_RETRYABLE: Final = 4
