"""Host architecture detection and vendor architecture mapping.

Vendors name the same CPU architecture differently in release filenames
(``amd64``, ``x86_64``, ``x64``; ``arm64``, ``aarch64``). Installers pass
the vendor's two spellings and get back the one for this host, or an
empty string when the host has no vendor build at all.
"""

from __future__ import annotations

import os
import platform
import shutil
import subprocess

from devcontainer_verify.constants import (
    ARCH_AMD64,
    ARCH_ARM64,
    MACHINE_TO_DPKG_ARCH,
)
from devcontainer_verify.exceptions import UnsupportedArchitectureError
from devcontainer_verify.logger import get_logger

logger = get_logger(__name__)

ARCH_ENV = "DEVCONTAINER_VERIFY_ARCH"


def _dpkg_architecture() -> str | None:
    dpkg = shutil.which("dpkg")
    if dpkg is None:
        return None
    try:
        completed = subprocess.run(  # noqa: S603
            [dpkg, "--print-architecture"],
            check=False,
            text=True,
            capture_output=True,
            timeout=10,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("dpkg architecture query failed: %s", e)
        return None
    if completed.returncode != 0:
        return None
    return completed.stdout.strip() or None


def host_architecture() -> str:
    """Return the host's package-manager architecture identifier.

    Order: $DEVCONTAINER_VERIFY_ARCH, ``dpkg --print-architecture``,
    then ``platform.machine()`` mapped to dpkg naming.
    """
    override = os.getenv(ARCH_ENV)
    if override:
        return override.strip()

    dpkg_arch = _dpkg_architecture()
    if dpkg_arch:
        return dpkg_arch

    machine = platform.machine().lower()
    return MACHINE_TO_DPKG_ARCH.get(machine, machine)


def resolve(
    vendor_amd64_name: str,
    vendor_arm64_name: str,
    host_arch: str | None = None,
) -> str:
    """Map the host architecture to a vendor's naming convention.

    Args:
        vendor_amd64_name: Vendor token used for amd64 builds
        vendor_arm64_name: Vendor token used for arm64 builds
        host_arch: Host architecture (detected when omitted)

    Returns:
        The vendor token, or "" when the host architecture is unsupported.
        Callers treat "" as a skip, never as an error.

    """
    arch = host_arch if host_arch is not None else host_architecture()
    if arch == ARCH_AMD64:
        return vendor_amd64_name
    if arch == ARCH_ARM64:
        return vendor_arm64_name

    logger.debug("No vendor architecture for host architecture %s", arch)
    return ""


def resolve_or_raise(
    vendor_amd64_name: str,
    vendor_arm64_name: str,
    host_arch: str | None = None,
    tool_name: str | None = None,
) -> str:
    """Same as resolve() but raises UnsupportedArchitectureError on skip."""
    arch = host_arch if host_arch is not None else host_architecture()
    vendor_arch = resolve(vendor_amd64_name, vendor_arm64_name, arch)
    if not vendor_arch:
        msg = f"no build available for architecture {arch}"
        raise UnsupportedArchitectureError(msg, tool_name)
    return vendor_arch
