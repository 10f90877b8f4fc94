"""Known vendor checksum publication conventions.

Only vendors whose layout is stable enough to hard-code live here;
everything else goes through a registered fetcher.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING

from devcontainer_verify.constants import DEFAULT_HASH_TYPE
from devcontainer_verify.core.verification.fetchers import (
    fetch_go_checksum,
    fetch_individual_hash_file,
    fetch_manifest_hash,
    fetch_ruby_checksum,
)
from devcontainer_verify.logger import get_logger

if TYPE_CHECKING:
    from devcontainer_verify.core.download import DownloadService

logger = get_logger(__name__)


class ManifestStyle(Enum):
    """How a vendor publishes checksums."""

    MANIFEST = "manifest"
    HASH_FILE = "hash_file"
    GO_PAGE = "go_page"
    RUBY_PAGE = "ruby_page"


@dataclass(frozen=True, slots=True)
class ManifestConvention:
    """Where a vendor publishes the checksum for a given release.

    ``url_template`` and ``filename_template`` are ``str.format`` strings
    with ``{version}`` and ``{arch}``; ``arch`` is the vendor token from
    ``arch_map``. A host architecture missing from ``arch_map`` has no
    vendor checksum.
    """

    name: str
    style: ManifestStyle
    url_template: str = ""
    filename_template: str = ""
    arch_map: Mapping[str, str] = field(
        default_factory=lambda: {"amd64": "amd64", "arm64": "arm64"}
    )
    algorithm: str = DEFAULT_HASH_TYPE

    def vendor_arch(self, arch: str) -> str | None:
        return self.arch_map.get(arch)

    def url(self, version: str, arch: str) -> str:
        vendor_arch = self.vendor_arch(arch) or arch
        return self.url_template.format(version=version, arch=vendor_arch)

    def filename(self, version: str, arch: str) -> str:
        vendor_arch = self.vendor_arch(arch) or arch
        return self.filename_template.format(version=version, arch=vendor_arch)

    async def fetch(
        self,
        downloader: DownloadService,
        version: str,
        arch: str,
        filename: str | None = None,
        *,
        template_fallback: bool = True,
    ) -> str | None:
        """Fetch the vendor checksum for version/arch, None if unlisted.

        Manifest lookups use ``filename`` when given. The templated
        release name is tried when no filename is given, or after it
        when ``template_fallback`` is set.

        Raises:
            DownloadError: If the vendor source cannot be retrieved

        """
        vendor_arch = self.vendor_arch(arch)
        if vendor_arch is None:
            logger.debug("   %s publishes no %s build", self.name, arch)
            return None

        if self.style is ManifestStyle.MANIFEST:
            templated = self.filename(version, arch)
            if filename is None:
                return await fetch_manifest_hash(
                    downloader, self.url(version, arch), templated
                )
            fallbacks = (
                (templated,)
                if template_fallback and templated != filename
                else ()
            )
            return await fetch_manifest_hash(
                downloader, self.url(version, arch), filename, fallbacks
            )
        if self.style is ManifestStyle.HASH_FILE:
            return await fetch_individual_hash_file(
                downloader, self.url(version, arch), self.algorithm
            )
        if self.style is ManifestStyle.GO_PAGE:
            page_hash = await fetch_go_checksum(
                downloader, version, vendor_arch
            )
        else:
            page_hash = await fetch_ruby_checksum(downloader, version)
        return page_hash.checksum if page_hash else None


KNOWN_CONVENTIONS: Mapping[str, ManifestConvention] = MappingProxyType(
    {
        "terragrunt": ManifestConvention(
            name="terragrunt",
            style=ManifestStyle.MANIFEST,
            url_template=(
                "https://github.com/gruntwork-io/terragrunt/releases/"
                "download/v{version}/SHA256SUMS"
            ),
            filename_template="terragrunt_linux_{arch}",
        ),
        "nodejs": ManifestConvention(
            name="nodejs",
            style=ManifestStyle.MANIFEST,
            url_template="https://nodejs.org/dist/v{version}/SHASUMS256.txt",
            filename_template="node-v{version}-linux-{arch}.tar.xz",
            arch_map={"amd64": "x64", "arm64": "arm64"},
        ),
        "python": ManifestConvention(
            name="python",
            style=ManifestStyle.HASH_FILE,
            url_template=(
                "https://www.python.org/ftp/python/{version}/"
                "Python-{version}.tgz.sha256"
            ),
            arch_map={"amd64": "amd64", "arm64": "arm64"},
        ),
        "golang": ManifestConvention(
            name="golang",
            style=ManifestStyle.GO_PAGE,
        ),
        "ruby": ManifestConvention(
            name="ruby",
            style=ManifestStyle.RUBY_PAGE,
        ),
    }
)

ALIASES: Mapping[str, str] = MappingProxyType(
    {"node": "nodejs", "go": "golang"}
)


def find_convention(name: str) -> ManifestConvention | None:
    """Return the known convention for a tool or language name."""
    return KNOWN_CONVENTIONS.get(ALIASES.get(name, name))
