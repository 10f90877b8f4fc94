"""Artifact acquisition: download, verify, and stage in one step.

Installers only ever see an artifact that has passed verification, inside
a private workspace that disappears when they are done with it.
"""

from __future__ import annotations

import shutil
import tarfile
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING

from devcontainer_verify.constants import WORKSPACE_PREFIX
from devcontainer_verify.core.verification.results import (
    ArtifactRequest,
    VerificationResult,
    VerificationStatus,
)
from devcontainer_verify.core.verification.service import VerificationService
from devcontainer_verify.core.workspace import secure_workspace
from devcontainer_verify.exceptions import (
    AcquisitionError,
    DownloadError,
    FailureKind,
)
from devcontainer_verify.logger import get_logger

if TYPE_CHECKING:
    from devcontainer_verify.config import Settings
    from devcontainer_verify.core.download import DownloadService
    from devcontainer_verify.core.verification.registry import (
        FetcherRegistry,
    )

logger = get_logger(__name__)


@dataclass(slots=True, frozen=True)
class AcquiredArtifact:
    """A downloaded artifact that passed verification."""

    path: Path
    result: VerificationResult

    def _ensure_passed(self) -> None:
        if not self.result.passed:
            msg = "artifact did not pass verification"
            raise AcquisitionError(
                msg, self.path.name, kind=FailureKind.FATAL, result=self.result
            )

    def install_to(self, destination: Path) -> Path:
        """Copy the artifact out of the workspace before it is removed."""
        self._ensure_passed()
        destination = Path(destination)
        if destination.is_dir():
            destination = destination / self.path.name
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(self.path, destination)
        logger.debug("Copied %s to %s", self.path.name, destination)
        return destination

    def extract_to(
        self, destination: Path, members: Sequence[str] | None = None
    ) -> Path:
        """Extract the artifact as a tar archive (any compression).

        Members go through tarfile's "data" filter, so absolute paths,
        ``..`` components and links pointing outside ``destination`` are
        refused.

        Args:
            destination: Directory to extract into (created if missing)
            members: Member names to extract; everything when omitted

        Returns:
            The destination directory

        Raises:
            AcquisitionError: If the result did not pass verification, the
                file is not a readable tar archive, or a member is missing
                or unsafe

        """
        self._ensure_passed()
        destination = Path(destination)
        destination.mkdir(parents=True, exist_ok=True)
        try:
            with tarfile.open(self.path, "r:*") as archive:
                selected = (
                    [archive.getmember(name) for name in members]
                    if members is not None
                    else None
                )
                archive.extractall(
                    destination, members=selected, filter="data"
                )
        except KeyError as e:
            msg = f"archive member not found: {e}"
            raise AcquisitionError(msg, self.path.name) from e
        except (tarfile.TarError, OSError) as e:
            msg = f"cannot extract archive: {e}"
            raise AcquisitionError(msg, self.path.name) from e

        logger.debug("Extracted %s to %s", self.path.name, destination)
        return destination


class ArtifactAcquirer:
    """Downloads artifacts into a secure workspace and verifies them."""

    def __init__(
        self,
        downloader: DownloadService,
        verifier: VerificationService,
        *,
        workspace_base: Path | None = None,
    ) -> None:
        self.downloader = downloader
        self.verifier = verifier
        self.workspace_base = workspace_base

    @classmethod
    def from_settings(
        cls,
        downloader: DownloadService,
        settings: Settings,
        registry: FetcherRegistry | None = None,
    ) -> ArtifactAcquirer:
        """Create an acquirer with a verifier built from the settings."""
        verifier = VerificationService.from_settings(
            downloader, settings, registry
        )
        return cls(downloader, verifier)

    @asynccontextmanager
    async def acquire(
        self,
        request: ArtifactRequest,
        url: str,
        *,
        allow_tofu: bool = True,
    ) -> AsyncIterator[AcquiredArtifact]:
        """Download and verify an artifact, yielding it while in scope.

        Args:
            request: What is being installed
            url: Where to download it from
            allow_tofu: Accept TRUSTED_ON_FIRST_USE results

        Yields:
            AcquiredArtifact inside a workspace removed on exit

        Raises:
            AcquisitionError: ``kind`` is RETRYABLE when the download ran
                out of retries on a transient error, FATAL otherwise

        """
        filename = Path(request.filename).name
        if filename in ("", ".", ".."):
            msg = f"invalid artifact filename {request.filename!r}"
            raise AcquisitionError(msg, request.name, kind=FailureKind.FATAL)
        if filename != request.filename:
            logger.warning(
                "⚠️  Saving %s as %s inside the workspace",
                request.filename,
                filename,
            )
            request = replace(request, filename=filename)

        with secure_workspace(
            prefix=f"{WORKSPACE_PREFIX}{request.name.replace('/', '_')}-",
            base_dir=self.workspace_base,
        ) as workspace:
            artifact_path = workspace / request.filename
            if artifact_path.resolve().parent != workspace.resolve():
                msg = f"artifact path escapes the workspace: {artifact_path}"
                raise AcquisitionError(
                    msg, request.name, kind=FailureKind.FATAL
                )

            logger.info(
                "📦 Downloading %s %s (%s)",
                request.name,
                request.version,
                request.filename,
            )
            try:
                await self.downloader.download_file(url, artifact_path)
            except DownloadError as e:
                raise AcquisitionError(
                    str(e), request.name, kind=e.kind
                ) from e

            result = await self.verifier.verify_request(
                request, artifact_path
            )
            if result.status is VerificationStatus.FAILED:
                msg = f"verification failed: {result.details}"
                raise AcquisitionError(
                    msg, request.name, kind=FailureKind.FATAL, result=result
                )
            if (
                result.status is VerificationStatus.TRUSTED_ON_FIRST_USE
                and not allow_tofu
            ):
                msg = "no trusted checksum available"
                raise AcquisitionError(
                    msg, request.name, kind=FailureKind.FATAL, result=result
                )

            yield AcquiredArtifact(artifact_path, result)
