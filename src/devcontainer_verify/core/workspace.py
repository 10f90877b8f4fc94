"""Private, self-cleaning staging directories for artifact downloads."""

from __future__ import annotations

import os
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from devcontainer_verify.constants import WORKSPACE_MODE, WORKSPACE_PREFIX
from devcontainer_verify.logger import get_logger

logger = get_logger(__name__)


@contextmanager
def secure_workspace(
    prefix: str = WORKSPACE_PREFIX,
    base_dir: Path | None = None,
) -> Iterator[Path]:
    """Yield a fresh 0700 directory and remove it on every exit path.

    Each artifact gets its own directory so residue from an earlier
    failed extraction can never be picked up by a later verification.

    Args:
        prefix: Directory name prefix
        base_dir: Parent directory (system temp dir when omitted)

    Yields:
        Path to the workspace directory

    """
    workspace = Path(
        tempfile.mkdtemp(
            prefix=prefix,
            dir=str(base_dir) if base_dir is not None else None,
        )
    )
    os.chmod(workspace, WORKSPACE_MODE)
    logger.debug("Created workspace %s", workspace)
    try:
        yield workspace
    finally:
        shutil.rmtree(workspace, ignore_errors=True)
        if workspace.exists():
            logger.warning("⚠️  Workspace could not be removed: %s", workspace)
        else:
            logger.debug("Removed workspace %s", workspace)
