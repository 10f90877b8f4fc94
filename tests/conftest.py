"""Pytest configuration and fixtures for devcontainer-verify tests."""

import logging
import os
import tempfile
from pathlib import Path

import aiohttp
import orjson
import pytest
import pytest_asyncio

# The logger initializes on first import; keep its file out of /var/log.
os.environ.setdefault(
    "BUILD_LOG_DIR", tempfile.mkdtemp(prefix="devcontainer-verify-logs-")
)

from devcontainer_verify.config import Settings  # noqa: E402
from devcontainer_verify.core.download import DownloadService  # noqa: E402


@pytest.fixture(autouse=True)
def enable_log_propagation():
    """Enable log propagation for all loggers during tests.

    This allows pytest's caplog fixture to capture logs from all loggers,
    even those created with propagate=False in production code.
    """
    original_propagation = {}
    for name in list(logging.Logger.manager.loggerDict.keys()):
        if name.startswith("devcontainer_verify"):
            logger = logging.getLogger(name)
            original_propagation[name] = logger.propagate
            logger.propagate = True

    yield

    for name, propagate_value in original_propagation.items():
        logger = logging.getLogger(name)
        logger.propagate = propagate_value


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep settings and policy variables from leaking into tests."""
    monkeypatch.setenv("DEVCONTAINER_VERIFY_CONFIG_DIR", str(tmp_path / "cfg"))
    for var in (
        "REQUIRE_VERIFIED_DOWNLOADS",
        "PRODUCTION_MODE",
        "CHECKSUMS_DB",
        "RETRY_MAX_ATTEMPTS",
        "RETRY_INITIAL_DELAY",
        "RETRY_MAX_DELAY",
        "GITHUB_TOKEN",
        "DEVCONTAINER_VERIFY_ARCH",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def artifact(tmp_path) -> Path:
    """A downloaded artifact containing b"hello"."""
    path = tmp_path / "downloads" / "artifact.tar.gz"
    path.parent.mkdir()
    path.write_bytes(b"hello")
    return path


@pytest.fixture
def write_checksums_db(tmp_path):
    """Write a pinned checksum database and return its path."""

    def _write(data) -> Path:
        path = tmp_path / "checksums.json"
        path.write_bytes(orjson.dumps(data))
        return path

    return _write


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings with instant retries and an empty pinned database path."""
    return Settings(
        retry_attempts=3,
        initial_delay=0,
        max_delay=0,
        checksums_db=tmp_path / "checksums.json",
        verification_timeout_seconds=30,
    )


@pytest_asyncio.fixture
async def downloader():
    """DownloadService on a real session; mock HTTP with aioresponses."""
    async with aiohttp.ClientSession() as session:
        yield DownloadService(
            session,
            retry_attempts=3,
            initial_delay=0,
            max_delay=0,
            environ={},
        )
