"""Download service with bounded retries and exponential backoff.

Transient failures (connection errors and resets, timeouts, 5xx
responses) are retried with a doubling delay capped at ``max_delay``.
Client errors (4xx) fail immediately: retrying will not fix a bad URL or
a release that does not exist. Partial files are removed after every
failed attempt.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from contextlib import asynccontextmanager
from http import HTTPStatus
from pathlib import Path
from typing import TYPE_CHECKING, TypeVar
from urllib.parse import urlparse

import aiofiles
import aiohttp

from devcontainer_verify.constants import (
    CONTENT_PREVIEW_MAX,
    DEFAULT_INITIAL_DELAY,
    DEFAULT_MAX_DELAY,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_TIMEOUT_SECONDS,
    DOWNLOAD_CHUNK_SIZE,
    GITHUB_HOSTS,
)
from devcontainer_verify.exceptions import DownloadError
from devcontainer_verify.logger import get_logger

if TYPE_CHECKING:
    from devcontainer_verify.config import Settings

T = TypeVar("T")

logger = get_logger(__name__)


def build_timeout(timeout_seconds: int) -> aiohttp.ClientTimeout:
    """Per-attempt timeout derived from the configured connect timeout."""
    return aiohttp.ClientTimeout(
        total=timeout_seconds * 60,
        sock_read=timeout_seconds * 3,
        sock_connect=timeout_seconds,
    )


@asynccontextmanager
async def create_http_session(
    settings: Settings,
) -> AsyncIterator[aiohttp.ClientSession]:
    """Create the configured HTTP session for one build session.

    Yields:
        Configured aiohttp.ClientSession

    """
    connector = aiohttp.TCPConnector(limit=4, limit_per_host=2)
    async with aiohttp.ClientSession(
        timeout=build_timeout(settings.timeout_seconds),
        connector=connector,
    ) as session:
        yield session


class DownloadService:
    """Fetch files and small text documents with retry logic."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        max_delay: float = DEFAULT_MAX_DELAY,
        timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize download service with HTTP session.

        Args:
            session: aiohttp session for downloads
            retry_attempts: Total attempts per request (at least 1)
            initial_delay: Seconds to wait before the first retry
            max_delay: Upper bound for the doubling delay
            timeout_seconds: Connect timeout; read and total derive from it
            environ: Environment used for GITHUB_TOKEN (os.environ default)

        """
        self.session = session
        self.retry_attempts = max(1, retry_attempts)
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.timeout = build_timeout(timeout_seconds)
        self.environ = os.environ if environ is None else environ

    @classmethod
    def from_settings(
        cls, session: aiohttp.ClientSession, settings: Settings
    ) -> DownloadService:
        """Create a service using the network section of the settings."""
        return cls(
            session,
            retry_attempts=settings.retry_attempts,
            initial_delay=settings.initial_delay,
            max_delay=settings.max_delay,
            timeout_seconds=settings.timeout_seconds,
        )

    async def download_file(self, url: str, dest: Path) -> Path:
        """Download a file from URL to destination with retry logic.

        Args:
            url: URL to download from
            dest: Destination path

        Returns:
            The destination path

        Raises:
            DownloadError: If the download fails; ``retryable`` tells
                whether the failure was transient

        """

        def cleanup() -> None:
            if dest.exists():
                logger.debug("Removing partial download: %s", dest)
                dest.unlink(missing_ok=True)

        async def process(response: aiohttp.ClientResponse) -> Path:
            total = int(response.headers.get("Content-Length", 0))
            dest.parent.mkdir(parents=True, exist_ok=True)

            logger.debug("Downloading file: %s", dest.name)
            logger.debug("   URL: %s", url)
            if total > 0:
                logger.debug("   Size: %s bytes", f"{total:,}")

            written = 0
            async with aiofiles.open(dest, mode="wb") as f:
                async for chunk in response.content.iter_chunked(
                    DOWNLOAD_CHUNK_SIZE
                ):
                    if chunk:
                        await f.write(chunk)
                        written += len(chunk)

            logger.debug("Download completed: %s (%d bytes)", dest, written)
            return dest

        return await self._make_request_with_retry(
            url, process, dest.name, cleanup_callback=cleanup
        )

    async def fetch_text(self, url: str) -> str:
        """Download a small text document (manifest, hash file, page).

        Raises:
            DownloadError: If the request fails

        """

        async def process(response: aiohttp.ClientResponse) -> str:
            try:
                content = await response.text()
            except (UnicodeDecodeError, LookupError) as e:
                msg = f"response is not valid text: {e}"
                raise DownloadError(msg, url, retryable=False) from e
            logger.debug("Fetched %s (%d characters)", url, len(content))
            logger.debug(
                "   Content preview: %s%s",
                content[:CONTENT_PREVIEW_MAX],
                "..." if len(content) > CONTENT_PREVIEW_MAX else "",
            )
            return content

        return await self._make_request_with_retry(url, process, url)

    def get_filename_from_url(self, url: str) -> str:
        """Extract the filename component of a URL."""
        return Path(urlparse(url).path).name

    def _headers_for(self, url: str) -> dict[str, str]:
        headers: dict[str, str] = {}
        token = self.environ.get("GITHUB_TOKEN")
        if token and urlparse(url).hostname in GITHUB_HOSTS:
            headers["Authorization"] = f"token {token}"
        return headers

    async def _check_status(
        self, response: aiohttp.ClientResponse, url: str, description: str
    ) -> str | None:
        """Raise for 4xx, return a failure message for 5xx, None if OK."""
        status = response.status
        if status < HTTPStatus.BAD_REQUEST:
            return None

        reason = response.reason or ""
        if status >= HTTPStatus.INTERNAL_SERVER_ERROR:
            return f"HTTP {status} {reason}".rstrip()

        if status == HTTPStatus.FORBIDDEN:
            body = await response.text(errors="replace")
            if "rate limit" in body.lower():
                logger.warning("⚠️  Rate limit hit for %s", description)
                if not self.environ.get("GITHUB_TOKEN"):
                    logger.warning(
                        "   Set GITHUB_TOKEN to raise the GitHub limit "
                        "from 60 to 5000 requests/hour"
                    )

        logger.error("❌ %s returned HTTP %s %s", description, status, reason)
        msg = f"HTTP {status} {reason}".rstrip()
        raise DownloadError(msg, url, retryable=False, status=status)

    async def _make_request_with_retry(
        self,
        url: str,
        process_callback: Callable[[aiohttp.ClientResponse], Awaitable[T]],
        description: str,
        cleanup_callback: Callable[[], None] | None = None,
    ) -> T:
        """Make HTTP request with retry logic."""
        headers = self._headers_for(url)
        delay = self.initial_delay

        for attempt in range(1, self.retry_attempts + 1):
            try:
                async with self.session.get(
                    url, headers=headers, timeout=self.timeout
                ) as response:
                    failure = await self._check_status(
                        response, url, description
                    )
                    if failure is None:
                        return await process_callback(response)
            except DownloadError:
                if cleanup_callback:
                    cleanup_callback()
                raise
            except aiohttp.InvalidURL as e:
                msg = f"Invalid URL: {e}"
                raise DownloadError(msg, url, retryable=False) from e
            except (aiohttp.ClientError, TimeoutError) as e:
                failure = str(e) or type(e).__name__
            except OSError as e:
                if cleanup_callback:
                    cleanup_callback()
                logger.exception("❌ Writing %s failed", description)
                msg = f"Local I/O error: {e}"
                raise DownloadError(msg, url, retryable=False) from e

            if cleanup_callback:
                cleanup_callback()

            logger.warning(
                "⚠️  Attempt %s/%s failed for %s: %s",
                attempt,
                self.retry_attempts,
                description,
                failure,
            )

            if attempt == self.retry_attempts:
                logger.error(
                    "❌ %s failed after %s attempts",
                    description,
                    self.retry_attempts,
                )
                msg = (
                    f"failed after {self.retry_attempts} attempts: {failure}"
                )
                raise DownloadError(msg, url, retryable=True)

            logger.info("   Retrying in %ss...", delay)
            await asyncio.sleep(delay)
            delay = min(delay * 2, self.max_delay)

        msg = "no download attempts were made"
        raise DownloadError(msg, url, retryable=True)
