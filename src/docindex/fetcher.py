"""HTTP archive fetcher.

All network I/O for downloading the documentation archive goes through a
single ArchiveFetcher. It receives an httpx.AsyncClient via constructor
injection; the server lifespan owns the client lifecycle.
"""

from __future__ import annotations

import asyncio

import httpx
import structlog

from docindex import __version__
from docindex.errors import DocIndexError, ErrorCode

log = structlog.get_logger()

DEFAULT_ARCHIVE_TIMEOUT_SECONDS = 60.0


def build_http_client() -> httpx.AsyncClient:
    """Create the shared httpx client. Called once at startup."""
    return httpx.AsyncClient(
        # GitHub archive URLs redirect to codeload.github.com
        follow_redirects=True,
        timeout=httpx.Timeout(30.0),
        headers={"User-Agent": f"docindex/{__version__}"},
        limits=httpx.Limits(
            max_connections=10,
            max_keepalive_connections=5,
        ),
    )


class ArchiveFetcher:
    """Downloads archive payloads with a hard bound on total duration."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def fetch(self, url: str, *, timeout: float = DEFAULT_ARCHIVE_TIMEOUT_SECONDS) -> bytes:
        """Return the raw response body of ``url``.

        Raises DocIndexError with ARCHIVE_FETCH_FAILED for network errors and
        timeouts, and ARCHIVE_HTTP_ERROR for non-2xx responses.
        """
        try:
            response = await asyncio.wait_for(
                self._client.get(url, timeout=timeout),
                timeout=timeout,
            )
        except TimeoutError as exc:
            raise DocIndexError(
                code=ErrorCode.ARCHIVE_FETCH_FAILED,
                message=f"Timed out after {timeout:g}s downloading {url}",
                suggestion="Check your internet connection and try again.",
                recoverable=True,
            ) from exc
        except httpx.HTTPError as exc:
            raise DocIndexError(
                code=ErrorCode.ARCHIVE_FETCH_FAILED,
                message=f"Network error downloading {url}: {exc}",
                suggestion="Check your internet connection and try again.",
                recoverable=True,
            ) from exc

        if not response.is_success:
            status = response.status_code
            raise DocIndexError(
                code=ErrorCode.ARCHIVE_HTTP_ERROR,
                message=f"HTTP {status} downloading {url}",
                suggestion="The documentation source may be temporarily unavailable.",
                recoverable=status >= 500 or status in {408, 429},
            )

        log.info(
            "fetch_complete",
            url=url,
            status_code=response.status_code,
            size=len(response.content),
        )
        return response.content
