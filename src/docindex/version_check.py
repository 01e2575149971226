"""Remote content version lookup and staleness rules."""

from __future__ import annotations

import asyncio

import httpx
import structlog

log = structlog.get_logger()

DEFAULT_VERSION_TIMEOUT_SECONDS = 10.0


class VersionChecker:
    """Looks up the identifier of the latest remote content (a commit SHA).

    Never raises: every failure mode resolves to ``None``, meaning "unknown".
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        *,
        timeout: float = DEFAULT_VERSION_TIMEOUT_SECONDS,
    ) -> None:
        self._client = client
        self._url = url
        self._timeout = timeout

    async def latest_version(self) -> str | None:
        try:
            response = await asyncio.wait_for(
                self._client.get(
                    self._url,
                    timeout=self._timeout,
                    headers={"Accept": "application/vnd.github+json"},
                ),
                timeout=self._timeout,
            )
        except TimeoutError:
            log.warning("version_check_failed", reason="timeout", timeout=self._timeout)
            return None
        except httpx.HTTPError as exc:
            log.warning("version_check_failed", reason="network_error", error=str(exc))
            return None

        if not response.is_success:
            log.warning(
                "version_check_failed", reason="http_status", status_code=response.status_code
            )
            return None

        try:
            sha = response.json()["sha"]
        except (ValueError, KeyError, TypeError):
            log.warning("version_check_failed", reason="invalid_payload", exc_info=True)
            return None
        if not isinstance(sha, str) or not sha:
            log.warning("version_check_failed", reason="invalid_payload")
            return None

        log.debug("version_check_complete", version=sha)
        return sha


def is_stale(
    cached_version: str | None,
    latest_version: str | None,
    *,
    cache_usable: bool,
) -> bool:
    """Decide whether cached content should be re-derived.

    With no usable cache (foreground), anything short of a confirmed match is
    stale, including an unknown latest version. Beside a usable cache
    (background), only a known, different latest version counts; an unknown
    result is a no-op.
    """
    if cache_usable:
        return latest_version is not None and latest_version != cached_version
    if latest_version is None or cached_version is None:
        return True
    return latest_version != cached_version
