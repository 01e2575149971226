"""Load, refresh and invalidate the in-memory Record set.

A load serves a usable cache immediately and schedules a throttled,
fire-and-forget version check. A newer version found by that check is only
recorded; it is acted on by the next load, which then re-derives the Records
in the foreground. Without a usable cache the archive is downloaded and
processed while the latest version is looked up concurrently.

Transport failures never raise out of this module: the last known good
Record set is served instead, or an empty one. A downloaded archive that
cannot be opened raises DocIndexError and leaves the cache untouched.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from docindex.archive import process_archive
from docindex.errors import DocIndexError
from docindex.models.record import UpdateCheckMarker
from docindex.version_check import is_stale

if TYPE_CHECKING:
    from docindex.models.record import CacheEntry, Record
    from docindex.models.tools import RefreshSource
    from docindex.protocols import CacheProtocol, FetcherProtocol, VersionCheckerProtocol
    from docindex.state import AppState

log = structlog.get_logger()


@dataclass
class RefreshResult:
    records: list[Record]
    source: RefreshSource
    content_version: str | None
    error: str | None = None


def _components(
    state: AppState,
) -> tuple[CacheProtocol, FetcherProtocol, VersionCheckerProtocol]:
    if state.cache is None or state.fetcher is None or state.version_checker is None:
        raise RuntimeError("Cache, fetcher and version checker must be initialized")
    return state.cache, state.fetcher, state.version_checker


def _apply(state: AppState, result: RefreshResult) -> RefreshResult:
    state.records = result.records
    state.content_version = result.content_version
    state.loaded = True
    return result


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


async def load_records(state: AppState) -> RefreshResult:
    """Load Records, preferring the cache. Serialized with other refreshes."""
    async with state.refresh_lock:
        return await _load(state)


async def ensure_loaded(state: AppState) -> list[Record]:
    """Return the current Records, loading them first if nothing has loaded yet."""
    if not state.loaded:
        async with state.refresh_lock:
            if not state.loaded:
                await _load(state)
    return state.records


async def force_refresh(state: AppState) -> RefreshResult:
    """Re-derive Records from a fresh download, ignoring any cached data."""
    async with state.refresh_lock:
        log.info("force_refresh_started")
        return await _fetch_fresh(state)


async def clear_cache(state: AppState) -> None:
    """Drop cached and in-memory Records. Safe to call repeatedly."""
    cache, _, _ = _components(state)
    async with state.refresh_lock:
        await cache.clear()
        state.records = []
        state.content_version = None
        state.loaded = False


# ---------------------------------------------------------------------------
# Load paths
# ---------------------------------------------------------------------------


async def _load(state: AppState) -> RefreshResult:
    cache, _, _ = _components(state)

    cached = await cache.get()
    if cached is None or not cached.records:
        log.info("cache_miss_fetching")
        return await _fetch_fresh(state)

    marker = await cache.get_update_marker()
    recorded_latest = marker.latest_version if marker is not None else None
    if is_stale(cached.content_version, recorded_latest, cache_usable=True):
        log.info(
            "cache_outdated",
            cached_version=cached.content_version,
            latest_version=recorded_latest,
        )
        return await _fetch_fresh(state, fallback=cached)

    log.info("cache_hit", records=len(cached.records), version=cached.content_version)
    result = _apply(state, RefreshResult(cached.records, "cache", cached.content_version))
    await schedule_background_check(state, cached.content_version)
    return result


async def _fetch_fresh(state: AppState, fallback: CacheEntry | None = None) -> RefreshResult:
    cache, fetcher, version_checker = _components(state)
    source = state.settings.source
    archive = state.settings.archive

    # Independent reads: run the version lookup alongside the download.
    latest, payload = await asyncio.gather(
        version_checker.latest_version(),
        fetcher.fetch(source.archive_url, timeout=source.archive_timeout_seconds),
        return_exceptions=True,
    )
    if isinstance(latest, BaseException):
        log.warning("version_check_failed", reason="unexpected_error", exc_info=latest)
        latest = None
    if isinstance(payload, DocIndexError):
        log.warning(
            "archive_fetch_failed",
            code=payload.code,
            message=payload.message,
            recoverable=payload.recoverable,
        )
        return await _fall_back(state, payload.message, fallback)
    if isinstance(payload, BaseException):
        raise payload

    try:
        records = await process_archive(
            payload,
            content_root=source.content_root,
            base_url=source.docs_base_url,
            batch_size=archive.batch_size,
            batch_pause=archive.batch_pause_seconds,
        )
    except DocIndexError as exc:
        log.warning("archive_invalid", code=exc.code, message=exc.message)
        raise

    entry = cache.new_entry(records, latest)
    await cache.set(entry)
    await cache.set_update_marker(
        UpdateCheckMarker(last_check=entry.fetched_at, latest_version=latest)
    )
    log.info("refresh_complete", records=len(records), version=latest)
    return _apply(state, RefreshResult(records, "network", latest))


async def _fall_back(
    state: AppState,
    error: str,
    fallback: CacheEntry | None,
) -> RefreshResult:
    """Serve the last known good Records after a failed download."""
    cache, _, _ = _components(state)

    previous = fallback if fallback is not None else await cache.get(include_expired=True)
    if previous is not None and previous.records:
        log.info("serving_last_known_good", source="cache", records=len(previous.records))
        return _apply(
            state,
            RefreshResult(previous.records, "stale_cache", previous.content_version, error),
        )

    if state.records:
        log.info("serving_last_known_good", source="memory", records=len(state.records))
        return _apply(
            state,
            RefreshResult(state.records, "stale_cache", state.content_version, error),
        )

    log.warning("no_data_available", error=error)
    return _apply(state, RefreshResult([], "none", None, error))


# ---------------------------------------------------------------------------
# Background version check
# ---------------------------------------------------------------------------


async def schedule_background_check(
    state: AppState,
    cached_version: str | None,
) -> asyncio.Task | None:
    """Start a detached version check unless one ran within the check interval.

    The marker is stamped before the task starts, so rapid repeated loads
    trigger at most one check per interval. Returns the task, or ``None``
    when throttled. Callers are not expected to await it.
    """
    cache, _, _ = _components(state)
    interval_hours = state.settings.cache.update_check_interval_hours

    if not await cache.update_check_is_due(interval_hours):
        log.debug("update_check_skipped", reason="not_due")
        return None

    marker = await cache.get_update_marker()
    await cache.set_update_marker(
        UpdateCheckMarker(
            last_check=datetime.now(UTC),
            latest_version=marker.latest_version if marker is not None else None,
        )
    )

    task = asyncio.create_task(_background_update_check(state, cached_version))
    state.background_tasks.add(task)
    task.add_done_callback(state.background_tasks.discard)
    return task


async def _background_update_check(state: AppState, cached_version: str | None) -> None:
    """Record a newer remote version for the next load to act on.

    Fire-and-forget: all exceptions are caught and logged.
    """
    try:
        cache, _, version_checker = _components(state)
        latest = await version_checker.latest_version()
        if not is_stale(cached_version, latest, cache_usable=True):
            log.debug("update_check_complete", update_available=False, latest_version=latest)
            return

        await cache.set_update_marker(
            UpdateCheckMarker(last_check=datetime.now(UTC), latest_version=latest)
        )
        log.info(
            "update_check_complete",
            update_available=True,
            cached_version=cached_version,
            latest_version=latest,
        )
    except Exception:
        log.warning("update_check_failed", exc_info=True)
