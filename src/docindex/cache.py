"""SQLite documentation cache: one Record-set slot plus an update-check marker.

All cache operations catch ``aiosqlite.Error`` internally and degrade
gracefully: read failures return ``None`` (treated as cache miss by callers),
write failures are logged and ignored. A stored value that no longer
deserializes is also a miss. Infrastructure errors never cross the Cache
class boundary.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import aiosqlite
import structlog
from pydantic import ValidationError

from docindex import __version__
from docindex.models.record import CacheEntry, UpdateCheckMarker

if TYPE_CHECKING:
    from docindex.models.record import Record

log = structlog.get_logger()

DATA_KEY = "docs-data"
UPDATE_CHECK_KEY = "docs-last-update-check"
DEFAULT_TTL_HOURS = 24

_CREATE_KV_TABLE = """
CREATE TABLE IF NOT EXISTS kv_store (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
)
"""


class Cache:
    """SQLite-backed Record cache implementing CacheProtocol.

    ``app_version`` is the running package version. An entry written by a
    different version is ignored, since extraction output may have changed.
    """

    def __init__(
        self,
        db: aiosqlite.Connection,
        *,
        ttl_hours: int = DEFAULT_TTL_HOURS,
        app_version: str = __version__,
    ) -> None:
        self._db = db
        self._ttl = timedelta(hours=ttl_hours)
        self._app_version = app_version

    async def init_db(self) -> None:
        """Create tables and set WAL mode. Called once at startup."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute(_CREATE_KV_TABLE)
        await self._db.commit()

    # ------------------------------------------------------------------
    # Record set
    # ------------------------------------------------------------------

    async def get(self, *, include_expired: bool = False) -> CacheEntry | None:
        """Read the cached Record set.

        Returns ``None`` on miss, read failure, corrupt data, version tag
        mismatch, or expiry. ``include_expired`` keeps expired entries, for
        use as last-known-good data when a refresh fails.
        """
        raw = await self._read(DATA_KEY)
        if raw is None:
            return None

        try:
            entry = CacheEntry.model_validate_json(raw)
        except ValidationError:
            log.warning("cache_entry_corrupt", key=DATA_KEY, exc_info=True)
            return None

        if entry.app_version != self._app_version:
            log.info(
                "cache_version_mismatch",
                cached_app_version=entry.app_version,
                app_version=self._app_version,
            )
            return None

        age = datetime.now(UTC) - entry.fetched_at
        if age > self._ttl and not include_expired:
            log.info("cache_expired", age_hours=round(age.total_seconds() / 3600, 1))
            return None

        return entry

    async def set(self, entry: CacheEntry) -> None:
        """Replace the cached Record set. Non-fatal on failure."""
        await self._write(DATA_KEY, entry.model_dump_json(by_alias=True))

    def new_entry(self, records: list[Record], content_version: str | None) -> CacheEntry:
        """Build an entry stamped with the current time and running version."""
        return CacheEntry(
            records=records,
            content_version=content_version,
            fetched_at=datetime.now(UTC),
            app_version=self._app_version,
        )

    async def clear(self) -> None:
        """Remove the Record set and update-check marker. Non-fatal on failure."""
        try:
            await self._db.execute(
                "DELETE FROM kv_store WHERE key IN (?, ?)", (DATA_KEY, UPDATE_CHECK_KEY)
            )
            await self._db.commit()
            log.info("cache_cleared")
        except aiosqlite.Error:
            log.warning("cache_clear_error", exc_info=True)

    # ------------------------------------------------------------------
    # Update-check marker
    # ------------------------------------------------------------------

    async def get_update_marker(self) -> UpdateCheckMarker | None:
        raw = await self._read(UPDATE_CHECK_KEY)
        if raw is None:
            return None
        try:
            return UpdateCheckMarker.model_validate_json(raw)
        except ValidationError:
            log.warning("cache_entry_corrupt", key=UPDATE_CHECK_KEY, exc_info=True)
            return None

    async def set_update_marker(self, marker: UpdateCheckMarker) -> None:
        await self._write(UPDATE_CHECK_KEY, marker.model_dump_json())

    async def update_check_is_due(self, interval_hours: float) -> bool:
        """Return True if interval_hours have elapsed since the last version check.

        Falls through to True when the marker is missing or unreadable.
        """
        marker = await self.get_update_marker()
        if marker is None:
            return True
        return datetime.now(UTC) - marker.last_check >= timedelta(hours=interval_hours)

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    async def _read(self, key: str) -> str | None:
        try:
            cursor = await self._db.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
            row = await cursor.fetchone()
        except aiosqlite.Error:
            log.warning("cache_read_error", key=key, exc_info=True)
            return None
        return None if row is None else row[0]

    async def _write(self, key: str, value: str) -> None:
        try:
            await self._db.execute(
                "INSERT OR REPLACE INTO kv_store (key, value) VALUES (?, ?)", (key, value)
            )
            await self._db.commit()
        except aiosqlite.Error:
            log.warning("cache_write_error", key=key, exc_info=True)
