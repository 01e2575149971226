"""Protocol interfaces for swappable components.

Refresh logic and AppState reference these protocols, not the concrete
implementations. This allows:
- Tests to use lightweight in-memory implementations
- Other storage backends to be swapped without changing refresh code
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from docindex.models.record import CacheEntry, Record, UpdateCheckMarker


class CacheProtocol(Protocol):
    """Interface for the Record cache backend."""

    async def get(self, *, include_expired: bool = False) -> CacheEntry | None: ...

    async def set(self, entry: CacheEntry) -> None: ...

    def new_entry(self, records: list[Record], content_version: str | None) -> CacheEntry: ...

    async def clear(self) -> None: ...

    async def get_update_marker(self) -> UpdateCheckMarker | None: ...

    async def set_update_marker(self, marker: UpdateCheckMarker) -> None: ...

    async def update_check_is_due(self, interval_hours: float) -> bool: ...


class FetcherProtocol(Protocol):
    """Interface for the HTTP archive fetcher."""

    async def fetch(self, url: str, *, timeout: float = ...) -> bytes: ...


class VersionCheckerProtocol(Protocol):
    """Interface for the remote content version lookup."""

    async def latest_version(self) -> str | None: ...
