"""Application state container.

AppState is created once at server startup (inside the FastMCP lifespan context
manager) and injected into every tool handler via the MCP Context object.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from docindex.config import Settings
    from docindex.models.record import Record
    from docindex.protocols import CacheProtocol, FetcherProtocol, VersionCheckerProtocol


@dataclass
class AppState:
    """Holds all shared runtime state. Passed to every tool handler."""

    settings: Settings

    http_client: httpx.AsyncClient | None = None
    cache: CacheProtocol | None = None
    fetcher: FetcherProtocol | None = None
    version_checker: VersionCheckerProtocol | None = None

    # Current Record set; replaced wholesale by each successful load.
    records: list[Record] = field(default_factory=list)
    content_version: str | None = None
    loaded: bool = False

    # At most one load/refresh runs at a time.
    refresh_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    # Strong references to detached tasks until they finish.
    background_tasks: set[asyncio.Task] = field(default_factory=set)
