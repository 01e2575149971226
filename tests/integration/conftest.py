"""Integration test fixtures.

Provides a fully wired AppState with in-memory SQLite, a real httpx client
and the concrete fetcher and version checker. Remote endpoints are mocked
with respx through the ``remote`` fixture.
"""

from __future__ import annotations

import asyncio

import aiosqlite
import httpx
import pytest
import respx

from docindex.cache import Cache
from docindex.config import Settings
from docindex.fetcher import ArchiveFetcher
from docindex.state import AppState
from docindex.version_check import VersionChecker

ARCHIVE_URL = "https://github.com/Roblox/creator-docs/archive/refs/heads/main.zip"
VERSION_URL = "https://api.github.com/repos/Roblox/creator-docs/commits/main"


@pytest.fixture()
def remote(docs_archive: bytes) -> respx.MockRouter:
    """Mock the archive download and the latest-commit lookup."""
    with respx.mock(assert_all_called=False) as router:
        router.get(ARCHIVE_URL, name="archive").mock(
            return_value=httpx.Response(200, content=docs_archive)
        )
        router.get(VERSION_URL, name="version").mock(
            return_value=httpx.Response(200, json={"sha": "abc123"})
        )
        yield router


@pytest.fixture()
async def app_state() -> AppState:
    """Full AppState wired for integration tests."""
    settings = Settings(
        source={"archive_url": ARCHIVE_URL, "version_url": VERSION_URL},
        archive={"batch_pause_seconds": 0},
    )
    async with aiosqlite.connect(":memory:") as db:
        cache = Cache(db)
        await cache.init_db()

        async with httpx.AsyncClient() as client:
            state = AppState(
                settings=settings,
                http_client=client,
                cache=cache,
                fetcher=ArchiveFetcher(client),
                version_checker=VersionChecker(client, VERSION_URL),
            )
            yield state

            for task in list(state.background_tasks):
                task.cancel()
            await asyncio.gather(*state.background_tasks, return_exceptions=True)
