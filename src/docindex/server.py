"""MCP server entrypoint.

Responsibilities (and nothing more):
- Configure structlog
- Create AppState via the FastMCP lifespan context manager
- Register tools
- Start the stdio transport
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from contextlib import asynccontextmanager, suppress
from pathlib import Path
from typing import TYPE_CHECKING

import aiosqlite
import structlog
from mcp.server.fastmcp import Context, FastMCP
from mcp.types import CallToolResult, TextContent

import docindex.tools.clear_cache as t_clear_cache
import docindex.tools.refresh_docs as t_refresh_docs
import docindex.tools.search_docs as t_search_docs
from docindex import __version__
from docindex.cache import Cache
from docindex.config import Settings
from docindex.errors import DocIndexError
from docindex.fetcher import ArchiveFetcher, build_http_client
from docindex.refresh import load_records
from docindex.state import AppState
from docindex.version_check import VersionChecker

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [*shared_processors, structlog.processors.JSONRenderer()]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        # Logs go to stderr; stdout is reserved for the MCP JSON-RPC stream
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


async def _run_initial_load(state: AppState) -> None:
    """Warm the in-memory Record set so the first search does not wait."""
    try:
        result = await load_records(state)
        log.info("initial_load_complete", source=result.source, records=len(result.records))
    except Exception:
        log.warning("initial_load_failed", exc_info=True)


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncGenerator[AppState, None]:
    """Create and tear down all shared resources for the server's lifetime."""
    settings = Settings()
    _setup_logging(settings)

    log.info("server_starting", version=__version__)

    http_client = build_http_client()

    db_path = Path(settings.cache.db_path).expanduser()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    db = await aiosqlite.connect(str(db_path))
    cache = Cache(db, ttl_hours=settings.cache.ttl_hours)
    await cache.init_db()

    state = AppState(
        settings=settings,
        http_client=http_client,
        cache=cache,
        fetcher=ArchiveFetcher(http_client),
        version_checker=VersionChecker(
            http_client,
            settings.source.version_url,
            timeout=settings.source.version_timeout_seconds,
        ),
    )

    initial_load_task = asyncio.create_task(_run_initial_load(state))

    log.info("server_started", version=__version__, archive_url=settings.source.archive_url)

    try:
        yield state
    finally:
        initial_load_task.cancel()
        with suppress(asyncio.CancelledError):
            await initial_load_task
        for task in list(state.background_tasks):
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        await http_client.aclose()
        await db.close()
        log.info("server_stopping")


# ---------------------------------------------------------------------------
# FastMCP instance and tool registration
# ---------------------------------------------------------------------------

mcp = FastMCP("docindex", lifespan=lifespan)
# FastMCP doesn't expose a version kwarg, so set it on the underlying Server
# so the MCP initialize handshake reports our version, not the SDK's.
mcp._mcp_server.version = __version__  # pyright: ignore[reportPrivateUsage]


def _serialise_tool_error(error: DocIndexError) -> CallToolResult:
    """Convert a DocIndexError to the MCP tool error result envelope."""
    return CallToolResult(
        content=[TextContent(type="text", text=json.dumps(error.to_dict()))],
        isError=True,
    )


def _log_tool_error(tool: str, exc: DocIndexError) -> None:
    log.warning(
        "tool_error",
        tool=tool,
        code=exc.code,
        message=exc.message,
        recoverable=exc.recoverable,
    )


@mcp.tool()
async def search_docs(query: str, ctx: Context, limit: int | None = None) -> object:
    """Search the documentation index.

    Matches the query as a case-insensitive substring against titles first,
    then descriptions, keywords, categories and types. Returns the best
    matches and the total number of indexed entries.
    """
    state: AppState = ctx.request_context.lifespan_context
    try:
        return await t_search_docs.handle(query, state, limit=limit)
    except DocIndexError as exc:
        _log_tool_error("search_docs", exc)
        return _serialise_tool_error(exc)
    except Exception:
        log.error("tool_unexpected_error", tool="search_docs", exc_info=True)
        raise


@mcp.tool()
async def refresh_docs(ctx: Context, force: bool = False) -> object:
    """Reload the documentation index, downloading it again when force is set."""
    state: AppState = ctx.request_context.lifespan_context
    try:
        return await t_refresh_docs.handle(force, state)
    except DocIndexError as exc:
        _log_tool_error("refresh_docs", exc)
        return _serialise_tool_error(exc)
    except Exception:
        log.error("tool_unexpected_error", tool="refresh_docs", exc_info=True)
        raise


@mcp.tool()
async def clear_cache(ctx: Context) -> object:
    """Delete the cached documentation index. The next search re-downloads it."""
    state: AppState = ctx.request_context.lifespan_context
    try:
        return await t_clear_cache.handle(state)
    except Exception:
        log.error("tool_unexpected_error", tool="clear_cache", exc_info=True)
        raise


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
