"""Tool handler for search_docs.

Receives AppState, makes sure Records are loaded, runs the ranker and returns
a structured dict. No MCP or FastMCP imports; server.py handles the MCP
wiring.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from docindex.errors import DocIndexError, ErrorCode
from docindex.models.tools import SearchDocsInput, SearchDocsOutput
from docindex.ranker import rank
from docindex.refresh import ensure_loaded

if TYPE_CHECKING:
    from docindex.state import AppState


async def handle(query: str, state: AppState, limit: int | None = None) -> dict:
    """Handle a search_docs tool call."""
    log = structlog.get_logger().bind(tool="search_docs", query=query)
    log.info("handler_called")

    try:
        validated = SearchDocsInput(
            query=query,
            limit=limit if limit is not None else state.settings.search.max_results,
        )
    except ValidationError as exc:
        raise DocIndexError(
            code=ErrorCode.INVALID_INPUT,
            message=str(exc),
            suggestion="Provide a query of at most 500 characters and a limit between 1 and 200.",
            recoverable=False,
        ) from exc

    records = await ensure_loaded(state)
    results = rank(validated.query, records, validated.limit)
    log.info("search_complete", result_count=len(results), total_records=len(records))

    output = SearchDocsOutput(
        query=validated.query,
        results=results,
        total_records=len(records),
    )
    return output.model_dump(mode="json")
