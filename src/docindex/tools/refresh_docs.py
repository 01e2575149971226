"""Tool handler for refresh_docs."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from docindex.models.tools import RefreshDocsOutput
from docindex.refresh import force_refresh, load_records

if TYPE_CHECKING:
    from docindex.state import AppState


async def handle(force: bool, state: AppState) -> dict:
    """Handle a refresh_docs tool call.

    Without ``force`` a usable cache is served as-is; with it the archive is
    downloaded again.
    """
    log = structlog.get_logger().bind(tool="refresh_docs", force=force)
    log.info("handler_called")

    result = await (force_refresh(state) if force else load_records(state))
    log.info("refresh_handled", source=result.source, record_count=len(result.records))

    output = RefreshDocsOutput(
        record_count=len(result.records),
        source=result.source,
        content_version=result.content_version,
        error=result.error,
    )
    return output.model_dump(mode="json")
