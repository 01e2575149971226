"""Tool handler for clear_cache."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from docindex.models.tools import ClearCacheOutput
from docindex.refresh import clear_cache

if TYPE_CHECKING:
    from docindex.state import AppState


async def handle(state: AppState) -> dict:
    """Handle a clear_cache tool call."""
    structlog.get_logger().bind(tool="clear_cache").info("handler_called")
    await clear_cache(state)
    return ClearCacheOutput(cleared=True).model_dump(mode="json")
