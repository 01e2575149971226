"""Integration tests for MCP tool handlers.

Tests the full path through each handler: input validation → download and
extraction → ranking → output serialisation. Only the remote endpoints are
mocked.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import httpx
import pytest

from docindex.errors import DocIndexError, ErrorCode
from docindex.server import _serialise_tool_error
from docindex.tools.clear_cache import handle as clear_handle
from docindex.tools.refresh_docs import handle as refresh_handle
from docindex.tools.search_docs import handle as search_handle

if TYPE_CHECKING:
    import respx

    from docindex.state import AppState

RECORD_FIELDS = {"id", "title", "description", "content", "category", "keywords", "type", "url"}


class TestSearchDocsHandler:
    async def test_first_search_loads_and_ranks(
        self, remote: respx.MockRouter, app_state: AppState
    ) -> None:
        result = await search_handle("part", app_state)
        assert result["query"] == "part"
        assert result["total_records"] == 9
        titles = [r["title"] for r in result["results"]]
        assert titles[0] == "Part"
        assert set(titles) == {"Part", "Part.Shape", "Part:Resize", "Part.Touched"}
        assert remote["archive"].call_count == 1

    async def test_output_contains_all_record_fields(
        self, remote: respx.MockRouter, app_state: AppState
    ) -> None:
        result = await search_handle("material", app_state)
        for record in result["results"]:
            assert set(record.keys()) == RECORD_FIELDS

    async def test_member_urls_point_at_anchor(
        self, remote: respx.MockRouter, app_state: AppState
    ) -> None:
        result = await search_handle("touched", app_state)
        top = result["results"][0]
        assert top["title"] == "Part.Touched"
        assert top["type"] == "event"
        assert top["url"] == (
            "https://create.roblox.com/docs/reference/engine/classes/Part#Touched"
        )

    async def test_limit(self, remote: respx.MockRouter, app_state: AppState) -> None:
        result = await search_handle("part", app_state, limit=2)
        assert [r["title"] for r in result["results"]][:1] == ["Part"]
        assert len(result["results"]) == 2

    async def test_second_search_uses_memory(
        self, remote: respx.MockRouter, app_state: AppState
    ) -> None:
        await search_handle("part", app_state)
        await search_handle("wood", app_state)
        assert remote["archive"].call_count == 1

    async def test_query_whitespace_is_literal(
        self, remote: respx.MockRouter, app_state: AppState
    ) -> None:
        result = await search_handle("wood ", app_state)
        assert result["query"] == "wood "
        assert result["results"] == []

        result = await search_handle("wood", app_state)
        assert [r["title"] for r in result["results"]] == ["Material.Wood"]

    async def test_blank_query_returns_nothing(
        self, remote: respx.MockRouter, app_state: AppState
    ) -> None:
        result = await search_handle("   ", app_state)
        assert result["results"] == []
        assert result["total_records"] == 9

    async def test_empty_query_returns_nothing(
        self, remote: respx.MockRouter, app_state: AppState
    ) -> None:
        result = await search_handle("", app_state)
        assert result["results"] == []
        assert result["total_records"] == 9

    async def test_query_over_limit_raises_invalid_input(self, app_state: AppState) -> None:
        with pytest.raises(DocIndexError) as exc_info:
            await search_handle("a" * 501, app_state)
        assert exc_info.value.code == ErrorCode.INVALID_INPUT
        assert exc_info.value.recoverable is False

    async def test_limit_out_of_range_raises_invalid_input(self, app_state: AppState) -> None:
        with pytest.raises(DocIndexError) as exc_info:
            await search_handle("part", app_state, limit=0)
        assert exc_info.value.code == ErrorCode.INVALID_INPUT

    async def test_download_failure_yields_empty_results(
        self, remote: respx.MockRouter, app_state: AppState
    ) -> None:
        remote["archive"].mock(side_effect=httpx.ConnectError("Connection refused"))
        result = await search_handle("part", app_state)
        assert result["results"] == []
        assert result["total_records"] == 0


class TestRefreshDocsHandler:
    async def test_cold_refresh_downloads(
        self, remote: respx.MockRouter, app_state: AppState
    ) -> None:
        result = await refresh_handle(False, app_state)
        assert result == {
            "record_count": 9,
            "source": "network",
            "content_version": "abc123",
            "error": None,
        }

    async def test_refresh_after_load_served_from_cache(
        self, remote: respx.MockRouter, app_state: AppState
    ) -> None:
        await refresh_handle(False, app_state)
        result = await refresh_handle(False, app_state)
        assert result["source"] == "cache"
        assert remote["archive"].call_count == 1

    async def test_force_downloads_again(
        self, remote: respx.MockRouter, app_state: AppState
    ) -> None:
        await refresh_handle(False, app_state)
        result = await refresh_handle(True, app_state)
        assert result["source"] == "network"
        assert remote["archive"].call_count == 2

    async def test_failed_refresh_serves_previous_records(
        self, remote: respx.MockRouter, app_state: AppState
    ) -> None:
        await refresh_handle(False, app_state)
        remote["archive"].mock(return_value=httpx.Response(503))
        result = await refresh_handle(True, app_state)
        assert result["source"] == "stale_cache"
        assert result["record_count"] == 9
        assert "HTTP 503" in result["error"]

    async def test_failed_cold_refresh_reports_no_data(
        self, remote: respx.MockRouter, app_state: AppState
    ) -> None:
        remote["archive"].mock(return_value=httpx.Response(404))
        result = await refresh_handle(False, app_state)
        assert result["source"] == "none"
        assert result["record_count"] == 0
        assert "HTTP 404" in result["error"]

    async def test_version_lookup_failure_still_refreshes(
        self, remote: respx.MockRouter, app_state: AppState
    ) -> None:
        remote["version"].mock(return_value=httpx.Response(403))
        result = await refresh_handle(True, app_state)
        assert result["source"] == "network"
        assert result["content_version"] is None
        assert result["record_count"] == 9

    async def test_invalid_archive_raises(
        self, remote: respx.MockRouter, app_state: AppState
    ) -> None:
        remote["archive"].mock(return_value=httpx.Response(200, text="<html>not a zip</html>"))
        with pytest.raises(DocIndexError) as exc_info:
            await refresh_handle(True, app_state)
        assert exc_info.value.code == ErrorCode.ARCHIVE_INVALID


class TestClearCacheHandler:
    async def test_clear_then_search_downloads_again(
        self, remote: respx.MockRouter, app_state: AppState
    ) -> None:
        await search_handle("part", app_state)
        result = await clear_handle(app_state)
        assert result == {"cleared": True}
        assert app_state.records == []

        await search_handle("part", app_state)
        assert remote["archive"].call_count == 2

    async def test_clear_on_empty_cache(self, app_state: AppState) -> None:
        assert await clear_handle(app_state) == {"cleared": True}


class TestErrorEnvelope:
    def test_serialised_error(self) -> None:
        error = DocIndexError(
            code=ErrorCode.INVALID_INPUT,
            message="query too long",
            suggestion="Shorten the query.",
        )
        result = _serialise_tool_error(error)
        assert result.isError is True
        payload = json.loads(result.content[0].text)
        assert payload == {
            "error": {
                "code": "INVALID_INPUT",
                "message": "query too long",
                "suggestion": "Shorten the query.",
                "recoverable": False,
            }
        }
