from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from docindex.models.record import Record

RefreshSource = Literal["cache", "network", "stale_cache", "none"]


class SearchDocsInput(BaseModel):
    # Kept verbatim: the ranker matches it as one literal substring, surrounding
    # whitespace included. Empty or blank queries return no results.
    query: str = Field(max_length=500)
    limit: int = Field(default=50, ge=1, le=200)


class SearchDocsOutput(BaseModel):
    query: str
    results: list[Record]
    total_records: int


class RefreshDocsOutput(BaseModel):
    record_count: int
    source: RefreshSource
    content_version: str | None
    error: str | None = None


class ClearCacheOutput(BaseModel):
    cleared: bool
