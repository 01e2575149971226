from __future__ import annotations

from docindex.models.record import (
    CacheEntry,
    Category,
    Record,
    RecordType,
    UpdateCheckMarker,
)
from docindex.models.tools import (
    ClearCacheOutput,
    RefreshDocsOutput,
    SearchDocsInput,
    SearchDocsOutput,
)

__all__ = [
    # records
    "Record",
    "RecordType",
    "Category",
    # cache
    "CacheEntry",
    "UpdateCheckMarker",
    # tools
    "SearchDocsInput",
    "SearchDocsOutput",
    "RefreshDocsOutput",
    "ClearCacheOutput",
]
