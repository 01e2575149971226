"""Search ranking.

Pure business logic: receives Records, returns Records. No knowledge of
AppState, MCP, or I/O.

Scoring is a lexical heuristic. The query is matched as one literal,
case-insensitive substring; there is no tokenisation, term frequency or
fuzzy matching.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from docindex.models.record import PRIMARY_CATEGORY, TOP_LEVEL_TYPES

if TYPE_CHECKING:
    from collections.abc import Iterable

    from docindex.models.record import Record

EXACT_MATCH_SCORE = 1000
PREFIX_MATCH_SCORE = 500
SUBSTRING_MATCH_SCORE = 250

DESCRIPTION_MATCH_SCORE = 100
KEYWORD_MATCH_SCORE = 75
CATEGORY_OR_TYPE_MATCH_SCORE = 50

TOP_LEVEL_PRIMARY_MULTIPLIER = 10
PRIMARY_MULTIPLIER = 8

_SEPARATOR_RE = re.compile(r"[:.]")


def score_record(query: str, record: Record) -> int | None:
    """Score one Record against a lowercased, non-empty query.

    Returns ``None`` when no field contains the query.
    """
    title = record.title.lower()
    in_primary = record.category == PRIMARY_CATEGORY

    if query in title:
        if title == query or _SEPARATOR_RE.split(title)[-1] == query:
            base = EXACT_MATCH_SCORE
        elif title.startswith(query):
            base = PREFIX_MATCH_SCORE
        else:
            base = SUBSTRING_MATCH_SCORE

        if in_primary and record.type in TOP_LEVEL_TYPES:
            multiplier = TOP_LEVEL_PRIMARY_MULTIPLIER
        elif in_primary:
            multiplier = PRIMARY_MULTIPLIER
        else:
            multiplier = 1

        # Shorter titles win within a tier
        return base * multiplier - len(record.title)

    # Title missed, fall back to the secondary fields
    if query in record.description.lower():
        base = DESCRIPTION_MATCH_SCORE
    elif any(query in keyword.lower() for keyword in record.keywords):
        base = KEYWORD_MATCH_SCORE
    elif query in record.category.lower() or query in record.type.lower():
        base = CATEGORY_OR_TYPE_MATCH_SCORE
    else:
        return None

    return base * (PRIMARY_MULTIPLIER if in_primary else 1)


def rank(query: str, records: Iterable[Record], limit: int | None = None) -> list[Record]:
    """Return Records matching ``query``, best first, at most ``limit`` of them.

    An empty or whitespace-only query matches nothing. ``limit=None`` returns
    every match. Ordering among equal scores is unspecified.
    """
    needle = query.lower()
    if not needle.strip():
        return []

    scored: list[tuple[int, Record]] = []
    for record in records:
        score = score_record(needle, record)
        if score is not None:
            scored.append((score, record))

    scored.sort(key=lambda pair: pair[0], reverse=True)
    if limit is not None:
        scored = scored[:limit]
    return [record for _, record in scored]
