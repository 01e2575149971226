"""Record extraction for a single documentation source file.

Two source shapes are understood:

- Markdown pages, optionally led by a ``---`` YAML front matter block.
- YAML definition documents describing one named entity (class, enum, ...)
  plus categorised sub-entries (properties, methods, events, ...).

Extraction is a total function. Parse failures are reported as a diagnostic
on the returned ``ExtractionResult`` and never raised, so one malformed file
cannot abort processing of the archive it came from.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any

import yaml

from docindex.models.record import Category, Record, RecordType

DEFAULT_CONTENT_ROOT = "content/en-us/"
DEFAULT_BASE_URL = "https://create.roblox.com/docs/"

DESCRIPTION_MAX_LENGTH = 200
CONTENT_MAX_LENGTH = 2000
MAX_SUBITEMS_PER_CATEGORY = 50
MAX_KEYWORDS = 10

PAGE_EXTENSION = ".md"
DEFINITION_EXTENSION = ".yaml"
SUPPORTED_EXTENSIONS = (PAGE_EXTENSION, DEFINITION_EXTENSION)

# Ordered: definition documents are scanned key by key in this order.
SUBITEM_KEYS = ("properties", "methods", "events", "callbacks", "items", "functions")

_SUBITEM_TYPES: dict[str, RecordType] = {
    "properties": RecordType.PROPERTY,
    "methods": RecordType.METHOD,
    "events": RecordType.EVENT,
    "callbacks": RecordType.CALLBACK,
    "functions": RecordType.FUNCTION,
}

_SUBITEM_KINDS: dict[str, str] = {
    "properties": "property",
    "methods": "method",
    "events": "event",
    "callbacks": "callback",
    "items": "item",
    "functions": "function",
}

# First match wins; matched against "/<path relative to the content root>".
_CATEGORY_RULES: tuple[tuple[str, Category], ...] = (
    ("/reference/engine/classes/", Category.CLASSES),
    ("/reference/engine/enums/", Category.ENUMS),
    ("/reference/engine/globals/", Category.GLOBALS),
    ("/tutorials/", Category.TUTORIALS),
    ("/scripting/", Category.SCRIPTING),
    ("/art/", Category.ART),
    ("/physics/", Category.PHYSICS),
    ("/ui/", Category.UI),
    ("/sound/", Category.SOUND),
    ("/animation/", Category.ANIMATION),
    ("/lighting/", Category.LIGHTING),
)

_DECLARED_TYPES: dict[str, RecordType] = {
    "class": RecordType.CLASS,
    "service": RecordType.SERVICE,
    "enum": RecordType.ENUM,
    "global": RecordType.GLOBAL,
}

_FRONT_MATTER_RE = re.compile(r"^---\s*\n(.*?)\n---", re.DOTALL)
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")
_NON_WORD_RE = re.compile(r"\W+")
_MEMBER_SEPARATOR_RE = re.compile(r"[:.]")
_DEPRECATED_TAG = "Deprecated"


@dataclass
class ExtractionResult:
    """Records produced from one file, plus a note when something was skipped."""

    records: list[Record] = field(default_factory=list)
    diagnostic: str | None = None


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------


def relative_path(path: str, content_root: str = DEFAULT_CONTENT_ROOT) -> str:
    """Strip everything up to and including the content root.

    ``'creator-docs-main/content/en-us/ui/frames.md'`` → ``'ui/frames.md'``
    """
    index = path.find(content_root)
    if index == -1:
        return path.lstrip("/")
    return path[index + len(content_root) :]


def clean_path(rel_path: str) -> str:
    """Drop a supported extension: ``'ui/frames.md'`` → ``'ui/frames'``."""
    for extension in SUPPORTED_EXTENSIONS:
        if rel_path.endswith(extension):
            return rel_path[: -len(extension)]
    return rel_path


def generate_id(rel_path: str) -> str:
    return _NON_ALNUM_RE.sub("-", clean_path(rel_path).lower())


def page_url(rel_path: str, base_url: str = DEFAULT_BASE_URL) -> str:
    return f"{base_url.rstrip('/')}/{clean_path(rel_path)}"


def humanize_file_name(path: str) -> str:
    """``'reference/getting-started_guide.md'`` → ``'getting started guide'``."""
    name = clean_path(PurePosixPath(path).name)
    return name.replace("-", " ").replace("_", " ")


def category_for_path(rel_path: str) -> Category:
    anchored_path = "/" + rel_path.lstrip("/")
    for fragment, category in _CATEGORY_RULES:
        if fragment in anchored_path:
            return category
    return Category.DOCUMENTATION


def parent_type(declared_type: str | None, rel_path: str) -> RecordType:
    """Resolve a page/definition type, preferring the type the document declares."""
    if declared_type in _DECLARED_TYPES:
        return _DECLARED_TYPES[declared_type]
    anchored_path = "/" + rel_path.lstrip("/")
    if "/tutorials/" in anchored_path:
        return RecordType.TUTORIAL
    if "/reference/" in anchored_path:
        return RecordType.REFERENCE
    return RecordType.GUIDE


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------


def truncate(text: Any, max_length: int = DESCRIPTION_MAX_LENGTH) -> str:
    if not text:
        return ""
    text = str(text)
    if len(text) > max_length:
        return text[:max_length] + "..."
    return text


def generate_keywords(title: str, description: str, rel_path: str) -> tuple[str, ...]:
    """Lowercase tokens of title, description and path, longer than two chars.

    Order of first appearance is kept; at most ``MAX_KEYWORDS`` are returned.
    """
    tokens = [
        *_NON_WORD_RE.split(title.lower()),
        *_NON_WORD_RE.split(description.lower()),
        *clean_path(rel_path).lower().split("/"),
    ]
    unique = dict.fromkeys(token for token in tokens if len(token) > 2)
    return tuple(unique)[:MAX_KEYWORDS]


def member_name(title: str) -> str:
    """Segment after the last ``:`` or ``.``: ``'Part:Clone'`` → ``'Clone'``."""
    return _MEMBER_SEPARATOR_RE.split(title)[-1]


def _member_title(owner: str, name: str, *, owner_is_enum: bool) -> str:
    if owner_is_enum:
        return f"{owner}.{member_name(name)}"
    if ":" in name or "." in name:
        return name
    return f"{owner}.{name}"


def _is_deprecated(entry: dict) -> bool:
    tags = entry.get("tags")
    return isinstance(tags, list) and _DEPRECATED_TAG in tags


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def extract_records(
    path: str,
    content: str,
    *,
    content_root: str = DEFAULT_CONTENT_ROOT,
    base_url: str = DEFAULT_BASE_URL,
) -> ExtractionResult:
    """Turn one source file into zero or more Records.

    ``path`` is the file's path inside the archive. Markdown always yields
    exactly one Record; a definition yields its owner plus one Record per
    retained sub-entry, or nothing when it cannot be parsed.
    """
    rel_path = relative_path(path, content_root)
    if path.endswith(PAGE_EXTENSION):
        return _extract_page(rel_path, content, base_url)
    if path.endswith(DEFINITION_EXTENSION):
        return _extract_definition(rel_path, content, base_url)
    return ExtractionResult(diagnostic=f"unsupported file type: {path}")


def _fallback_page(rel_path: str, base_url: str, diagnostic: str | None) -> ExtractionResult:
    title = humanize_file_name(rel_path)
    record = Record(
        id=generate_id(rel_path),
        title=title,
        category=category_for_path(rel_path),
        keywords=generate_keywords(title, "", rel_path),
        type=parent_type(None, rel_path),
        url=page_url(rel_path, base_url),
    )
    return ExtractionResult(records=[record], diagnostic=diagnostic)


def _extract_page(rel_path: str, content: str, base_url: str) -> ExtractionResult:
    match = _FRONT_MATTER_RE.match(content)
    if match is None:
        return _fallback_page(rel_path, base_url, diagnostic=None)

    # safe_load also raises ValueError for impossible dates such as 2023-02-30
    try:
        metadata = yaml.safe_load(match.group(1))
    except (yaml.YAMLError, ValueError) as exc:
        return _fallback_page(rel_path, base_url, diagnostic=f"invalid front matter: {exc}")
    if not isinstance(metadata, dict):
        return _fallback_page(rel_path, base_url, diagnostic="front matter is not a mapping")

    title = str(metadata.get("title") or humanize_file_name(rel_path))
    description = truncate(metadata.get("description"))
    body = content[match.end() :].strip()

    record = Record(
        id=generate_id(rel_path),
        title=title,
        description=description,
        content=truncate(body, CONTENT_MAX_LENGTH) or None,
        category=category_for_path(rel_path),
        keywords=generate_keywords(title, description, rel_path),
        type=parent_type(None, rel_path),
        url=page_url(rel_path, base_url),
    )
    return ExtractionResult(records=[record])


def _extract_definition(rel_path: str, content: str, base_url: str) -> ExtractionResult:
    try:
        data = yaml.safe_load(content)
    except (yaml.YAMLError, ValueError) as exc:
        return ExtractionResult(diagnostic=f"invalid definition: {exc}")
    if not isinstance(data, dict) or not data.get("name"):
        return ExtractionResult(diagnostic="definition has no name")

    owner = str(data["name"])
    declared_type = str(data.get("type") or "class")
    description = truncate(data.get("summary"))
    category = category_for_path(rel_path)
    base_id = generate_id(rel_path)
    base_page_url = page_url(rel_path, base_url)

    records = [
        Record(
            id=base_id,
            title=owner,
            description=description,
            category=category,
            keywords=generate_keywords(owner, description, rel_path),
            type=parent_type(declared_type, rel_path),
            url=base_page_url,
        )
    ]

    for key in SUBITEM_KEYS:
        entries = data.get(key)
        if not isinstance(entries, list):
            continue
        for entry in entries[:MAX_SUBITEMS_PER_CATEGORY]:
            if not isinstance(entry, dict) or not entry.get("name"):
                continue
            if _is_deprecated(entry):
                continue

            title = _member_title(owner, str(entry["name"]), owner_is_enum=declared_type == "enum")
            summary = truncate(entry.get("summary"))
            records.append(
                Record(
                    id=f"{base_id}-{_NON_ALNUM_RE.sub('-', title.lower())}",
                    title=title,
                    description=summary or f"{_SUBITEM_KINDS[key]} of {owner}",
                    category=category,
                    keywords=generate_keywords(title, summary, rel_path),
                    type=_SUBITEM_TYPES.get(key, RecordType.REFERENCE),
                    url=f"{base_page_url}#{member_name(title)}",
                )
            )

    return ExtractionResult(records=records)
