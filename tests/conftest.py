"""Shared test fixtures for the docindex test suite."""

from __future__ import annotations

import io
import zipfile
from collections.abc import Callable

import aiosqlite
import pytest

from docindex.cache import Cache
from docindex.models.record import Category, Record, RecordType

ARCHIVE_PREFIX = "creator-docs-main/"

PART_DEFINITION = """\
name: Part
type: class
summary: A physical brick in the world.
properties:
  - name: Part.Shape
    summary: The shape of the part.
  - name: Part.Anchored
    summary: Whether physics acts on the part.
    tags: [Deprecated]
methods:
  - name: Part:Resize
    summary: Changes the size of the part.
events:
  - name: Part.Touched
    summary: Fires when another part touches this one.
"""

MATERIAL_ENUM = """\
name: Material
type: enum
summary: Surface materials.
items:
  - name: Plastic
    summary: Default material.
  - name: Wood
"""

SCRIPTING_PAGE = """\
---
title: Scripting overview
description: How scripts run on the server and the client.
---

# Scripting

Scripts are containers for Luau code.
"""


@pytest.fixture()
def make_archive() -> Callable[[dict[str, str]], bytes]:
    """Build an in-memory ZIP archive from ``{path: text}`` pairs."""

    def _make(files: dict[str, str]) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            for path, text in files.items():
                archive.writestr(ARCHIVE_PREFIX + path, text)
        return buffer.getvalue()

    return _make


@pytest.fixture()
def docs_archive(make_archive: Callable[[dict[str, str]], bytes]) -> bytes:
    """A small creator-docs style archive with pages and definitions.

    Yields 9 Records: Part + 3 members (one deprecated member dropped),
    Material + 2 items, the scripting page and the tutorial page.
    """
    return make_archive(
        {
            "README.md": "# Not content\n",
            "content/en-us/reference/engine/classes/Part.yaml": PART_DEFINITION,
            "content/en-us/reference/engine/enums/Material.yaml": MATERIAL_ENUM,
            "content/en-us/scripting/index.md": SCRIPTING_PAGE,
            "content/en-us/tutorials/first-game.md": "No front matter here.\n",
            "content/en-us/assets/logo.png": "binary",
        }
    )


@pytest.fixture()
def sample_records() -> list[Record]:
    """Minimal Records spanning the ranking categories and types."""
    return [
        Record(
            id="reference-engine-classes-part",
            title="Part",
            description="A physical brick in the world.",
            category=Category.CLASSES,
            keywords=("part", "physical", "brick"),
            type=RecordType.CLASS,
            url="https://create.roblox.com/docs/reference/engine/classes/Part",
        ),
        Record(
            id="reference-engine-classes-part-part-touched",
            title="Part.Touched",
            description="Fires when another part touches this one.",
            category=Category.CLASSES,
            keywords=("part", "touched", "fires"),
            type=RecordType.EVENT,
            url="https://create.roblox.com/docs/reference/engine/classes/Part#Touched",
        ),
        Record(
            id="scripting-index",
            title="Scripting overview",
            description="How scripts run on the server and the client.",
            category=Category.SCRIPTING,
            keywords=("scripting", "overview", "scripts"),
            type=RecordType.GUIDE,
            url="https://create.roblox.com/docs/scripting/index",
        ),
        Record(
            id="tutorials-first-game",
            title="first game",
            category=Category.TUTORIALS,
            keywords=("first", "game", "tutorials"),
            type=RecordType.TUTORIAL,
            url="https://create.roblox.com/docs/tutorials/first-game",
        ),
    ]


@pytest.fixture()
async def cache() -> Cache:
    """Cache over an in-memory SQLite database."""
    async with aiosqlite.connect(":memory:") as db:
        cache = Cache(db, app_version="1.0.0")
        await cache.init_db()
        yield cache
