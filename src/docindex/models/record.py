from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RecordType(StrEnum):
    # Parent-level entries
    CLASS = "class"
    SERVICE = "service"
    ENUM = "enum"
    GLOBAL = "global"
    TUTORIAL = "tutorial"
    GUIDE = "guide"
    REFERENCE = "reference"
    # Member-level entries
    PROPERTY = "property"
    METHOD = "method"
    EVENT = "event"
    CALLBACK = "callback"
    FUNCTION = "function"


class Category(StrEnum):
    CLASSES = "Classes"
    ENUMS = "Enums"
    GLOBALS = "Globals"
    TUTORIALS = "Tutorials"
    SCRIPTING = "Scripting"
    ART = "Art"
    PHYSICS = "Physics"
    UI = "UI"
    SOUND = "Sound"
    ANIMATION = "Animation"
    LIGHTING = "Lighting"
    DOCUMENTATION = "Documentation"


# Category whose class/service entries get ranking priority.
PRIMARY_CATEGORY = Category.CLASSES

TOP_LEVEL_TYPES = frozenset({RecordType.CLASS, RecordType.SERVICE})


class Record(BaseModel):
    """A single searchable documentation unit: a page or a flattened sub-entry.

    Sub-entries keep no reference to their owner. They repeat the owner's
    category and URL base instead.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    content: str | None = None
    category: Category
    keywords: tuple[str, ...] = ()
    type: RecordType
    url: str


class CacheEntry(BaseModel):
    """The single cached Record set, stored under its persisted field names."""

    model_config = ConfigDict(populate_by_name=True)

    records: list[Record] = Field(alias="data")
    content_version: str | None = Field(default=None, alias="sha")
    fetched_at: datetime = Field(alias="timestamp")
    app_version: str

    @field_validator("fetched_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return v if v.tzinfo is not None else v.replace(tzinfo=UTC)


class UpdateCheckMarker(BaseModel):
    """When the remote content version was last checked, and what it was."""

    last_check: datetime
    latest_version: str | None = None

    @field_validator("last_check")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return v if v.tzinfo is not None else v.replace(tzinfo=UTC)
