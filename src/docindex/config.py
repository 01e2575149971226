"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (DOCINDEX__CACHE__TTL_HOURS=12)
  2. docindex.yaml          (searched in cwd, then platform config dir)
  3. Hardcoded defaults

The config file is optional; all fields have sensible defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_DATA_DIR = platformdirs.user_data_dir("docindex")
_DEFAULT_DB_PATH = str(Path(_DEFAULT_DATA_DIR) / "cache.db")


def _find_config_file() -> str | None:
    """Return the path of the first docindex.yaml found, or None."""
    candidates = [
        Path("docindex.yaml"),
        Path(platformdirs.user_config_dir("docindex")) / "docindex.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class SourceSettings(BaseModel):
    archive_url: str = "https://github.com/Roblox/creator-docs/archive/refs/heads/main.zip"
    version_url: str = "https://api.github.com/repos/Roblox/creator-docs/commits/main"
    content_root: str = "content/en-us/"
    docs_base_url: str = "https://create.roblox.com/docs/"
    archive_timeout_seconds: float = 60.0
    version_timeout_seconds: float = 10.0


class ArchiveSettings(BaseModel):
    batch_size: int = Field(default=25, ge=1)
    batch_pause_seconds: float = Field(default=0.01, ge=0.0)


class CacheSettings(BaseModel):
    ttl_hours: int = 24
    update_check_interval_hours: float = 1.0
    db_path: str = _DEFAULT_DB_PATH


class SearchSettings(BaseModel):
    max_results: int = Field(default=50, ge=1, le=200)


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: DOCINDEX__ARCHIVE__BATCH_SIZE=50
        env_prefix="DOCINDEX__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    source: SourceSettings = SourceSettings()
    archive: ArchiveSettings = ArchiveSettings()
    cache: CacheSettings = CacheSettings()
    search: SearchSettings = SearchSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(settings_cls),
            # dotenv and file secrets are not consulted
        )
