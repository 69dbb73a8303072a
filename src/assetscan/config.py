"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (ASSETSCAN__STORAGE__DB_PATH=/data/inventory.db)
  2. assetscan.yaml         (searched in cwd, then the platform config dir)
  3. Hardcoded defaults

The config file is optional; all fields have sensible defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_DATA_DIR = platformdirs.user_data_dir("assetscan")
_DEFAULT_DB_PATH = str(Path(_DEFAULT_DATA_DIR) / "assetscan.db")


def _find_config_file() -> str | None:
    """Return the path of the first assetscan.yaml found, or None."""
    candidates = [
        Path("assetscan.yaml"),
        Path(platformdirs.user_config_dir("assetscan")) / "assetscan.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class StorageSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    db_path: str = _DEFAULT_DB_PATH


class HistorySettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    capacity: int = Field(default=50, ge=1)


class ScanSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # Longest label accepted from a scan source
    max_id_length: int = Field(default=50, ge=1)


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: ASSETSCAN__HISTORY__CAPACITY=100
        env_prefix="ASSETSCAN__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    storage: StorageSettings = StorageSettings()
    history: HistorySettings = HistorySettings()
    scan: ScanSettings = ScanSettings()
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
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
