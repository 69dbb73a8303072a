"""Integration test fixtures.

Tests here go through ``open_state`` against a file-backed SQLite database,
so they exercise the same startup and reload path as a real deployment.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from assetscan.config import Settings

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "nested" / "assetscan.db"


@pytest.fixture()
def file_settings(db_path: Path) -> Settings:
    return Settings(storage={"db_path": str(db_path)})
