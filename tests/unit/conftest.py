"""Unit-specific fixtures (no I/O beyond in-memory SQLite)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import aiosqlite
import pytest

from assetscan.importer import import_assets
from assetscan.state import load_state
from assetscan.storage import SqliteStore

if TYPE_CHECKING:
    from assetscan.config import Settings
    from assetscan.state import AppState


@pytest.fixture()
async def store():
    """In-memory SQLite store for unit tests."""
    async with aiosqlite.connect(":memory:") as db:
        s = SqliteStore(db)
        await s.init_db()
        yield s


@pytest.fixture()
async def state(settings: Settings, store: SqliteStore) -> AppState:
    """Empty AppState backed by the in-memory store."""
    return await load_state(settings, store)


@pytest.fixture()
async def loaded_state(state: AppState, sample_records: list[dict[str, Any]]) -> AppState:
    """AppState with the sample inventory imported."""
    await import_assets(state, sample_records)
    return state
