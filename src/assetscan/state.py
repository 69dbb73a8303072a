"""Application state: the single store object every operation receives.

``AppState`` owns the asset indexes, the registration marks, observations,
history and statistics, plus the persistence handle and the lock that makes
mutations mutually exclusive. Construct it through ``open_state`` (or
``load_state`` when the store is managed elsewhere).
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiosqlite
import structlog
from pydantic import TypeAdapter, ValidationError

from assetscan.history import HistoryLog
from assetscan.indexes import AssetIndexes, build_indexes
from assetscan.models.asset import Asset
from assetscan.models.scan import UtcDatetime
from assetscan.stats import StatsCache
from assetscan.storage import (
    ASSETS_KEY,
    HISTORY_KEY,
    OBSERVATIONS_KEY,
    REGISTRATIONS_KEY,
    SqliteStore,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from assetscan.config import Settings
    from assetscan.models.inventory import InventoryStats
    from assetscan.protocols import PersistenceProtocol

log = structlog.get_logger()

_assets_adapter = TypeAdapter(list[Asset])
_marks_adapter = TypeAdapter(dict[str, UtcDatetime])
_observations_adapter = TypeAdapter(dict[str, str])


def dump_assets(assets: list[Asset]) -> list[dict[str, Any]]:
    return _assets_adapter.dump_python(assets, mode="json")


def dump_marks(marks: dict[str, datetime]) -> dict[str, str]:
    return {asset_id: ts.isoformat() for asset_id, ts in marks.items()}


@dataclass
class AppState:
    settings: Settings
    store: PersistenceProtocol
    indexes: AssetIndexes = field(default_factory=AssetIndexes)
    # asset_id as imported → registration instant
    marks: dict[str, datetime] = field(default_factory=dict)
    # asset_id → free-text annotation
    observations: dict[str, str] = field(default_factory=dict)
    history: HistoryLog = field(default_factory=HistoryLog)
    stats_cache: StatsCache = field(default_factory=StatsCache)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def rebuild(self, assets: list[Asset] | None = None) -> None:
        """Rebuild every index, from ``assets`` or the current collection."""
        source = self.indexes.assets if assets is None else assets
        self.indexes = build_indexes(source, self.marks)
        self.stats_cache.invalidate()

    def stats(self) -> InventoryStats:
        return self.stats_cache.get(self.indexes, self.marks)


def _validated(adapter: TypeAdapter, raw: Any, default: Any, name: str) -> Any:
    if raw is None:
        return default
    try:
        return adapter.validate_python(raw)
    except ValidationError:
        log.warning("state_load_error", key=name, exc_info=True)
        return default


async def load_state(settings: Settings, store: PersistenceProtocol) -> AppState:
    """Load every persisted value and build the indexes.

    Unreadable values fall back to empty defaults so that a damaged store
    never prevents startup.
    """
    assets = _validated(_assets_adapter, await store.load(ASSETS_KEY), [], ASSETS_KEY)
    marks = _validated(_marks_adapter, await store.load(REGISTRATIONS_KEY), {}, REGISTRATIONS_KEY)
    observations = _validated(
        _observations_adapter, await store.load(OBSERVATIONS_KEY), {}, OBSERVATIONS_KEY
    )
    history = HistoryLog.load(await store.load(HISTORY_KEY), settings.history.capacity)

    state = AppState(
        settings=settings,
        store=store,
        marks=marks,
        observations=observations,
        history=history,
    )
    state.rebuild(assets)
    log.info("state_loaded", assets=len(assets), registrations=len(marks))
    return state


@asynccontextmanager
async def open_state(settings: Settings) -> AsyncIterator[AppState]:
    """Open the SQLite store named by settings and yield a loaded AppState."""
    db_path = Path(settings.storage.db_path).expanduser()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    async with aiosqlite.connect(db_path) as db:
        store = SqliteStore(db)
        await store.init_db()
        state = await load_state(settings, store)
        try:
            yield state
        finally:
            log.info("state_closed", db_path=str(db_path))
