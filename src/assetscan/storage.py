"""SQLite key-value store for the registry's persisted values.

Every value is stored as a JSON document under a short name. All operations
catch ``aiosqlite.Error`` (and malformed JSON on read) internally and degrade
gracefully: read failures return the caller's default, write failures are
logged and reported as ``False``. Whether a failed write is fatal is decided
by the caller: a scan registration treats it as fatal, an import does not.
Errors are still logged with ``exc_info=True`` so they remain observable via
stderr.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

import aiosqlite
import structlog

log = structlog.get_logger()

ASSETS_KEY = "assets"
REGISTRATIONS_KEY = "registrations"
OBSERVATIONS_KEY = "observations"
HISTORY_KEY = "history"

ALL_KEYS = (ASSETS_KEY, REGISTRATIONS_KEY, OBSERVATIONS_KEY, HISTORY_KEY)

_CREATE_KV_TABLE = """
CREATE TABLE IF NOT EXISTS kv_store (
    name        TEXT PRIMARY KEY,
    value       TEXT NOT NULL,
    updated_at  TEXT NOT NULL
)
"""


class SqliteStore:
    """SQLite-backed persistence gateway implementing PersistenceProtocol."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def init_db(self) -> None:
        """Create the table and set WAL mode. Called once at startup."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute(_CREATE_KV_TABLE)
        await self._db.commit()

    async def save(self, name: str, value: Any) -> bool:
        """Write a JSON-serializable value. Returns False on failure."""
        payload = json.dumps(value, ensure_ascii=False)
        try:
            await self._db.execute(
                "INSERT OR REPLACE INTO kv_store (name, value, updated_at) VALUES (?, ?, ?)",
                (name, payload, datetime.now(UTC).isoformat()),
            )
            await self._db.commit()
        except aiosqlite.Error:
            log.warning("storage_write_error", key=name, exc_info=True)
            return False
        return True

    async def load(self, name: str, default: Any = None) -> Any:
        """Read a value. Returns ``default`` when absent or unreadable."""
        try:
            cursor = await self._db.execute("SELECT value FROM kv_store WHERE name = ?", (name,))
            row = await cursor.fetchone()
        except aiosqlite.Error:
            log.warning("storage_read_error", key=name, exc_info=True)
            return default
        if row is None:
            return default
        try:
            return json.loads(row[0])
        except json.JSONDecodeError:
            log.warning("storage_decode_error", key=name, exc_info=True)
            return default

    async def remove(self, name: str) -> bool:
        try:
            await self._db.execute("DELETE FROM kv_store WHERE name = ?", (name,))
            await self._db.commit()
        except aiosqlite.Error:
            log.warning("storage_delete_error", key=name, exc_info=True)
            return False
        return True

    async def remove_many(self, names: tuple[str, ...]) -> bool:
        """Remove several keys; True only if every removal succeeded."""
        results = [await self.remove(name) for name in names]
        return all(results)
