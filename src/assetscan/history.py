"""Bounded, most-recent-first log of scan outcomes."""

from __future__ import annotations

from collections import deque
from typing import Any

import structlog
from pydantic import TypeAdapter, ValidationError

from assetscan.models.scan import HistoryEntry

log = structlog.get_logger()

DEFAULT_CAPACITY = 50

_entries_adapter = TypeAdapter(list[HistoryEntry])


class HistoryLog:
    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        self.capacity = capacity
        # Left end is the most recent entry; appendleft evicts from the right
        self._entries: deque[HistoryEntry] = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._entries)

    def append(self, entry: HistoryEntry) -> None:
        self._entries.appendleft(entry)

    def recent(self, n: int = 10) -> list[HistoryEntry]:
        n = max(0, min(n, len(self._entries)))
        return [self._entries[i] for i in range(n)]

    def entries(self) -> list[HistoryEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def replace(self, entries: list[HistoryEntry]) -> None:
        """Load entries given most-recent-first, keeping at most ``capacity``."""
        self._entries = deque(entries[: self.capacity], maxlen=self.capacity)

    def dump(self) -> list[dict[str, Any]]:
        return _entries_adapter.dump_python(self.entries(), mode="json")

    @classmethod
    def load(cls, raw: Any, capacity: int = DEFAULT_CAPACITY) -> HistoryLog:
        """Rebuild a log from its persisted form. Unreadable data yields an empty log."""
        history = cls(capacity)
        if not raw:
            return history
        try:
            history.replace(_entries_adapter.validate_python(raw))
        except ValidationError:
            log.warning("history_load_error", exc_info=True)
        return history
