from __future__ import annotations

import math
from typing import TYPE_CHECKING

from assetscan.models.inventory import InventoryStats

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from assetscan.indexes import AssetIndexes


def percent(part: int, whole: int) -> int:
    """Whole-number percentage, halves rounded up; 0 for an empty whole."""
    if whole <= 0:
        return 0
    return math.floor(100 * part / whole + 0.5)


class StatsCache:
    """Partition counts, recomputed lazily after invalidation."""

    def __init__(self) -> None:
        self._stats = InventoryStats()
        self._dirty = True

    def invalidate(self) -> None:
        self._dirty = True

    def recompute(self, indexes: AssetIndexes, marks: Mapping[str, datetime]) -> InventoryStats:
        total = len(indexes.assets)
        located = len(indexes.located_assets)
        self._stats = InventoryStats(
            total=total,
            located=located,
            pending=len(indexes.pending_assets),
            registered=len(marks),
            percent_located=percent(located, total),
        )
        self._dirty = False
        return self._stats

    def get(self, indexes: AssetIndexes, marks: Mapping[str, datetime]) -> InventoryStats:
        if self._dirty:
            return self.recompute(indexes, marks).model_copy()
        return self._stats.model_copy()
