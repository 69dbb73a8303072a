"""Read-only queries for presentation layers. None of these mutate state."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from assetscan.models.asset import Asset
    from assetscan.models.inventory import InventoryStats
    from assetscan.models.scan import HistoryEntry
    from assetscan.state import AppState


def lookup(state: AppState, raw_id: object) -> Asset | None:
    return state.indexes.lookup(raw_id)


def located(state: AppState, query: str | None = None) -> list[Asset]:
    return state.indexes.located(query)


def pending(state: AppState, query: str | None = None) -> list[Asset]:
    return state.indexes.pending(query)


def registered(state: AppState, query: str | None = None) -> list[Asset]:
    return state.indexes.registered(state.marks, query)


def group_members(state: AppState, group: str | None) -> list[Asset]:
    return state.indexes.group_members(group)


def group_keys(state: AppState) -> list[str]:
    return state.indexes.list_group_keys()


def all_assets(state: AppState) -> list[Asset]:
    return list(state.indexes.assets)


def recent_history(state: AppState, n: int = 10) -> list[HistoryEntry]:
    return state.history.recent(n)


def observation(state: AppState, asset_id: str) -> str | None:
    return state.observations.get(asset_id)


def stats(state: AppState) -> InventoryStats:
    return state.stats()
