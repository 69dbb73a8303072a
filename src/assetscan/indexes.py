"""Asset indexes: primary lookup, grouping index and located/pending/registered partitions.

``build_indexes`` produces a complete, new ``AssetIndexes`` in a single pass.
Callers swap the whole object in, so a reader either sees the previous
indexes or the new ones, never a mix.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from assetscan.models.asset import normalize_key

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from datetime import datetime

    from assetscan.models.asset import Asset

log = structlog.get_logger()


def fold_text(text: str | None) -> str:
    """Case- and accent-insensitive form used by the list filters."""
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", str(text).casefold())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _matches(asset: Asset, term: str) -> bool:
    return term in fold_text(asset.asset_id) or term in fold_text(asset.description)


def _filter(assets: list[Asset], query: str | None) -> list[Asset]:
    if not query:
        return assets
    term = fold_text(query)
    return [a for a in assets if _matches(a, term)]


def _sort_registered(assets: Iterable[Asset], marks: Mapping[str, datetime]) -> list[Asset]:
    # Most recently registered first
    return sorted(assets, key=lambda a: marks[a.asset_id], reverse=True)


@dataclass
class AssetIndexes:
    """In-memory indexes over one asset collection."""

    # import-order collection the indexes were built from
    assets: list[Asset] = field(default_factory=list)

    # normalized asset_id → asset (last duplicate wins)
    by_key: dict[str, Asset] = field(default_factory=dict)

    # trimmed destination_group → assets, in import order
    by_group: dict[str, list[Asset]] = field(default_factory=dict)

    located_assets: list[Asset] = field(default_factory=list)
    pending_assets: list[Asset] = field(default_factory=list)

    # registered partition as of build time; registered() recomputes from live marks
    registered_assets: list[Asset] = field(default_factory=list)

    # normalized keys seen more than once in the collection
    duplicate_keys: list[str] = field(default_factory=list)

    def lookup(self, raw_id: object) -> Asset | None:
        if raw_id is None:
            return None
        return self.by_key.get(normalize_key(raw_id))

    def group_members(self, group: str | None) -> list[Asset]:
        if not group:
            return []
        return self.by_group.get(group.strip(), [])

    def list_group_keys(self) -> list[str]:
        return sorted(self.by_group)

    def located(self, query: str | None = None) -> list[Asset]:
        return _filter(self.located_assets, query)

    def pending(self, query: str | None = None) -> list[Asset]:
        return _filter(self.pending_assets, query)

    def registered(self, marks: Mapping[str, datetime], query: str | None = None) -> list[Asset]:
        """Registered partition recomputed from the live marks map.

        Marks change between rebuilds, so the build-time partition is not
        served. The indexes themselves are left untouched.
        """
        current = _sort_registered((a for a in self.assets if a.asset_id in marks), marks)
        return _filter(current, query)


def build_indexes(assets: Iterable[Asset], marks: Mapping[str, datetime]) -> AssetIndexes:
    """Build every index over ``assets`` in a single O(n) pass."""
    indexes = AssetIndexes()
    duplicates: set[str] = set()

    for asset in assets:
        indexes.assets.append(asset)

        key = asset.key
        if key in indexes.by_key:
            duplicates.add(key)
        indexes.by_key[key] = asset

        group = asset.group_key
        if group:
            indexes.by_group.setdefault(group, []).append(asset)

        if asset.is_located:
            indexes.located_assets.append(asset)
        else:
            indexes.pending_assets.append(asset)

        if asset.asset_id in marks:
            indexes.registered_assets.append(asset)

    indexes.located_assets.sort(key=lambda a: a.asset_id)
    indexes.pending_assets.sort(key=lambda a: a.asset_id)
    indexes.registered_assets = _sort_registered(indexes.registered_assets, marks)
    indexes.duplicate_keys = sorted(duplicates)

    if duplicates:
        log.warning("duplicate_asset_ids", count=len(duplicates), keep="last")
    return indexes
