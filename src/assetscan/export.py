"""Tabular export of the inventory, one table per partition or group."""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from assetscan.errors import AssetScanError, ErrorCode
from assetscan.models.inventory import ExportKind, ExportTable

if TYPE_CHECKING:
    from assetscan.models.asset import Asset
    from assetscan.state import AppState

BASE_COLUMNS = [
    "asset_id",
    "item_code",
    "description",
    "category",
    "value",
    "destination_unit",
    "destination_group",
    "site",
]

YES = "YES"
NO = "NO"


def _base_row(asset: Asset) -> dict[str, str]:
    data = asset.model_dump(include=set(BASE_COLUMNS))
    return {col: "" if data.get(col) is None else str(data[col]) for col in BASE_COLUMNS}


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", text, flags=re.IGNORECASE)


def prepare_export(state: AppState, kind: ExportKind | str, group: str | None = None) -> ExportTable:
    """Columns, rows and a dated filename for one export kind.

    Raises:
        AssetScanError: ``INVALID_INPUT`` for a group export without a group.
    """
    kind = ExportKind(kind)
    today = datetime.now(UTC).date().isoformat()
    marks = state.marks

    def registered_at(asset: Asset) -> str:
        ts = marks.get(asset.asset_id)
        return ts.isoformat() if ts else ""

    def registered_flag(asset: Asset) -> str:
        return YES if asset.asset_id in marks else NO

    if kind is ExportKind.LOCATED:
        columns = list(BASE_COLUMNS)
        rows = [_base_row(a) for a in state.indexes.located()]
        filename = f"located_assets_{today}.csv"

    elif kind is ExportKind.PENDING:
        columns = [*BASE_COLUMNS, "registered"]
        rows = [
            {**_base_row(a), "registered": registered_flag(a)} for a in state.indexes.pending()
        ]
        filename = f"pending_assets_{today}.csv"

    elif kind is ExportKind.REGISTERED:
        columns = [*BASE_COLUMNS, "registered_at"]
        rows = [
            {**_base_row(a), "registered_at": registered_at(a)}
            for a in state.indexes.registered(marks)
        ]
        filename = f"registered_assets_{today}.csv"

    elif kind is ExportKind.GROUP:
        if not group or not group.strip():
            raise AssetScanError(
                code=ErrorCode.INVALID_INPUT,
                message="A group export needs a destination group",
                suggestion="Pick one of the known destination groups.",
            )
        columns = [*BASE_COLUMNS, "registered", "registered_at"]
        rows = [
            {**_base_row(a), "registered": registered_flag(a), "registered_at": registered_at(a)}
            for a in state.indexes.group_members(group)
        ]
        filename = f"inventory_{_slug(group.strip())}.csv"

    else:
        columns = [*BASE_COLUMNS, "location_status", "registered", "registered_at"]
        rows = [
            {
                **_base_row(a),
                "location_status": "LOCATED" if a.is_located else "PENDING",
                "registered": registered_flag(a),
                "registered_at": registered_at(a),
            }
            for a in state.indexes.assets
        ]
        filename = f"full_inventory_{today}.csv"

    return ExportTable(columns=columns, rows=rows, filename=filename)
