"""Import pipeline, backup export/restore and full reset.

An import replaces the asset collection wholesale and leaves registration
marks, observations and history alone: replacing the inventory and recording
scan progress are independent. Marks for assets that are no longer imported
therefore keep counting towards ``InventoryStats.registered``.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from assetscan.errors import AssetScanError, ErrorCode
from assetscan.history import HistoryLog
from assetscan.indexes import build_indexes
from assetscan.models.asset import Asset
from assetscan.models.inventory import Backup, BackupData, ImportSummary, RestoreSummary
from assetscan.state import dump_assets, dump_marks
from assetscan.storage import (
    ALL_KEYS,
    ASSETS_KEY,
    HISTORY_KEY,
    OBSERVATIONS_KEY,
    REGISTRATIONS_KEY,
)

if TYPE_CHECKING:
    from assetscan.state import AppState

log = structlog.get_logger()


def _invalid_shape(message: str) -> AssetScanError:
    return AssetScanError(
        code=ErrorCode.INVALID_IMPORT_SHAPE,
        message=message,
        suggestion="Check that every record is a flat mapping with a non-blank asset_id.",
    )


def coerce_records(records: Any) -> list[Asset]:
    """Validate an already-parsed payload into assets. Raises on any malformed record."""
    if isinstance(records, (str, bytes)) or not isinstance(records, Sequence):
        raise _invalid_shape("Import payload must be a sequence of records")

    assets: list[Asset] = []
    for position, record in enumerate(records):
        if isinstance(record, Asset):
            assets.append(record)
            continue
        if not isinstance(record, Mapping):
            raise _invalid_shape(f"Record {position} is not a mapping")
        try:
            assets.append(Asset.model_validate(dict(record)))
        except ValidationError as exc:
            raise _invalid_shape(f"Record {position} is invalid: {exc.errors()[0]['msg']}") from exc
    return assets


async def import_assets(state: AppState, records: Any) -> ImportSummary:
    """Replace the asset collection, persist it and rebuild every index.

    Raises:
        AssetScanError: ``INVALID_IMPORT_SHAPE`` when the payload fails
            structural checks. The previous collection stays in place.
    """
    assets = coerce_records(records)

    async with state.lock:
        indexes = build_indexes(assets, state.marks)
        persisted = await state.store.save(ASSETS_KEY, dump_assets(assets))
        if not persisted:
            log.warning("import_not_persisted", total=len(assets))

        state.indexes = indexes
        state.stats_cache.invalidate()

    summary = ImportSummary(
        total=len(indexes.assets),
        located=len(indexes.located_assets),
        pending=len(indexes.pending_assets),
        duplicates=indexes.duplicate_keys,
        persisted=persisted,
    )
    log.info(
        "import_complete",
        total=summary.total,
        located=summary.located,
        pending=summary.pending,
        duplicates=len(summary.duplicates),
    )
    return summary


def export_backup(state: AppState) -> Backup:
    return Backup(
        exported_at=datetime.now(UTC),
        data=BackupData(
            assets=list(state.indexes.assets),
            registrations=dict(state.marks),
            observations=dict(state.observations),
            history=state.history.entries(),
        ),
    )


async def restore_backup(state: AppState, payload: Any) -> RestoreSummary:
    """Replace every store with the contents of a backup document.

    Raises:
        AssetScanError: ``INVALID_IMPORT_SHAPE`` when the document does not
            have the backup structure. Nothing is changed in that case.
    """
    if not isinstance(payload, Mapping):
        raise _invalid_shape("Backup must be a JSON object")
    if "data" not in payload:
        raise _invalid_shape("Backup is missing its 'data' section")
    try:
        backup = Backup.model_validate(payload)
    except ValidationError as exc:
        raise _invalid_shape(f"Backup is invalid: {exc.errors()[0]['msg']}") from exc

    data = backup.data
    history = HistoryLog(state.history.capacity)
    history.replace(data.history)

    async with state.lock:
        results = [
            await state.store.save(ASSETS_KEY, dump_assets(data.assets)),
            await state.store.save(REGISTRATIONS_KEY, dump_marks(data.registrations)),
            await state.store.save(OBSERVATIONS_KEY, data.observations),
            await state.store.save(HISTORY_KEY, history.dump()),
        ]
        # Swap everything in after the awaits so readers never see a partial restore
        state.marks = dict(data.registrations)
        state.observations = dict(data.observations)
        state.history = history
        state.rebuild(data.assets)

    persisted = all(results)
    if not persisted:
        log.warning("restore_not_persisted")
    log.info(
        "backup_restored",
        version=backup.version,
        assets=len(data.assets),
        registrations=len(data.registrations),
    )
    return RestoreSummary(
        assets=len(data.assets),
        registrations=len(data.registrations),
        persisted=persisted,
    )


async def reset(state: AppState) -> None:
    """Clear the collection, indexes, marks, observations and history."""
    async with state.lock:
        state.marks = {}
        state.observations = {}
        state.history.clear()
        state.rebuild([])
        if not await state.store.remove_many(ALL_KEYS):
            log.warning("reset_not_persisted")
    log.info("state_reset")
