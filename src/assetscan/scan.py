"""Scan registration state machine.

Per asset: no asset → ``not_found``; asset without mark → mark created,
``success``; asset with mark → ``already_registered``, nothing changes.
Marks are keyed by the asset's canonical ``asset_id`` so that case or
whitespace differences between the physical label and the imported record do
not create a second mark.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from assetscan.errors import AssetScanError, ErrorCode
from assetscan.models.scan import (
    BatchResult,
    HistoryEntry,
    ObservationReason,
    ScanInput,
    ScanOutcome,
    ScanResult,
)
from assetscan.state import dump_marks
from assetscan.storage import (
    HISTORY_KEY,
    OBSERVATIONS_KEY,
    REGISTRATIONS_KEY,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from assetscan.models.asset import Asset
    from assetscan.state import AppState

log = structlog.get_logger()


def _validate_scan_id(state: AppState, raw_id: object) -> str:
    try:
        scanned = ScanInput(asset_id=raw_id).asset_id
    except ValidationError as exc:
        raise AssetScanError(
            code=ErrorCode.INVALID_INPUT,
            message=exc.errors()[0]["msg"],
            suggestion="Scan the label again or type the asset number.",
        ) from exc
    max_length = state.settings.scan.max_id_length
    if len(scanned) > max_length:
        raise AssetScanError(
            code=ErrorCode.INVALID_INPUT,
            message=f"asset_id must not exceed {max_length} characters",
            suggestion="Check that the scanner read a single label.",
        )
    return scanned


async def _append_history(state: AppState, entry: HistoryEntry) -> None:
    state.history.append(entry)
    if not await state.store.save(HISTORY_KEY, state.history.dump()):
        log.warning("history_not_persisted", asset_id=entry.asset_id)


async def _register_locked(state: AppState, scanned: str) -> ScanResult:
    now = datetime.now(UTC)
    asset = state.indexes.lookup(scanned)

    if asset is None:
        result = ScanResult(outcome=ScanOutcome.NOT_FOUND, asset_id=scanned, timestamp=now)
        log.info("scan_not_found", asset_id=scanned)
    elif asset.asset_id in state.marks:
        result = ScanResult(
            outcome=ScanOutcome.ALREADY_REGISTERED,
            asset_id=asset.asset_id,
            asset=asset.model_copy(),
            timestamp=now,
            registered_at=state.marks[asset.asset_id],
        )
        log.info("scan_already_registered", asset_id=asset.asset_id)
    else:
        # Write-through: the new map becomes visible only once it is durable
        marks = {**state.marks, asset.asset_id: now}
        if not await state.store.save(REGISTRATIONS_KEY, dump_marks(marks)):
            raise AssetScanError(
                code=ErrorCode.PERSISTENCE_FAILURE,
                message=f"Registration of {asset.asset_id!r} could not be saved",
                suggestion="Check storage and scan the asset again.",
                recoverable=True,
            )
        state.marks = marks
        state.stats_cache.invalidate()
        result = ScanResult(
            outcome=ScanOutcome.SUCCESS,
            asset_id=asset.asset_id,
            asset=asset.model_copy(),
            timestamp=now,
        )
        log.info("scan_registered", asset_id=asset.asset_id)

    await _append_history(state, HistoryEntry.from_result(result))
    return result


async def register(state: AppState, raw_id: object) -> ScanResult:
    """Register one scanned identifier and record the outcome in history.

    Raises:
        AssetScanError: ``INVALID_INPUT`` for a blank or over-long identifier,
            ``PERSISTENCE_FAILURE`` when a new mark could not be saved. In the
            latter case no mark is created.
    """
    scanned = _validate_scan_id(state, raw_id)
    async with state.lock:
        return await _register_locked(state, scanned)


def dedupe_ids(raw_ids: Iterable[object]) -> list[str]:
    """Trimmed identifiers, first occurrence kept, order preserved."""
    seen: set[str] = set()
    unique: list[str] = []
    for raw in raw_ids:
        trimmed = "" if raw is None else str(raw).strip()
        if trimmed in seen:
            continue
        seen.add(trimmed)
        unique.append(trimmed)
    return unique


async def register_batch(state: AppState, raw_ids: Iterable[object]) -> BatchResult:
    """Register a sequence of identifiers one after another.

    Not transactional: a persistence failure propagates and leaves every
    earlier success committed.
    """
    batch = BatchResult()
    for raw in dedupe_ids(raw_ids):
        try:
            scanned = _validate_scan_id(state, raw)
        except AssetScanError:
            batch.invalid.append(raw)
            continue
        async with state.lock:
            batch.add(await _register_locked(state, scanned))

    log.info("batch_complete", **batch.counts)
    return batch


def format_observation(reason: ObservationReason | str, moved_to: str | None = None) -> str:
    text = reason.value if isinstance(reason, ObservationReason) else str(reason).strip()
    if reason == ObservationReason.UORG_TRANSFER and moved_to and moved_to.strip():
        text = f"{text} - moved to {moved_to.strip()}"
    return text


async def attach_observation(
    state: AppState,
    asset_id: str,
    reason: ObservationReason | str | None,
    moved_to: str | None = None,
) -> str | None:
    """Attach (or with an empty reason, remove) a note on a registered asset.

    The registration mark and its timestamp are left untouched. The asset's
    latest history entry is appended again with the note, most recent first.
    """
    async with state.lock:
        asset = state.indexes.lookup(asset_id)
        if asset is None:
            raise AssetScanError(
                code=ErrorCode.NOT_FOUND,
                message=f"Asset {asset_id!r} is not in the imported inventory",
                recoverable=True,
            )
        if asset.asset_id not in state.marks:
            raise AssetScanError(
                code=ErrorCode.NOT_REGISTERED,
                message=f"Asset {asset.asset_id!r} has not been registered",
                suggestion="Scan the asset before adding an observation.",
                recoverable=True,
            )

        text = format_observation(reason, moved_to) if reason else ""
        observations = dict(state.observations)
        if text:
            observations[asset.asset_id] = text
        else:
            observations.pop(asset.asset_id, None)

        if not await state.store.save(OBSERVATIONS_KEY, observations):
            log.warning("observation_not_persisted", asset_id=asset.asset_id)
        state.observations = observations
        await _append_history(state, _noted_entry(state, asset, text or None))
        return text or None


def _noted_entry(state: AppState, asset: Asset, note: str | None) -> HistoryEntry:
    """Latest registration entry for ``asset`` carrying ``note``.

    When that entry has already been evicted from the log, one is rebuilt
    from the registration mark.
    """
    for entry in state.history.entries():
        if entry.asset_id == asset.asset_id and entry.outcome is not ScanOutcome.NOT_FOUND:
            return entry.model_copy(update={"note": note})
    return HistoryEntry(
        outcome=ScanOutcome.SUCCESS,
        asset_id=asset.asset_id,
        asset=asset.model_copy(),
        timestamp=state.marks[asset.asset_id],
        note=note,
    )


def is_registered(state: AppState, asset_id: str) -> datetime | None:
    """Registration instant for a canonical asset_id, or None."""
    return state.marks.get(asset_id)


def registration_marks(state: AppState) -> dict[str, datetime]:
    return dict(state.marks)


async def clear_registrations(state: AppState) -> int:
    """Drop every mark, observation and history entry. Returns the mark count cleared."""
    async with state.lock:
        cleared = len(state.marks)
        state.marks = {}
        state.observations = {}
        state.history.clear()
        state.stats_cache.invalidate()
        if not await state.store.remove_many((REGISTRATIONS_KEY, OBSERVATIONS_KEY, HISTORY_KEY)):
            log.warning("clear_not_persisted")
        log.info("registrations_cleared", count=cleared)
        return cleared
