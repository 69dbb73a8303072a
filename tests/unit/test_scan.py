"""Unit tests for assetscan.scan."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import pytest

from assetscan.errors import AssetScanError, ErrorCode
from assetscan.importer import import_assets
from assetscan.models.scan import ObservationReason, ScanOutcome
from assetscan.queries import recent_history, registered
from assetscan.scan import (
    attach_observation,
    clear_registrations,
    dedupe_ids,
    format_observation,
    is_registered,
    register,
    register_batch,
    registration_marks,
)
from assetscan.state import load_state
from assetscan.storage import HISTORY_KEY, OBSERVATIONS_KEY, REGISTRATIONS_KEY

if TYPE_CHECKING:
    from assetscan.config import Settings
    from assetscan.state import AppState
    from assetscan.storage import SqliteStore


def _fail_saves_for(state: AppState, monkeypatch: pytest.MonkeyPatch, name: str, after: int = 0):
    """Make store.save return False for ``name`` once it has succeeded ``after`` times."""
    original_save = state.store.save
    calls = 0

    async def flaky_save(key: str, value: Any) -> bool:
        nonlocal calls
        if key == name:
            calls += 1
            if calls > after:
                return False
        return await original_save(key, value)

    monkeypatch.setattr(state.store, "save", flaky_save)


# ---------------------------------------------------------------------------
# register
# ---------------------------------------------------------------------------


class TestRegister:
    async def test_state_transitions(self, state: AppState) -> None:
        await import_assets(state, [{"assetId": "123", "uorg": ""}, {"assetId": "456", "uorg": "FIN"}])
        stats = state.stats()
        assert (stats.total, stats.located, stats.pending, stats.percent_located) == (2, 1, 1, 50)

        assert (await register(state, "123")).outcome is ScanOutcome.SUCCESS
        assert (await register(state, "123")).outcome is ScanOutcome.ALREADY_REGISTERED
        assert (await register(state, "999")).outcome is ScanOutcome.NOT_FOUND

    async def test_idempotent(self, loaded_state: AppState) -> None:
        first = await register(loaded_state, "456")
        second = await register(loaded_state, "456")

        assert first.outcome is ScanOutcome.SUCCESS
        assert first.asset is not None and first.asset.asset_id == "456"
        assert second.outcome is ScanOutcome.ALREADY_REGISTERED
        assert second.registered_at == first.timestamp
        assert loaded_state.marks == {"456": first.timestamp}
        assert loaded_state.stats().registered == 1

    async def test_not_found_keeps_trimmed_raw_id(self, loaded_state: AppState) -> None:
        result = await register(loaded_state, "  nope-1 ")
        assert result.outcome is ScanOutcome.NOT_FOUND
        assert result.asset_id == "nope-1"
        assert result.asset is None
        assert loaded_state.marks == {}

    async def test_mark_uses_canonical_id(self, loaded_state: AppState) -> None:
        result = await register(loaded_state, "  AB-789 ")
        assert result.outcome is ScanOutcome.SUCCESS
        assert result.asset_id == "ab-789"
        assert "ab-789" in loaded_state.marks

        again = await register(loaded_state, "ab-789")
        assert again.outcome is ScanOutcome.ALREADY_REGISTERED

    async def test_numeric_scan(self, loaded_state: AppState) -> None:
        assert (await register(loaded_state, 123)).outcome is ScanOutcome.SUCCESS

    @pytest.mark.parametrize("bad", ["", "   ", None])
    async def test_blank_id_raises(self, loaded_state: AppState, bad) -> None:
        with pytest.raises(AssetScanError) as exc_info:
            await register(loaded_state, bad)
        assert exc_info.value.code is ErrorCode.INVALID_INPUT
        assert len(loaded_state.history) == 0

    async def test_over_long_id_raises(self, loaded_state: AppState) -> None:
        with pytest.raises(AssetScanError) as exc_info:
            await register(loaded_state, "9" * 51)
        assert exc_info.value.code is ErrorCode.INVALID_INPUT

    async def test_success_is_written_through(self, loaded_state: AppState) -> None:
        result = await register(loaded_state, "123")
        saved = await loaded_state.store.load(REGISTRATIONS_KEY)
        assert saved == {"123": result.timestamp.isoformat()}

    async def test_persistence_failure_creates_no_mark(
        self, loaded_state: AppState, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _fail_saves_for(loaded_state, monkeypatch, REGISTRATIONS_KEY)

        with pytest.raises(AssetScanError) as exc_info:
            await register(loaded_state, "123")

        assert exc_info.value.code is ErrorCode.PERSISTENCE_FAILURE
        assert exc_info.value.recoverable is True
        assert loaded_state.marks == {}
        assert loaded_state.stats().registered == 0
        assert await loaded_state.store.load(REGISTRATIONS_KEY) is None

    async def test_history_failure_is_not_fatal(
        self, loaded_state: AppState, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _fail_saves_for(loaded_state, monkeypatch, HISTORY_KEY)
        result = await register(loaded_state, "123")
        assert result.outcome is ScanOutcome.SUCCESS
        assert len(loaded_state.history) == 1


# ---------------------------------------------------------------------------
# history
# ---------------------------------------------------------------------------


class TestScanHistory:
    async def test_every_outcome_is_logged(self, loaded_state: AppState) -> None:
        await register(loaded_state, "123")
        await register(loaded_state, "123")
        await register(loaded_state, "999")

        entries = recent_history(loaded_state)
        assert [e.outcome for e in entries] == [
            ScanOutcome.NOT_FOUND,
            ScanOutcome.ALREADY_REGISTERED,
            ScanOutcome.SUCCESS,
        ]
        assert entries[0].asset is None
        assert entries[1].asset is not None

    async def test_bounded_after_many_scans(self, state: AppState) -> None:
        await import_assets(state, [{"asset_id": f"A{i:03d}"} for i in range(60)])
        for i in range(60):
            await register(state, f"A{i:03d}")

        entries = recent_history(state, 1000)
        assert len(entries) == 50
        assert entries[0].asset_id == "A059"
        assert entries[-1].asset_id == "A010"

    async def test_history_is_persisted(self, loaded_state: AppState) -> None:
        await register(loaded_state, "123")
        saved = await loaded_state.store.load(HISTORY_KEY)
        assert len(saved) == 1
        assert saved[0]["asset_id"] == "123"


# ---------------------------------------------------------------------------
# register_batch
# ---------------------------------------------------------------------------


class TestRegisterBatch:
    def test_dedupe_preserves_first_occurrence(self) -> None:
        assert dedupe_ids(["b", " a", "b", "a ", "c"]) == ["b", "a", "c"]

    async def test_duplicates_collapse(self, loaded_state: AppState) -> None:
        batch = await register_batch(loaded_state, ["123", "123", " 456"])
        assert [r.asset_id for r in batch.success] == ["123", "456"]
        assert batch.already_registered == []
        assert batch.counts["success"] == 2

    async def test_mixed_outcomes(self, loaded_state: AppState) -> None:
        await register(loaded_state, "456")
        batch = await register_batch(loaded_state, ["123", "456", "999", "", "x" * 80])

        assert [r.asset_id for r in batch.success] == ["123"]
        assert [r.asset_id for r in batch.already_registered] == ["456"]
        assert [r.asset_id for r in batch.not_found] == ["999"]
        assert batch.invalid == ["", "x" * 80]

    async def test_partial_failure_keeps_earlier_successes(
        self, loaded_state: AppState, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _fail_saves_for(loaded_state, monkeypatch, REGISTRATIONS_KEY, after=1)

        with pytest.raises(AssetScanError) as exc_info:
            await register_batch(loaded_state, ["123", "456", "ab-789"])

        assert exc_info.value.code is ErrorCode.PERSISTENCE_FAILURE
        assert set(loaded_state.marks) == {"123"}


# ---------------------------------------------------------------------------
# observations
# ---------------------------------------------------------------------------


class TestObservations:
    def test_format_transfer_with_destination(self) -> None:
        text = format_observation(ObservationReason.UORG_TRANSFER, " COFIN ")
        assert text == "Asset UORG transfer - moved to COFIN"

    def test_format_other_reason_ignores_destination(self) -> None:
        assert format_observation(ObservationReason.DAMAGED, "COFIN") == "Asset damaged"

    def test_format_free_text(self) -> None:
        assert format_observation("  sticker peeling ") == "sticker peeling"

    async def test_attach_keeps_mark_timestamp(self, loaded_state: AppState) -> None:
        result = await register(loaded_state, "123")
        text = await attach_observation(
            loaded_state, "123", ObservationReason.UORG_TRANSFER, moved_to="COFIN"
        )

        assert text == "Asset UORG transfer - moved to COFIN"
        assert loaded_state.observations == {"123": text}
        assert loaded_state.marks["123"] == result.timestamp
        assert await loaded_state.store.load(OBSERVATIONS_KEY) == {"123": text}

    async def test_attach_by_label_variant(self, loaded_state: AppState) -> None:
        await register(loaded_state, "ab-789")
        await attach_observation(loaded_state, " AB-789", ObservationReason.DAMAGED)
        assert loaded_state.observations == {"ab-789": "Asset damaged"}

    async def test_empty_reason_removes(self, loaded_state: AppState) -> None:
        await register(loaded_state, "123")
        await attach_observation(loaded_state, "123", ObservationReason.DAMAGED)
        assert await attach_observation(loaded_state, "123", None) is None
        assert loaded_state.observations == {}

    async def test_attach_appends_noted_history_entry(self, loaded_state: AppState) -> None:
        result = await register(loaded_state, "123")
        await register(loaded_state, "999")
        await attach_observation(loaded_state, "123", ObservationReason.DAMAGED)

        latest = recent_history(loaded_state)[0]
        assert (latest.outcome, latest.asset_id, latest.note) == (
            ScanOutcome.SUCCESS,
            "123",
            "Asset damaged",
        )
        assert latest.timestamp == result.timestamp
        assert [e.note for e in recent_history(loaded_state)[1:]] == [None, None]

        saved = await loaded_state.store.load(HISTORY_KEY)
        assert saved[0]["note"] == "Asset damaged"

    async def test_attach_after_history_eviction(self, loaded_state: AppState) -> None:
        result = await register(loaded_state, "456")
        loaded_state.history.clear()

        await attach_observation(loaded_state, "456", "sticker peeling")
        [entry] = recent_history(loaded_state)
        assert (entry.outcome, entry.note) == (ScanOutcome.SUCCESS, "sticker peeling")
        assert entry.timestamp == result.timestamp

    async def test_removing_observation_clears_note(self, loaded_state: AppState) -> None:
        await register(loaded_state, "123")
        await attach_observation(loaded_state, "123", ObservationReason.DAMAGED)
        await attach_observation(loaded_state, "123", "")
        assert recent_history(loaded_state)[0].note is None

    async def test_unregistered_asset_raises(self, loaded_state: AppState) -> None:
        with pytest.raises(AssetScanError) as exc_info:
            await attach_observation(loaded_state, "123", ObservationReason.DAMAGED)
        assert exc_info.value.code is ErrorCode.NOT_REGISTERED

    async def test_unknown_asset_raises(self, loaded_state: AppState) -> None:
        with pytest.raises(AssetScanError) as exc_info:
            await attach_observation(loaded_state, "999", ObservationReason.DAMAGED)
        assert exc_info.value.code is ErrorCode.NOT_FOUND


# ---------------------------------------------------------------------------
# marks lifecycle
# ---------------------------------------------------------------------------


class TestMarksLifecycle:
    async def test_is_registered(self, loaded_state: AppState) -> None:
        assert is_registered(loaded_state, "123") is None
        result = await register(loaded_state, "123")
        assert is_registered(loaded_state, "123") == result.timestamp

    async def test_registration_marks_is_a_copy(self, loaded_state: AppState) -> None:
        await register(loaded_state, "123")
        marks = registration_marks(loaded_state)
        marks.clear()
        assert "123" in loaded_state.marks

    async def test_registered_partition_updates_without_rebuild(
        self, loaded_state: AppState
    ) -> None:
        await register(loaded_state, "123")
        await register(loaded_state, "456")
        assert [a.asset_id for a in registered(loaded_state)] == ["456", "123"]

    async def test_marks_survive_import(self, loaded_state: AppState) -> None:
        await register(loaded_state, "123")

        await import_assets(loaded_state, [{"asset_id": "777"}])
        assert loaded_state.stats().registered == 1
        assert registered(loaded_state) == []

        await import_assets(loaded_state, [{"asset_id": "123"}])
        assert [a.asset_id for a in registered(loaded_state)] == ["123"]
        assert (await register(loaded_state, "123")).outcome is ScanOutcome.ALREADY_REGISTERED

    async def test_naive_stored_marks_sort_with_new_scans(
        self, settings: Settings, store: SqliteStore, sample_records: list[dict[str, Any]]
    ) -> None:
        await store.save(REGISTRATIONS_KEY, {"123": "2024-01-01T10:00:00"})
        state = await load_state(settings, store)
        await import_assets(state, sample_records)

        assert state.marks["123"] == datetime(2024, 1, 1, 10, tzinfo=UTC)
        await register(state, "456")
        assert [a.asset_id for a in registered(state)] == ["456", "123"]

    async def test_clear_registrations(self, loaded_state: AppState) -> None:
        await register(loaded_state, "123")
        await attach_observation(loaded_state, "123", ObservationReason.DAMAGED)

        assert await clear_registrations(loaded_state) == 1

        assert loaded_state.marks == {}
        assert loaded_state.observations == {}
        assert len(loaded_state.history) == 0
        assert loaded_state.stats().registered == 0
        assert loaded_state.stats().total == 3
        assert await loaded_state.store.load(REGISTRATIONS_KEY, {}) == {}
        assert (await register(loaded_state, "123")).outcome is ScanOutcome.SUCCESS
