from __future__ import annotations

from assetscan.models.asset import Asset, normalize_key
from assetscan.models.inventory import (
    Backup,
    BackupData,
    ExportKind,
    ExportTable,
    ImportSummary,
    InventoryStats,
    RestoreSummary,
)
from assetscan.models.scan import (
    BatchResult,
    HistoryEntry,
    ObservationReason,
    ScanInput,
    ScanOutcome,
    ScanResult,
)

__all__ = [
    # asset
    "Asset",
    "normalize_key",
    # scan
    "ScanOutcome",
    "ObservationReason",
    "ScanInput",
    "ScanResult",
    "HistoryEntry",
    "BatchResult",
    # inventory
    "InventoryStats",
    "ImportSummary",
    "Backup",
    "BackupData",
    "RestoreSummary",
    "ExportKind",
    "ExportTable",
]
