"""Indexed asset registry with scan registration, bounded history and backups."""

from __future__ import annotations

from assetscan.errors import AssetScanError, ErrorCode
from assetscan.importer import export_backup, import_assets, reset, restore_backup
from assetscan.scan import (
    attach_observation,
    clear_registrations,
    register,
    register_batch,
)
from assetscan.state import AppState, load_state, open_state

__all__ = [
    "AppState",
    "AssetScanError",
    "ErrorCode",
    "attach_observation",
    "clear_registrations",
    "export_backup",
    "import_assets",
    "load_state",
    "open_state",
    "register",
    "register_batch",
    "reset",
    "restore_backup",
]
