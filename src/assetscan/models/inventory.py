from __future__ import annotations

import csv
import io
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from assetscan.models.asset import Asset
from assetscan.models.scan import HistoryEntry, UtcDatetime

BACKUP_VERSION = "4.0"


class InventoryStats(BaseModel):
    total: int = 0
    located: int = 0
    pending: int = 0
    registered: int = 0  # global mark count, may exceed total after an import
    percent_located: int = 0


class ImportSummary(BaseModel):
    total: int
    located: int
    pending: int
    duplicates: list[str] = Field(default_factory=list)  # keys overwritten last-wins
    persisted: bool = True


class BackupData(BaseModel):
    assets: list[Asset] = Field(default_factory=list)
    registrations: dict[str, UtcDatetime] = Field(default_factory=dict)
    observations: dict[str, str] = Field(default_factory=dict)
    history: list[HistoryEntry] = Field(default_factory=list)


class Backup(BaseModel):
    """Full snapshot of every persisted store."""

    version: str = BACKUP_VERSION
    exported_at: datetime
    data: BackupData


class RestoreSummary(BaseModel):
    assets: int
    registrations: int
    persisted: bool = True


class ExportKind(StrEnum):
    LOCATED = "located"
    PENDING = "pending"
    REGISTERED = "registered"
    GROUP = "group"
    FULL = "full"


class ExportTable(BaseModel):
    columns: list[str]
    rows: list[dict[str, str]]
    filename: str

    def to_csv(self, separator: str = ";") -> str:
        """Render as delimited text; fields holding the separator, quotes or newlines are quoted."""
        buffer = io.StringIO()
        writer = csv.DictWriter(
            buffer,
            fieldnames=self.columns,
            delimiter=separator,
            lineterminator="\n",
            extrasaction="ignore",
        )
        writer.writeheader()
        writer.writerows(self.rows)
        return buffer.getvalue()
