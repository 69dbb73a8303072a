from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field, field_validator

from assetscan.models.asset import Asset


def as_utc(value: datetime) -> datetime:
    """Read a naive instant as UTC; convert an aware one to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


# Every stored instant is aware, so marks and history entries always compare
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class ScanOutcome(StrEnum):
    SUCCESS = "success"
    ALREADY_REGISTERED = "already_registered"
    NOT_FOUND = "not_found"


class ObservationReason(StrEnum):
    WRONG_ROOM = "Asset in the wrong room"
    UORG_TRANSFER = "Asset UORG transfer"
    DAMAGED = "Asset damaged"
    ILLEGIBLE_LABEL = "Label illegible or damaged"
    DESCRIPTION_MISMATCH = "Description mismatch"
    NOT_VISUALLY_FOUND = "Asset not visually located"


class ScanInput(BaseModel):
    asset_id: str

    @field_validator("asset_id", mode="before")
    @classmethod
    def validate_asset_id(cls, v: object) -> str:
        v = "" if v is None else str(v).strip()
        if not v:
            raise ValueError("asset_id must not be empty")
        return v


class ScanResult(BaseModel):
    """Outcome of one Register call."""

    outcome: ScanOutcome
    asset_id: str  # canonical id on a hit, trimmed raw id on a miss
    asset: Asset | None = None
    timestamp: UtcDatetime
    registered_at: UtcDatetime | None = None  # existing mark on already_registered


class HistoryEntry(BaseModel):
    outcome: ScanOutcome
    asset_id: str
    asset: Asset | None = None
    timestamp: UtcDatetime
    registered_at: UtcDatetime | None = None
    note: str | None = None

    @classmethod
    def from_result(cls, result: ScanResult, note: str | None = None) -> HistoryEntry:
        return cls(
            outcome=result.outcome,
            asset_id=result.asset_id,
            asset=result.asset,
            timestamp=result.timestamp,
            registered_at=result.registered_at,
            note=note,
        )


class BatchResult(BaseModel):
    success: list[ScanResult] = Field(default_factory=list)
    already_registered: list[ScanResult] = Field(default_factory=list)
    not_found: list[ScanResult] = Field(default_factory=list)
    invalid: list[str] = Field(default_factory=list)

    @property
    def counts(self) -> dict[str, int]:
        return {
            ScanOutcome.SUCCESS.value: len(self.success),
            ScanOutcome.ALREADY_REGISTERED.value: len(self.already_registered),
            ScanOutcome.NOT_FOUND.value: len(self.not_found),
            "invalid": len(self.invalid),
        }

    def add(self, result: ScanResult) -> None:
        getattr(self, result.outcome.value).append(result)
