from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class Asset(BaseModel):
    """Single imported asset record.

    The fields the registry inspects are typed; any other column from the
    import source is kept in the model's extra bag and survives persistence.
    Column spellings of the legacy spreadsheet export are accepted as aliases.
    """

    model_config = ConfigDict(extra="allow")

    asset_id: str = Field(validation_alias=AliasChoices("asset_id", "assetId", "patrimonio"))
    item_code: str = Field(default="", validation_alias=AliasChoices("item_code", "codigo_item"))
    description: str = Field(default="", validation_alias=AliasChoices("description", "descricao"))
    category: str = Field(default="", validation_alias=AliasChoices("category", "categoria"))
    # kept as imported: a number stays a number of the same type
    value: str | int | float | None = Field(
        default=None, validation_alias=AliasChoices("value", "valor")
    )
    destination_unit: str = Field(
        default="", validation_alias=AliasChoices("destination_unit", "uorg", "uorg_destino")
    )
    destination_group: str = Field(
        default="",
        validation_alias=AliasChoices("destination_group", "coordenacao_destino"),
    )
    site: str = Field(default="", validation_alias=AliasChoices("site", "localidade"))

    @field_validator(
        "asset_id",
        "item_code",
        "description",
        "category",
        "destination_unit",
        "destination_group",
        "site",
        mode="before",
    )
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        if v is None:
            return ""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("asset_id")
    @classmethod
    def validate_asset_id(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("asset_id must not be blank")
        return v

    @property
    def key(self) -> str:
        """Primary index key: trimmed and uppercased asset_id."""
        return normalize_key(self.asset_id)

    @property
    def is_located(self) -> bool:
        return bool(self.destination_unit.strip())

    @property
    def group_key(self) -> str:
        return self.destination_group.strip()


def normalize_key(raw: object) -> str:
    """Derive the primary lookup key. Import and scan paths must both use this."""
    return str(raw).strip().upper()
