"""Shared fixtures: a small inventory in the shapes an import source produces."""

from __future__ import annotations

from typing import Any

import pytest

from assetscan.config import Settings
from assetscan.models.asset import Asset


@pytest.fixture()
def sample_records() -> list[dict[str, Any]]:
    return [
        {
            "asset_id": "123",
            "description": "Cadeira giratória",
            "destination_unit": "",
            "destination_group": "COGEP",
        },
        {
            "asset_id": "456",
            "description": "Mesa de reunião",
            "destination_unit": "FIN",
            "destination_group": "COFIN",
            "value": "1500.00",
        },
        {
            # Legacy column spellings plus an unknown column
            "patrimonio": "ab-789",
            "descricao": "Monitor 24 polegadas",
            "uorg_destino": "TI",
            "coordenacao_destino": " COGEP ",
            "tombamento": "T-1",
        },
    ]


@pytest.fixture()
def sample_assets(sample_records: list[dict[str, Any]]) -> list[Asset]:
    return [Asset.model_validate(r) for r in sample_records]


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(storage={"db_path": str(tmp_path / "assetscan.db")})
