"""CBS Open Data (StatLine OData) — energy, housing and regional datasets.

Each dataset is fetched as TypedDataSet JSON, transformed into flat dicts
with defaults for missing fields, and cached (energy/regional 24 h,
housing 6 h).
"""

import logging
from datetime import datetime

from ..cache.store import get_cached, set_cached
from ..config import settings
from ..utils import safe_float, safe_int
from .base import BaseConnector

log = logging.getLogger(__name__)

ENERGY_TTL = 86400
HOUSING_TTL = 21600
REGIONAL_TTL = 86400


def _region(item: dict) -> str:
    return (item.get("RegioS") or "Unknown").strip()


def transform_energy(rows: list[dict]) -> list[dict]:
    return [
        {
            "region": _region(item),
            "year": safe_int(str(item.get("Perioden", ""))[:4]) or datetime.now().year,
            "total_households": safe_int(item.get("TotaalHuishoudens_1")) or 0,
            "gas_consumption": safe_float(item.get("GasverbruikHuishoudens_2")) or 0.0,
            "electricity_consumption": safe_float(item.get("ElektriciteitsverbruikHuishoudens_3")) or 0.0,
            "renewable_percentage": safe_float(item.get("AandeelDuurzameEnergie_4")) or 0.0,
            "average_energy_label": item.get("GemiddeldEnergielabel_5") or "C",
            "co2_emissions": safe_float(item.get("CO2UitstootHuishoudens_6")) or 0.0,
        }
        for item in rows
    ]


def transform_housing(rows: list[dict]) -> list[dict]:
    return [
        {
            "region": _region(item),
            "average_house_price": safe_float(item.get("GemiddeldeWoningprijs_1")) or 0.0,
            "price_change": safe_float(item.get("PrijsveranderingJaarOpJaar_2")) or 0.0,
            "transaction_volume": safe_int(item.get("AantalTransacties_3")) or 0,
            "average_days_on_market": safe_int(item.get("GemiddeldeTijdTeKoop_4")) or 0,
            "housing_stock": safe_int(item.get("TotaalWoningvoorraad_5")) or 0,
        }
        for item in rows
    ]


def transform_regional(rows: list[dict]) -> list[dict]:
    return [
        {
            "region": _region(item),
            "population": safe_int(item.get("TotaalInwoners_1")) or 0,
            "households": safe_int(item.get("TotaalHuishoudens_2")) or 0,
            "average_income": safe_float(item.get("GemiddeldInkomen_3")) or 0.0,
            "energy_transition_progress": safe_float(item.get("EnergietransitieVoortgang_4")) or 0.0,
        }
        for item in rows
    ]


class CBSConnector(BaseConnector):
    """StatLine OData v3 client."""

    name = "cbs"

    def __init__(self, base_url: str | None = None):
        super().__init__(timeout=20.0)
        self.base_url = (base_url or settings.cbs_base_url).rstrip("/")

    async def _dataset(self, table: str, top: int, region: str | None = None) -> list[dict]:
        params = {"$format": "json", "$top": str(top)}
        if region:
            escaped = region.replace("'", "''")
            params["$filter"] = f"RegioS eq '{escaped}'"
        data = await self._get_json(
            f"{self.base_url}/{table}/TypedDataSet",
            params=params,
            headers={"Accept": "application/json"},
        )
        return data.get("value") or []

    async def _cached(self, key: str, ttl: int, table: str, top: int, transform, region=None):
        cached = get_cached(key)
        if cached is not None:
            return cached
        rows = transform(await self._dataset(table, top, region))
        set_cached(key, rows, ttl_seconds=ttl)
        log.info("CBS %s retrieved: %d records", table, len(rows))
        return rows

    async def energy_statistics(self, region: str | None = None) -> list[dict]:
        return await self._cached(
            f"cbs:energy:{region or 'all'}", ENERGY_TTL,
            settings.cbs_energy_table, 1000, transform_energy, region,
        )

    async def housing_market(self, region: str | None = None) -> list[dict]:
        return await self._cached(
            f"cbs:housing:{region or 'all'}", HOUSING_TTL,
            settings.cbs_housing_table, 1000, transform_housing, region,
        )

    async def regional_statistics(self) -> list[dict]:
        return await self._cached(
            "cbs:regional", REGIONAL_TTL,
            settings.cbs_regional_table, 500, transform_regional,
        )


cbs = CBSConnector()
