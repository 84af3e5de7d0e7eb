"""Blend database aggregates with CBS regional datasets.

Business Rules:
- A dataset row matches when its region and the requested name contain one
  another, compared case-insensitively (either direction)
- The first matching row wins; rows are not ranked
- Without a match the database values stand, gaps are filled from static
  defaults, and the result is tagged so callers can tell
    city market:   "database+cbs" on match, "database_only" otherwise
    energy region: "cbs" on match, "defaults" otherwise

Called by: routers/properties.py (city-market), services/energy_service.py
Depends on: connectors/cbs.py (rows already transformed)
"""

import logging

log = logging.getLogger(__name__)

SOURCE_BLENDED = "database+cbs"
SOURCE_DATABASE_ONLY = "database_only"
SOURCE_CBS = "cbs"
SOURCE_DEFAULTS = "defaults"

CITY_MARKET_DEFAULTS = {
    "average_price_change": 5.2,
    "average_days_on_market": 35,
    "transaction_volume": 0,
}

ENERGY_REGION_DEFAULTS = {
    "total_households": 0,
    "gas_consumption": 1190.0,
    "electricity_consumption": 2730.0,
    "renewable_percentage": 15.0,
    "average_energy_label": "C",
    "co2_emissions": 0.0,
}


def regions_match(a: str | None, b: str | None) -> bool:
    if not a or not b:
        return False
    a, b = a.strip().lower(), b.strip().lower()
    if not a or not b:
        return False
    return a in b or b in a


def match_region(name: str, rows: list[dict], key: str = "region") -> dict | None:
    """First row whose `key` field matches name, or None."""
    for row in rows:
        if regions_match(name, row.get(key)):
            return row
    return None


def blend_city_market(city: str, db_stats: dict, housing_rows: list[dict]) -> dict:
    """Merge listing stats for a city with the CBS housing row for it.

    db_stats carries listing_count and average_asking_price from the
    properties table. CBS figures replace the derived ones on a match.
    """
    row = match_region(city, housing_rows)
    result = {
        "city": city,
        "listing_count": db_stats.get("listing_count", 0),
        "average_asking_price": db_stats.get("average_asking_price", 0),
    }
    if row is None:
        log.info("No CBS housing data for %s, using database values", city)
        result.update({
            "average_price": db_stats.get("average_asking_price", 0),
            **CITY_MARKET_DEFAULTS,
            "cbs_region": None,
            "source": SOURCE_DATABASE_ONLY,
        })
        return result

    result.update({
        "average_price": row.get("average_house_price") or db_stats.get("average_asking_price", 0),
        "average_price_change": row.get("price_change") or CITY_MARKET_DEFAULTS["average_price_change"],
        "average_days_on_market": (
            row.get("average_days_on_market") or CITY_MARKET_DEFAULTS["average_days_on_market"]
        ),
        "transaction_volume": row.get("transaction_volume") or CITY_MARKET_DEFAULTS["transaction_volume"],
        "cbs_region": row.get("region"),
        "source": SOURCE_BLENDED,
    })
    return result


def blend_energy_region(region: str, energy_rows: list[dict]) -> dict:
    row = match_region(region, energy_rows)
    if row is None:
        return {"region": region, **ENERGY_REGION_DEFAULTS, "source": SOURCE_DEFAULTS}
    blended = {"region": row.get("region") or region}
    for field, default in ENERGY_REGION_DEFAULTS.items():
        blended[field] = row.get(field) or default
    blended["source"] = SOURCE_CBS
    return blended
