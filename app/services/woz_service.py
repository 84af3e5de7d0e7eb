"""WOZ lookups with two cache tiers.

Business Rules:
- Shared cache (Redis or in-memory) holds a lookup for 24 hours
- The woz_cache table holds the last lookup per address for 7 days
- Anything older is fetched again from the WOZ connector and upserted
- Failures never raise: callers get {"success": False, "error": ...}

Called by: routers/woz.py, services/valuation_service via routers/valuations.py
Depends on: connectors/woz.py, cache/store.py, models/valuation.py
"""

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from ..cache.store import get_cached, set_cached
from ..connectors.woz import woz_connector
from ..exceptions import UpstreamError
from ..models import WozCache
from ..utils.normalization import normalize_postal_code

log = logging.getLogger(__name__)

SHARED_TTL = 24 * 3600
DB_MAX_AGE = timedelta(days=7)


def _cache_key(address: str, postal_code: str) -> str:
    return f"woz:{address.strip().lower()}:{normalize_postal_code(postal_code)}"


def _row_to_data(row: WozCache) -> dict:
    data = dict(row.details or {})
    data.update({
        "address": row.address,
        "postal_code": row.postal_code,
        "woz_value": row.woz_value,
        "reference_year": row.reference_year,
        "object_type": row.object_type,
        "surface_area": row.surface_area,
        "source_url": row.source_url,
        "scraped_at": row.scraped_at.isoformat() if row.scraped_at else None,
    })
    return data


def _fresh_row(db: Session, address: str, postal_code: str) -> WozCache | None:
    row = (
        db.query(WozCache)
        .filter(WozCache.address == address, WozCache.postal_code == postal_code)
        .first()
    )
    if row is None or row.updated_at is None:
        return None
    updated = row.updated_at
    if updated.tzinfo is None:
        updated = updated.replace(tzinfo=timezone.utc)
    if datetime.now(timezone.utc) - updated > DB_MAX_AGE:
        return None
    return row


def save_woz_data(db: Session, data: dict) -> WozCache:
    """Insert or refresh the woz_cache row for data's address."""
    row = (
        db.query(WozCache)
        .filter(WozCache.address == data["address"], WozCache.postal_code == data["postal_code"])
        .first()
    )
    if row is None:
        row = WozCache(address=data["address"], postal_code=data["postal_code"])
        db.add(row)
    row.woz_value = data["woz_value"]
    row.reference_year = data.get("reference_year")
    row.object_type = data.get("object_type")
    row.surface_area = data.get("surface_area")
    row.source_url = data.get("source_url")
    row.details = {
        k: data.get(k)
        for k in (
            "city", "grond_oppervlakte", "bouwjaar", "gebruiksdoel", "oppervlakte",
            "identificatie", "adresseerbaar_object", "nummeraanduiding", "woz_values",
        )
    }
    row.scraped_at = datetime.now(timezone.utc)
    row.updated_at = datetime.now(timezone.utc)
    db.commit()
    return row


async def get_woz_value(db: Session, address: str, postal_code: str) -> dict:
    """Look up the WOZ record for an address.

    Returns:
        {"success": bool, "data": dict | None, "error": str | None, "cached": bool}
    """
    address = address.strip()
    postal_code = normalize_postal_code(postal_code)
    key = _cache_key(address, postal_code)

    cached = get_cached(key)
    if cached is not None:
        log.info("WOZ data retrieved from cache for %s", address)
        return {"success": True, "data": cached, "error": None, "cached": True}

    row = _fresh_row(db, address, postal_code)
    if row is not None:
        data = _row_to_data(row)
        set_cached(key, data, ttl_seconds=SHARED_TTL)
        log.info("WOZ data retrieved from database for %s", address)
        return {"success": True, "data": data, "error": None, "cached": True}

    try:
        data = await woz_connector.lookup(address, postal_code)
    except UpstreamError as e:
        log.warning("WOZ lookup failed for %s %s: %s", address, postal_code, e)
        return {"success": False, "data": None, "error": str(e), "cached": False}

    save_woz_data(db, data)
    set_cached(key, data, ttl_seconds=SHARED_TTL)
    log.info("WOZ data fetched for %s: %s", address, data["woz_value"])
    return {"success": True, "data": data, "error": None, "cached": False}

