"""Property listings — CRUD, search, statistics and offers.

Business Rules:
- New listings start AVAILABLE with estimated_value = asking price and
  confidence 0.8 until a valuation is attached
- Search only returns AVAILABLE listings; city is a case-insensitive
  substring filter; results are cached 10 minutes per filter set and the
  cache is dropped on any listing write
- City stats match the city name exactly (case-insensitive)
- Offers can only be made on AVAILABLE listings

Called by: routers/properties.py, routers/users.py
Depends on: models/property.py, cache/decorators.py
"""

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..cache.decorators import cached_endpoint, invalidate_cached
from ..models import Offer, Property

log = logging.getLogger(__name__)

SEARCH_TTL = 600
DEFAULT_CONFIDENCE = 0.8
DEFAULT_DAYS_ON_MARKET = 30

# Growth figures shown on the market overview until history is tracked
MARKET_GROWTH = {"growth_rate": 12, "price_growth": 8, "sales_growth": 15, "time_change": -5}

_SORT_COLUMNS = {
    "price": Property.asking_price,
    "date": Property.created_at,
    "size": Property.square_meters,
}


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


def property_to_dict(p: Property) -> dict:
    return {
        "id": p.id,
        "user_id": p.user_id,
        "address": p.address,
        "postal_code": p.postal_code,
        "city": p.city,
        "province": p.province,
        "property_type": p.property_type,
        "bedrooms": p.bedrooms,
        "bathrooms": p.bathrooms,
        "square_meters": p.square_meters,
        "construction_year": p.construction_year,
        "asking_price": p.asking_price,
        "estimated_value": p.estimated_value,
        "confidence_score": p.confidence_score,
        "status": p.status,
        "energy_label": p.energy_label,
        "description": p.description,
        "features": p.features or [],
        "images": p.images or [],
        "created_at": _iso(p.created_at),
        "updated_at": _iso(p.updated_at),
    }


def offer_to_dict(o: Offer) -> dict:
    return {
        "id": o.id,
        "property_id": o.property_id,
        "buyer_id": o.buyer_id,
        "amount": o.amount,
        "currency": o.currency,
        "status": o.status,
        "buyer_name": o.buyer_name,
        "buyer_email": o.buyer_email,
        "buyer_phone": o.buyer_phone,
        "message": o.message,
        "conditions": o.conditions,
        "financing_confirmed": bool(o.financing_confirmed),
        "viewing_requested": bool(o.viewing_requested),
        "created_at": _iso(o.created_at),
    }


# ── Listings ──────────────────────────────────────────────────────────


def list_available(db: Session, limit: int = 20, offset: int = 0) -> dict:
    q = db.query(Property).filter(Property.status == "AVAILABLE")
    total = q.count()
    rows = q.order_by(Property.created_at.desc()).offset(offset).limit(limit).all()
    return {"properties": [property_to_dict(p) for p in rows], "total": total}


def create_property(db: Session, user_id: int, data: dict) -> Property:
    prop = Property(
        user_id=user_id,
        estimated_value=data["asking_price"],
        confidence_score=DEFAULT_CONFIDENCE,
        status="AVAILABLE",
        **data,
    )
    db.add(prop)
    db.commit()
    db.refresh(prop)
    invalidate_cached(search_properties)
    return prop


def update_property(db: Session, prop: Property, changes: dict) -> dict:
    """Apply a partial update. Returns {field: old value} for changed fields."""
    old = {}
    for field, value in changes.items():
        current = getattr(prop, field)
        if current != value:
            old[field] = current
            setattr(prop, field, value)
    if old:
        db.commit()
        db.refresh(prop)
        invalidate_cached(search_properties)
    return old


def delete_property(db: Session, prop: Property) -> None:
    db.delete(prop)
    db.commit()
    invalidate_cached(search_properties)


def user_properties(db: Session, user_id: int) -> list[dict]:
    rows = (
        db.query(Property)
        .filter(Property.user_id == user_id)
        .order_by(Property.created_at.desc())
        .all()
    )
    return [property_to_dict(p) for p in rows]


# ── Search ────────────────────────────────────────────────────────────


@cached_endpoint(prefix="property_search", ttl_seconds=SEARCH_TTL)
def search_properties(
    db: Session,
    *,
    city: str | None = None,
    property_type: str | None = None,
    min_price: float | None = None,
    max_price: float | None = None,
    min_bedrooms: int | None = None,
    max_bedrooms: int | None = None,
    sort_by: str = "date",
    sort_order: str = "desc",
    limit: int = 20,
    offset: int = 0,
) -> dict:
    q = db.query(Property).filter(Property.status == "AVAILABLE")
    if city:
        q = q.filter(func.lower(Property.city).contains(city.strip().lower()))
    if property_type:
        q = q.filter(Property.property_type == property_type)
    if min_price is not None:
        q = q.filter(Property.asking_price >= min_price)
    if max_price is not None:
        q = q.filter(Property.asking_price <= max_price)
    if min_bedrooms is not None:
        q = q.filter(Property.bedrooms >= min_bedrooms)
    if max_bedrooms is not None:
        q = q.filter(Property.bedrooms <= max_bedrooms)

    total = q.count()
    column = _SORT_COLUMNS.get(sort_by, Property.created_at)
    q = q.order_by(column.asc() if sort_order == "asc" else column.desc(), Property.id)
    rows = q.offset(offset).limit(limit).all()
    log.info("Property search: %d of %d results", len(rows), total)
    return {
        "properties": [property_to_dict(p) for p in rows],
        "total": total,
        "has_more": offset + len(rows) < total,
    }


# ── Statistics ────────────────────────────────────────────────────────


def city_stats(db: Session, cities: list[str]) -> dict:
    """Available listing count and average asking price per city.

    Returns {city: {"count": int, "average_price": float}} keyed by the
    names as given; cities without listings report zeros.
    """
    wanted = {c.lower(): c for c in cities}
    rows = (
        db.query(
            func.lower(Property.city),
            func.count(Property.id),
            func.avg(Property.asking_price),
        )
        .filter(Property.status == "AVAILABLE", func.lower(Property.city).in_(list(wanted)))
        .group_by(func.lower(Property.city))
        .all()
    )
    found = {city: (count, avg) for city, count, avg in rows}
    stats = {}
    for key, name in wanted.items():
        count, avg = found.get(key, (0, None))
        stats[name] = {"count": count, "average_price": round(float(avg or 0), 2)}
    return stats


def _days_between(start: datetime | None, end: datetime | None) -> float | None:
    if not start or not end:
        return None
    if start.tzinfo is None:
        start = start.replace(tzinfo=timezone.utc)
    if end.tzinfo is None:
        end = end.replace(tzinfo=timezone.utc)
    return (end - start).total_seconds() / 86400


def average_days_on_market(props: list[Property]) -> int:
    days = [d for d in (_days_between(p.created_at, p.updated_at) for p in props) if d is not None]
    if not days:
        return DEFAULT_DAYS_ON_MARKET
    return round(sum(days) / len(days))


def market_stats(db: Session) -> dict:
    now = datetime.now(timezone.utc)
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    total = db.query(func.count(Property.id)).scalar() or 0
    active = db.query(func.count(Property.id)).filter(Property.status == "AVAILABLE").scalar() or 0
    sold_this_month = (
        db.query(func.count(Property.id))
        .filter(Property.status == "SOLD", Property.updated_at >= month_start)
        .scalar()
        or 0
    )
    avg_price = (
        db.query(func.avg(Property.asking_price)).filter(Property.status == "AVAILABLE").scalar()
    )
    recently_sold = (
        db.query(Property)
        .filter(Property.status == "SOLD", Property.updated_at >= now - timedelta(days=90))
        .all()
    )
    return {
        "total_properties": total,
        "active_listings": active,
        "sold_this_month": sold_this_month,
        "average_price": round(float(avg_price or 0), 2),
        "average_days_on_market": average_days_on_market(recently_sold),
        **MARKET_GROWTH,
    }


def city_listing_stats(db: Session, city: str) -> dict:
    """Database side of the blended city market view."""
    count, avg = (
        db.query(func.count(Property.id), func.avg(Property.asking_price))
        .filter(Property.status == "AVAILABLE", func.lower(Property.city) == city.strip().lower())
        .one()
    )
    return {"listing_count": count or 0, "average_asking_price": round(float(avg or 0), 2)}


# ── Offers ────────────────────────────────────────────────────────────


def create_offer(db: Session, prop: Property, buyer_id: int | None, data: dict) -> Offer:
    if prop.status != "AVAILABLE":
        raise ValueError("Property is not available for offers")
    offer = Offer(property_id=prop.id, buyer_id=buyer_id, currency="EUR", status="PENDING", **data)
    db.add(offer)
    db.commit()
    db.refresh(offer)
    return offer


def property_offers(db: Session, property_id: int) -> list[dict]:
    rows = (
        db.query(Offer)
        .filter(Offer.property_id == property_id)
        .order_by(Offer.created_at.desc())
        .all()
    )
    return [offer_to_dict(o) for o in rows]
