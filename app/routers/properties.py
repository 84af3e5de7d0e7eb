"""
routers/properties.py — Listings, search, market statistics and offers

Business Rules:
- Anyone may browse, search and make offers; creating a listing needs a
  signed-in user; edits and deletes need the owner or an admin
- Listing writes drop the cached search results
- city-market blends listing stats with CBS housing data by approximate
  region name; without a match the database figures stand
  (source="database_only")
- Offers are recorded in the owner's audit trail so they show up on the
  seller's dashboard

Called by: main.py (router mount)
Depends on: services/property_service, services/region_blending,
            connectors/cbs, connectors/openstreetmap
"""

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from loguru import logger
from sqlalchemy.orm import Session

from ..connectors.cbs import cbs
from ..connectors.openstreetmap import osm
from ..database import get_db
from ..dependencies import ensure_owner_or_admin, get_user, require_user
from ..exceptions import UpstreamError
from ..models import Property, User
from ..schemas.properties import OfferCreate, PropertyCreate, PropertyUpdate
from ..schemas.responses import PropertyListResponse, PropertySearchResponse
from ..services import property_service
from ..services.audit_service import record_audit
from ..services.region_blending import blend_city_market

router = APIRouter(tags=["properties"])


def _get_property(db: Session, property_id: int) -> Property:
    prop = db.get(Property, property_id)
    if not prop:
        raise HTTPException(404, "Property not found")
    return prop


@router.get("/api/properties", response_model=PropertyListResponse)
def list_properties(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    return property_service.list_available(db, limit=limit, offset=offset)


@router.post("/api/properties", status_code=201)
def create_property(
    payload: PropertyCreate,
    request: Request,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    prop = property_service.create_property(db, user.id, payload.model_dump())
    record_audit(
        db, "Property created", user_id=user.id, resource_type="property",
        resource_id=prop.id, new_values={"address": prop.address, "city": prop.city},
        request=request,
    )
    return property_service.property_to_dict(prop)


# ── Search & statistics ───────────────────────────────────────────────


@router.get("/api/properties/search", response_model=PropertySearchResponse)
def search_properties(
    city: str | None = Query(None, max_length=100),
    property_type: Literal["house", "apartment", "townhouse"] | None = Query(None),
    min_price: float | None = Query(None, ge=0),
    max_price: float | None = Query(None, ge=0),
    min_bedrooms: int | None = Query(None, ge=0),
    max_bedrooms: int | None = Query(None, ge=0),
    sort_by: Literal["price", "date", "size"] = Query("date"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    return property_service.search_properties(
        db,
        city=city,
        property_type=property_type,
        min_price=min_price,
        max_price=max_price,
        min_bedrooms=min_bedrooms,
        max_bedrooms=max_bedrooms,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )


@router.get("/api/properties/city-stats")
def city_stats(cities: str | None = Query(None), db: Session = Depends(get_db)):
    if not cities:
        raise HTTPException(400, "Missing cities parameter")
    names = [c.strip() for c in cities.split(",") if c.strip()]
    if not names:
        raise HTTPException(400, "No cities provided")
    return property_service.city_stats(db, names)


@router.get("/api/properties/city-stats/metrics")
async def city_metrics(q: str | None = Query(None, max_length=100)):
    if not q or not q.strip():
        raise HTTPException(400, "Missing q parameter")
    metrics = await osm.city_metrics(q.strip())
    if metrics is None:
        raise HTTPException(404, "City not found")
    return metrics


@router.get("/api/properties/market-stats")
def market_stats(db: Session = Depends(get_db)):
    return property_service.market_stats(db)


@router.get("/api/properties/city-market")
async def city_market(
    city: str = Query(..., min_length=1, max_length=100),
    db: Session = Depends(get_db),
):
    db_stats = property_service.city_listing_stats(db, city)
    try:
        housing = await cbs.housing_market()
    except UpstreamError as e:
        logger.warning("CBS housing data unavailable for {}: {}", city, e)
        housing = []
    return blend_city_market(city, db_stats, housing)


# ── Single listing ────────────────────────────────────────────────────


@router.get("/api/properties/{property_id}")
def get_property(property_id: int, db: Session = Depends(get_db)):
    return property_service.property_to_dict(_get_property(db, property_id))


@router.put("/api/properties/{property_id}")
def update_property(
    property_id: int,
    payload: PropertyUpdate,
    request: Request,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    prop = _get_property(db, property_id)
    ensure_owner_or_admin(user, prop.user_id)
    changes = payload.model_dump(exclude_unset=True)
    old = property_service.update_property(db, prop, changes)
    if old:
        record_audit(
            db, "Property updated", user_id=user.id, resource_type="property",
            resource_id=prop.id,
            old_values={k: v for k, v in old.items() if k not in ("features", "images")},
            new_values={"address": prop.address, "changed": sorted(old)},
            request=request,
        )
    return property_service.property_to_dict(prop)


@router.delete("/api/properties/{property_id}")
def delete_property(
    property_id: int,
    request: Request,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    prop = _get_property(db, property_id)
    ensure_owner_or_admin(user, prop.user_id)
    address = prop.address
    property_service.delete_property(db, prop)
    record_audit(
        db, "Property deleted", user_id=user.id, resource_type="property",
        resource_id=property_id, old_values={"address": address}, request=request,
    )
    return {"ok": True}


# ── Offers ────────────────────────────────────────────────────────────


@router.post("/api/properties/{property_id}/offers", status_code=201)
def create_offer(
    property_id: int,
    payload: OfferCreate,
    request: Request,
    db: Session = Depends(get_db),
):
    prop = _get_property(db, property_id)
    buyer = get_user(request, db)
    try:
        offer = property_service.create_offer(
            db, prop, buyer.id if buyer else None, payload.model_dump()
        )
    except ValueError as e:
        raise HTTPException(400, str(e))
    record_audit(
        db, "Offer created", user_id=prop.user_id, resource_type="offer",
        resource_id=offer.id,
        new_values={"amount": offer.amount, "property_id": prop.id, "address": prop.address},
        request=request,
    )
    return property_service.offer_to_dict(offer)


@router.get("/api/properties/{property_id}/offers")
def list_offers(
    property_id: int,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    prop = _get_property(db, property_id)
    ensure_owner_or_admin(user, prop.user_id)
    return {"offers": property_service.property_offers(db, property_id)}
