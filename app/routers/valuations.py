"""
routers/valuations.py — Property valuations

Business Rules:
- 20 valuations per hour per IP
- A valuation needs a WOZ value; without one the address is a 404
- Every valuation is stored; the signed-in user (if any) is recorded
- Stored valuations missing newer fields are filled with defaults

Called by: main.py (router mount)
Depends on: services/valuation_service, services/woz_service
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from loguru import logger
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_user
from ..models import Valuation
from ..rate_limit import enforce_rate_limit
from ..schemas.responses import ValuationResponse
from ..schemas.valuation import AddressRequest
from ..services import valuation_service
from ..services.audit_service import record_audit

router = APIRouter(tags=["valuations"])

VALUATION_LIMIT = (20, 3600)


@router.post("/api/valuation", response_model=ValuationResponse)
async def create_valuation(
    payload: AddressRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    enforce_rate_limit(
        request, "valuation", *VALUATION_LIMIT,
        message="Too many valuation requests. Please try again later.",
    )
    user = get_user(request, db)
    property_data = await valuation_service.get_property_data(db, payload.address, payload.postal_code)
    if property_data is None:
        raise HTTPException(404, "No WOZ data found for this address")

    result = valuation_service.cached_valuation(property_data)
    row = valuation_service.save_valuation(
        db, payload.address, payload.postal_code, result, user_id=user.id if user else None
    )
    record_audit(
        db, "Valuation created", user_id=user.id if user else None,
        resource_type="valuation", resource_id=row.id,
        new_values={"address": payload.address, "estimated_value": result["estimated_value"]},
        request=request,
    )
    logger.info("Valuation {} for {}: {}", row.id, payload.address, result["estimated_value"])
    return {**result, "id": row.id, "address": row.address, "postal_code": row.postal_code}


@router.get("/api/valuations")
def list_valuations(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    q = db.query(Valuation)
    total = q.count()
    rows = q.order_by(Valuation.created_at.desc(), Valuation.id.desc()).offset(offset).limit(limit).all()
    return {"valuations": [valuation_service.valuation_to_dict(v) for v in rows], "total": total}


@router.get("/api/valuations/{valuation_id}", response_model=ValuationResponse)
def get_valuation(valuation_id: int, db: Session = Depends(get_db)):
    row = db.get(Valuation, valuation_id)
    if not row:
        raise HTTPException(404, "Valuation not found")
    return valuation_service.valuation_to_dict(row)
