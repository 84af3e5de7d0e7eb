"""
routers/woz.py — WOZ value lookup

Business Rules:
- Lookups are rate limited to 30 per hour per IP
- A failed lookup is a 400 carrying the reason and a suggestion
- GET reports whether the remote lookup chain is operational

Called by: main.py (router mount)
Depends on: services/woz_service
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_user
from ..rate_limit import enforce_rate_limit
from ..schemas.valuation import AddressRequest
from ..services import woz_service
from ..services.audit_service import record_audit

router = APIRouter(tags=["woz"])

WOZ_LIMIT = (30, 3600)
HEALTH_ADDRESS = ("Dam 1", "1012 JS")


@router.post("/api/woz/scrape")
async def lookup_woz(payload: AddressRequest, request: Request, db: Session = Depends(get_db)):
    enforce_rate_limit(request, "woz", *WOZ_LIMIT)
    result = await woz_service.get_woz_value(db, payload.address, payload.postal_code)
    if not result["success"]:
        raise HTTPException(400, {
            "message": result["error"] or "WOZ lookup failed",
            "suggestion": "Controleer het adres en de postcode en probeer het opnieuw",
        })
    user = get_user(request, db)
    record_audit(
        db, "WOZ data retrieved", user_id=user.id if user else None,
        resource_type="woz", resource_id=payload.postal_code,
        new_values={"address": payload.address, "woz_value": result["data"]["woz_value"],
                    "cached": result["cached"]},
        request=request,
    )
    return {
        "success": True,
        "data": result["data"],
        "cached": result["cached"],
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/api/woz/scrape")
async def woz_health(db: Session = Depends(get_db)):
    result = await woz_service.get_woz_value(db, *HEALTH_ADDRESS)
    return {
        "status": "operational" if result["success"] else "degraded",
        "cached": result["cached"],
        "error": result["error"],
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
