"""
routers/energy.py — Energy renovation projects, assessments and market intelligence

Business Rules:
- Assessments are rate limited to 30 per hour per IP (each one queries
  EP-Online)
- An address without a registered energy label is a 404 with a suggestion
- POST market-intelligence returns price optimization advice for the
  planned measures; GET returns the market overview

Called by: main.py (router mount)
Depends on: services/energy_service
"""

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_user, require_user
from ..exceptions import EnergyLabelUnavailable
from ..models import User
from ..rate_limit import enforce_rate_limit
from ..schemas.energy import EnergyAssessmentRequest, EnergyProjectCreate, PriceOptimizationRequest
from ..schemas.responses import EnergyProjectListResponse
from ..services import energy_service
from ..services.audit_service import record_audit

router = APIRouter(tags=["energy"])

ASSESSMENT_LIMIT = (30, 3600)


@router.get("/api/energy/projects", response_model=EnergyProjectListResponse)
def list_projects(
    status: Literal["planned", "in_progress", "completed"] | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return energy_service.list_projects(db, status=status, limit=limit)


@router.post("/api/energy/projects", status_code=201)
def create_project(
    payload: EnergyProjectCreate,
    request: Request,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    project = energy_service.create_project(db, user.id, payload.model_dump())
    record_audit(
        db, "Energy project created", user_id=user.id, resource_type="energy_project",
        resource_id=project.id, new_values={"name": project.name}, request=request,
    )
    return energy_service.project_to_dict(project)


@router.post("/api/energy/assessment")
async def energy_assessment(payload: EnergyAssessmentRequest, request: Request, db: Session = Depends(get_db)):
    enforce_rate_limit(request, "energy_assessment", *ASSESSMENT_LIMIT)
    try:
        assessment = await energy_service.energy_assessment(
            payload.address, payload.postal_code, payload.property_type, payload.current_heating,
        )
    except EnergyLabelUnavailable:
        raise HTTPException(404, {
            "message": "Energy label not available for this address",
            "suggestion": "Controleer het adres en de postcode of vraag een energielabel aan",
        })
    user = get_user(request, db)
    record_audit(
        db, "Energy assessment created", user_id=user.id if user else None,
        resource_type="energy_assessment", resource_id=payload.postal_code,
        new_values={"address": payload.address,
                    "energy_label": assessment["current_energy_label"],
                    "potential_savings": assessment["potential_savings"]},
        request=request,
    )
    return {"assessment": assessment}


@router.get("/api/energy/market-intelligence")
async def market_intelligence(region: str | None = Query(None, max_length=100)):
    return await energy_service.market_intelligence(region.strip() if region else None)


@router.post("/api/energy/market-intelligence")
def price_optimization(payload: PriceOptimizationRequest, request: Request, db: Session = Depends(get_db)):
    report = energy_service.price_optimization_report(
        payload.current_heating, payload.planned_measures,
        region=payload.region.strip() if payload.region else None,
    )
    user = get_user(request, db)
    optimization = report["optimization"]
    record_audit(
        db, "Price optimization analysis completed", user_id=user.id if user else None,
        resource_type="energy_price_optimization",
        new_values={"current_heating": payload.current_heating,
                    "planned_measures": payload.planned_measures,
                    "savings": optimization["savings"],
                    "payback_period": optimization["payback_period"]},
        request=request,
    )
    return report
