"""
routers/users.py — User dashboard feeds

Every route is restricted to the user themselves or an admin
(dependencies.require_self_or_admin).

Called by: main.py (router mount)
Depends on: services/dashboard_service, services/property_service
"""

from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_self_or_admin
from ..models import User
from ..services import dashboard_service, property_service

router = APIRouter(tags=["users"])


@router.get("/api/users/{user_id}/properties")
def user_properties(
    user_id: int,
    user: User = Depends(require_self_or_admin),
    db: Session = Depends(get_db),
):
    return {"properties": property_service.user_properties(db, user_id)}


@router.get("/api/users/{user_id}/activities")
def user_activities(
    user_id: int,
    user: User = Depends(require_self_or_admin),
    db: Session = Depends(get_db),
):
    return {"activities": dashboard_service.user_activities(db, user_id)}


@router.get("/api/users/{user_id}/notifications")
def user_notifications(
    user_id: int,
    user: User = Depends(require_self_or_admin),
    db: Session = Depends(get_db),
):
    return {"notifications": dashboard_service.user_notifications(db, user_id)}


@router.get("/api/users/{user_id}/performance")
def user_performance(
    user_id: int,
    user: User = Depends(require_self_or_admin),
    db: Session = Depends(get_db),
):
    return dashboard_service.user_performance(db, user_id)


@router.get("/api/users/{user_id}/analytics")
def user_analytics(
    user_id: int,
    time_range: Literal["7d", "30d", "90d", "1y"] = Query("7d"),
    user: User = Depends(require_self_or_admin),
    db: Session = Depends(get_db),
):
    return dashboard_service.user_analytics(db, user_id, time_range)


@router.get("/api/users/{user_id}/energy-projects")
def user_energy_projects(
    user_id: int,
    user: User = Depends(require_self_or_admin),
    db: Session = Depends(get_db),
):
    return {"projects": dashboard_service.user_energy_projects(db, user_id)}
