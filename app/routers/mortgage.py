"""
routers/mortgage.py — Mortgage affordability calculator

Called by: main.py (router mount)
Depends on: services/mortgage_service
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from loguru import logger

from ..schemas.mortgage import MortgageRequest
from ..services import mortgage_service

router = APIRouter(tags=["mortgage"])


@router.post("/api/mortgage/calculate")
def calculate_mortgage(payload: MortgageRequest):
    try:
        result = mortgage_service.calculate(**payload.model_dump())
    except mortgage_service.MortgageNotPossible as e:
        return JSONResponse(
            status_code=400,
            content={"error": str(e), "status_code": 400, **e.constraints},
        )
    logger.info(
        "Mortgage calculation: value {} loan {}",
        payload.property_value, result["calculation"]["max_loan_amount"],
    )
    return result
