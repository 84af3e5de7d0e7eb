"""
schemas/responses.py — Shared response models for OpenAPI documentation

Provides a pagination base and typed response models
for the main listing and valuation endpoints. Used as response_model= on
router decorators.

Called by: routers/*.py
Depends on: pydantic
"""

from __future__ import annotations

from pydantic import BaseModel, Field


# ── Base Wrappers ───────────────────────────────────────────────────────


class PaginatedResponse(BaseModel):
    total: int = 0


# ── Properties ──────────────────────────────────────────────────────────


class PropertyItem(BaseModel, extra="allow"):
    id: int
    address: str
    postal_code: str
    city: str
    property_type: str
    asking_price: float
    status: str = "AVAILABLE"
    energy_label: str | None = None
    images: list[str] = Field(default_factory=list)


class PropertyListResponse(PaginatedResponse):
    properties: list[PropertyItem] = Field(default_factory=list)


class PropertySearchResponse(PropertyListResponse):
    has_more: bool = False


# ── Valuations ──────────────────────────────────────────────────────────


class ValuationFactor(BaseModel):
    factor: str
    impact: float
    description: str


class ValuationResponse(BaseModel, extra="allow"):
    id: int | None = None
    address: str
    postal_code: str
    estimated_value: float
    confidence_score: float | None = None
    woz_value: float = 0
    market_multiplier: float = 1
    factors: list[ValuationFactor] = Field(default_factory=list)
    data_source: str = ""
    market_trends: dict = Field(default_factory=dict)
    comparable_sales: list[dict] = Field(default_factory=list)
    property_data: dict = Field(default_factory=dict)


# ── Energy ──────────────────────────────────────────────────────────────


class EnergyProjectListResponse(PaginatedResponse):
    projects: list[dict] = Field(default_factory=list)
