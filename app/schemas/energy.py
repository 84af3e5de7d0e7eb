"""
schemas/energy.py — Energy project, assessment and price optimization payloads

Called by: routers/energy.py
Depends on: pydantic, schemas/valuation
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from .valuation import AddressRequest

ProjectStatus = Literal["planned", "in_progress", "completed"]


class EnergyProjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    location: str | None = Field(default=None, max_length=255)
    description: str | None = None
    property_id: int | None = None
    status: ProjectStatus = "planned"
    label_before: str | None = Field(default=None, max_length=10)
    label_after: str | None = Field(default=None, max_length=10)
    measures: list[str] = Field(default_factory=list)
    total_cost: float = Field(default=0, ge=0)
    subsidy_amount: float = Field(default=0, ge=0)
    energy_savings: float = Field(default=0, ge=0, le=100)
    co2_reduction: float = Field(default=0, ge=0)
    annual_savings: float = Field(default=0, ge=0)


class EnergyAssessmentRequest(AddressRequest):
    property_type: str = Field(default="house", max_length=50)
    current_heating: str = Field(default="gas", max_length=50)


class PriceOptimizationRequest(BaseModel):
    current_heating: str = Field(min_length=1, max_length=50)
    planned_measures: list[str] = Field(min_length=1, max_length=10)
    region: str | None = Field(default=None, max_length=100)
