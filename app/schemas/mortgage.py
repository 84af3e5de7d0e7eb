"""
schemas/mortgage.py — Mortgage calculation payload

Called by: routers/mortgage.py
Depends on: pydantic
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class MortgageRequest(BaseModel):
    gross_annual_income: float = Field(ge=1)
    property_value: float = Field(ge=1)
    own_capital: float = Field(default=0, ge=0)
    monthly_obligations: float = Field(default=0, ge=0)
    has_partner: bool = False
    partner_income: float = Field(default=0, ge=0)
    buyer_age: int | None = Field(default=None, ge=18, le=100)
    is_first_home: bool = False
    term_years: int = Field(default=30, ge=1, le=50)
