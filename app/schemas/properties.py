"""
schemas/properties.py — Listing, search and offer payloads

Business Rules:
- Dutch postal code (1234 AB), stored normalized
- property_type: house | apartment | townhouse
- construction_year between 1800 and the current year
- Description at least 10 characters
- Offer amount must be positive

Called by: routers/properties.py
Depends on: pydantic, utils/normalization
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from ..utils.normalization import is_valid_postal_code, normalize_postal_code

PropertyType = Literal["house", "apartment", "townhouse"]
PropertyStatus = Literal["AVAILABLE", "PENDING", "SOLD"]
EnergyLabel = Literal["A+++", "A++", "A+", "A", "B", "C", "D", "E", "F", "G", "Unknown"]


def _postal_code(v: str | None) -> str | None:
    if v is None:
        return None
    if not is_valid_postal_code(v):
        raise ValueError("Invalid Dutch postal code")
    return normalize_postal_code(v)


def _construction_year(v: int | None) -> int | None:
    if v is not None and not 1800 <= v <= datetime.now().year:
        raise ValueError(f"Construction year must be between 1800 and {datetime.now().year}")
    return v


class PropertyCreate(BaseModel):
    address: str = Field(min_length=1, max_length=255)
    postal_code: str
    city: str = Field(min_length=1, max_length=100)
    province: str | None = Field(default=None, max_length=100)
    property_type: PropertyType
    bedrooms: int = Field(default=0, ge=0)
    bathrooms: int = Field(default=0, ge=0)
    square_meters: int = Field(ge=1)
    construction_year: int | None = None
    asking_price: float = Field(ge=1)
    energy_label: EnergyLabel = "Unknown"
    description: str = Field(min_length=10)
    features: list[str] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)

    @field_validator("postal_code")
    @classmethod
    def check_postal_code(cls, v: str) -> str:
        return _postal_code(v)

    @field_validator("construction_year")
    @classmethod
    def check_year(cls, v: int | None) -> int | None:
        return _construction_year(v)


class PropertyUpdate(BaseModel):
    address: str | None = Field(default=None, min_length=1, max_length=255)
    postal_code: str | None = None
    city: str | None = Field(default=None, min_length=1, max_length=100)
    province: str | None = Field(default=None, max_length=100)
    property_type: PropertyType | None = None
    bedrooms: int | None = Field(default=None, ge=0)
    bathrooms: int | None = Field(default=None, ge=0)
    square_meters: int | None = Field(default=None, ge=1)
    construction_year: int | None = None
    asking_price: float | None = Field(default=None, ge=1)
    status: PropertyStatus | None = None
    energy_label: EnergyLabel | None = None
    description: str | None = Field(default=None, min_length=10)
    features: list[str] | None = None
    images: list[str] | None = None

    @field_validator("postal_code")
    @classmethod
    def check_postal_code(cls, v: str | None) -> str | None:
        return _postal_code(v)

    @field_validator("construction_year")
    @classmethod
    def check_year(cls, v: int | None) -> int | None:
        return _construction_year(v)


class OfferCreate(BaseModel):
    amount: float = Field(gt=0)
    buyer_name: str = Field(min_length=1, max_length=255)
    buyer_email: str
    buyer_phone: str | None = Field(default=None, max_length=50)
    message: str | None = None
    conditions: str | None = None
    financing_confirmed: bool = False
    viewing_requested: bool = False

    @field_validator("buyer_email")
    @classmethod
    def check_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v
