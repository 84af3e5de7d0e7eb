"""
schemas/valuation.py — Valuation and WOZ lookup payloads

Called by: routers/valuations.py, routers/woz.py
Depends on: pydantic, utils/normalization
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from ..utils.normalization import is_valid_postal_code, normalize_postal_code


class AddressRequest(BaseModel):
    address: str = Field(min_length=1, max_length=255)
    postal_code: str

    @field_validator("address")
    @classmethod
    def strip_address(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Address is required")
        return v

    @field_validator("postal_code")
    @classmethod
    def check_postal_code(cls, v: str) -> str:
        if not is_valid_postal_code(v):
            raise ValueError("Invalid Dutch postal code format")
        return normalize_postal_code(v)
