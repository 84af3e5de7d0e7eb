"""
schemas/payments.py — PayPal and Square request payloads

Business Rules:
- Amounts must be positive; refunds without an amount refund in full
- Currency is a 3-letter ISO code, uppercased

Called by: routers/payments.py
Depends on: pydantic
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class _Currency(BaseModel):
    currency: str = "EUR"

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        v = v.strip().upper()
        if len(v) != 3 or not v.isalpha():
            raise ValueError("Currency must be a 3-letter ISO code")
        return v


class PayPalOrderCreate(_Currency):
    amount: float = Field(gt=0)
    description: str | None = Field(default=None, max_length=127)
    return_url: str = Field(min_length=1)
    cancel_url: str = Field(min_length=1)


class PayPalRefundCreate(_Currency):
    capture_id: str = Field(min_length=1)
    amount: float | None = Field(default=None, gt=0)


class SquarePaymentCreate(_Currency):
    amount: float = Field(gt=0)
    source_id: str = Field(min_length=1)
    customer_id: str | None = None
    note: str | None = Field(default=None, max_length=500)


class SquareCustomerCreate(BaseModel):
    given_name: str = Field(min_length=1)
    family_name: str = Field(min_length=1)
    email_address: str

    @field_validator("email_address")
    @classmethod
    def check_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v


class SquareRefundCreate(_Currency):
    payment_id: str = Field(min_length=1)
    amount: float | None = Field(default=None, gt=0)
