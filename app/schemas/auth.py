"""
schemas/auth.py — Registration and login payloads

Business Rules:
- Emails must contain @ and are lowercased
- Passwords at least 8 characters, names at least 2
- Self-registration may only pick buyer or seller

Called by: routers/auth.py
Depends on: pydantic
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator


def _clean_email(v: str) -> str:
    v = (v or "").strip().lower()
    local, _, domain = v.partition("@")
    if not local or "." not in domain:
        raise ValueError("Invalid email address")
    return v


class RegisterRequest(BaseModel):
    email: str
    password: str = Field(min_length=8, max_length=128)
    name: str = Field(min_length=2, max_length=255)
    role: Literal["buyer", "seller"] = "buyer"

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return _clean_email(v)


class LoginRequest(BaseModel):
    email: str
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return _clean_email(v)


class UserOut(BaseModel):
    id: int
    email: str
    name: str | None = None
    role: str
    verified: bool = False
    created_at: str | None = None


class AuthResponse(BaseModel):
    user: UserOut
    access_token: str
    token_type: str = "bearer"
