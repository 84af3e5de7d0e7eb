"""
schemas/errors.py — Structured error response model

Shared by the HTTPException, RequestValidationError and catch-all
handlers in main.py. Validation failures fill detail with
[{"field": ..., "message": ...}] naming every offending field.
"""

from pydantic import BaseModel


class FieldError(BaseModel):
    field: str
    message: str


class ErrorResponse(BaseModel):
    error: str
    status_code: int
    request_id: str = ""
    detail: list | None = None
