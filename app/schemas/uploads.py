"""
schemas/uploads.py — Image storage payloads

Business Rules:
- Presigned uploads accept JPEG, PNG and WebP up to 10 MB
- property_id is a listing id or draft id: letters, digits, "-" and "_"

Called by: routers/uploads.py
Depends on: pydantic
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from ..utils.file_validation import MAX_FILE_SIZE

# Numeric listing id or a draft id; never a path
PROPERTY_ID_PATTERN = r"^[A-Za-z0-9_-]+$"


class PresignedUrlRequest(BaseModel):
    file_name: str = Field(min_length=1, max_length=255)
    property_id: str = Field(min_length=1, max_length=64, pattern=PROPERTY_ID_PATTERN)
    file_type: Literal["image/jpeg", "image/jpg", "image/png", "image/webp"]
    file_size: int = Field(gt=0, le=MAX_FILE_SIZE)


class ImageDeleteRequest(BaseModel):
    key: str = Field(min_length=1, max_length=512)
