"""Valuation results and the WOZ lookup cache."""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)

from .base import Base


class Valuation(Base):
    __tablename__ = "valuations"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"))

    address = Column(String(255), nullable=False)
    postal_code = Column(String(10), nullable=False)
    estimated_value = Column(Float, nullable=False)
    confidence_score = Column(Float)
    woz_value = Column(Float)
    market_multiplier = Column(Float)
    data_source = Column(String(255))

    factors = Column(JSON, default=list)
    market_trends = Column(JSON)
    comparable_sales = Column(JSON, default=list)
    property_data = Column(JSON)  # WOZ attributes passed through

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))


class WozCache(Base):
    """Last lookup per address; rows older than 7 days are refetched."""

    __tablename__ = "woz_cache"
    id = Column(Integer, primary_key=True)
    address = Column(String(255), nullable=False)
    postal_code = Column(String(10), nullable=False)
    woz_value = Column(Integer, nullable=False)
    reference_year = Column(Integer)
    object_type = Column(String(100))
    surface_area = Column(Float)
    source_url = Column(String(512))
    details = Column(JSON)
    scraped_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("address", "postal_code", name="uq_woz_cache_address"),
    )
