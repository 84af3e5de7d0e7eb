"""Property listing and offer models."""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from .base import Base


class Property(Base):
    """A listing placed by a seller."""

    __tablename__ = "properties"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    address = Column(String(255), nullable=False)
    postal_code = Column(String(10), nullable=False)
    city = Column(String(100), nullable=False)
    province = Column(String(100))
    property_type = Column(String(20), nullable=False)  # house | apartment | townhouse
    bedrooms = Column(Integer, default=0)
    bathrooms = Column(Integer, default=0)
    square_meters = Column(Integer)
    construction_year = Column(Integer)

    asking_price = Column(Float, nullable=False)
    estimated_value = Column(Float)
    confidence_score = Column(Float)

    # AVAILABLE → PENDING → SOLD
    status = Column(String(20), default="AVAILABLE", nullable=False)
    energy_label = Column(String(10), default="Unknown")
    description = Column(Text)
    features = Column(JSON, default=list)
    images = Column(JSON, default=list)

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    owner = relationship("User", back_populates="properties")
    offers = relationship("Offer", back_populates="property", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_properties_city_status", "city", "status"),
        Index("ix_properties_user", "user_id"),
    )


class Offer(Base):
    """Bid made on a listing."""

    __tablename__ = "offers"
    id = Column(Integer, primary_key=True)
    property_id = Column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False
    )
    buyer_id = Column(Integer, ForeignKey("users.id"))

    amount = Column(Float, nullable=False)
    currency = Column(String(3), default="EUR")
    status = Column(String(20), default="PENDING")  # PENDING | ACCEPTED | REJECTED

    buyer_name = Column(String(255))
    buyer_email = Column(String(255))
    buyer_phone = Column(String(50))
    message = Column(Text)
    conditions = Column(Text)
    financing_confirmed = Column(Boolean, default=False)
    viewing_requested = Column(Boolean, default=False)

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    property = relationship("Property", back_populates="offers")
    buyer = relationship("User", foreign_keys=[buyer_id])

    __table_args__ = (Index("ix_offers_property", "property_id"),)
