"""Football club directory, imported from spreadsheets."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint

from .base import Base


class Club(Base):
    __tablename__ = "clubs"
    id = Column(Integer, primary_key=True)
    country = Column(String(100), nullable=False)
    competition = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    website = Column(String(512))
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("country", "competition", "name", name="uq_clubs_identity"),
    )
