"""Energy renovation projects."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Integer, String, Text

from .base import Base


class EnergyProject(Base):
    __tablename__ = "energy_projects"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    property_id = Column(Integer, ForeignKey("properties.id", ondelete="SET NULL"))

    name = Column(String(255), nullable=False)
    location = Column(String(255))
    description = Column(Text)
    # planned | in_progress | completed
    status = Column(String(20), default="planned", nullable=False)
    label_before = Column(String(10))
    label_after = Column(String(10))
    measures = Column(JSON, default=list)

    total_cost = Column(Float, default=0)
    subsidy_amount = Column(Float, default=0)
    energy_savings = Column(Float, default=0)  # percent
    co2_reduction = Column(Float, default=0)  # tonnes / year
    annual_savings = Column(Float, default=0)  # EUR / year

    completed_at = Column(DateTime)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
