"""Auth & user models."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from .base import Base


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    email = Column(String(255), unique=True, nullable=False)
    name = Column(String(255))
    password_hash = Column(String(255))
    role = Column(String(20), default="buyer")  # buyer | seller | admin
    verified = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)

    # Lockout after repeated failed logins
    failed_login_attempts = Column(Integer, default=0, nullable=False)
    locked_until = Column(DateTime)
    last_login_at = Column(DateTime)

    verification_token = Column(String(64))
    reset_token = Column(String(64))
    reset_token_expires = Column(DateTime)

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    properties = relationship("Property", back_populates="owner")
    audit_logs = relationship("AuditLog", back_populates="user")
