"""Registration, password login with lockout, and token refresh.

Business Rules:
- Emails are stored lowercased and trimmed; one account per email
- Self-registration may pick buyer or seller, never admin
- 5 consecutive failed logins lock the account for 30 minutes
  (settings.max_login_attempts / settings.lockout_minutes)
- A successful login clears the failure counter and the lock
- Unknown email and wrong password produce the same error message
- Refresh tokens are re-checked against the user row (must still exist
  and be active)

Called by: routers/auth.py
Depends on: models/auth.py, security.py, logging_config.py
"""

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..config import settings
from ..exceptions import AuthenticationError, EmailTakenError
from ..logging_config import security_event
from ..models import User
from ..security import (
    create_access_token,
    create_refresh_token,
    generate_token,
    hash_password,
    verify_password,
    verify_refresh_token,
)

log = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
ACCOUNT_LOCKED = "Account is temporarily locked"


def sanitize_user(user: User) -> dict:
    """Public view of a user (no hashes or tokens)."""
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "role": user.role,
        "verified": bool(user.verified),
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def issue_tokens(user: User) -> dict:
    return {
        "access_token": create_access_token(user.id, user.email, user.role),
        "refresh_token": create_refresh_token(user.id),
    }


def find_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()


def register_user(db: Session, email: str, password: str, name: str, role: str = "buyer") -> User:
    if find_by_email(db, email):
        raise EmailTakenError("User with this email already exists")
    user = User(
        email=email.strip().lower(),
        name=name.strip(),
        password_hash=hash_password(password),
        role=role if role in ("buyer", "seller") else "buyer",
        verified=False,
        verification_token=generate_token(),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    log.info("Registered user %s (%s)", user.id, user.role)
    return user


def _is_locked(user: User, now: datetime) -> bool:
    if not user.locked_until:
        return False
    locked_until = user.locked_until
    if locked_until.tzinfo is None:
        locked_until = locked_until.replace(tzinfo=timezone.utc)
    return locked_until > now


def authenticate(db: Session, email: str, password: str, ip: str | None = None) -> User:
    """Check credentials and maintain the lockout counters.

    Raises AuthenticationError with a user-safe message on failure.
    """
    now = datetime.now(timezone.utc)
    user = find_by_email(db, email)
    if user is None:
        security_event("Login attempt for unknown email", email=email.strip().lower(), ip=ip)
        raise AuthenticationError(INVALID_CREDENTIALS)

    if _is_locked(user, now):
        security_event("Login attempt on locked account", user_id=user.id, ip=ip)
        raise AuthenticationError(ACCOUNT_LOCKED)

    if not user.is_active:
        raise AuthenticationError(INVALID_CREDENTIALS)

    if not verify_password(password, user.password_hash):
        user.failed_login_attempts = (user.failed_login_attempts or 0) + 1
        if user.failed_login_attempts >= settings.max_login_attempts:
            user.locked_until = now + timedelta(minutes=settings.lockout_minutes)
            security_event(
                "Account locked after failed logins",
                user_id=user.id,
                attempts=user.failed_login_attempts,
                ip=ip,
            )
        db.commit()
        raise AuthenticationError(INVALID_CREDENTIALS)

    user.failed_login_attempts = 0
    user.locked_until = None
    user.last_login_at = now
    db.commit()
    return user


def refresh_session(db: Session, refresh_token: str | None) -> User:
    if not refresh_token:
        raise AuthenticationError("Refresh token missing")
    try:
        payload = verify_refresh_token(refresh_token)
    except ValueError as e:
        security_event("Invalid refresh token", reason=str(e))
        raise AuthenticationError("Invalid refresh token") from e
    user = db.get(User, int(payload["sub"]))
    if user is None or not user.is_active:
        raise AuthenticationError("Invalid refresh token")
    return user
