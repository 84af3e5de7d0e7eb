"""
dependencies.py — Shared FastAPI Dependencies

Reusable dependency functions for authentication and authorization.
All routers import from here instead of defining their own auth logic.

Business Rules:
- get_user returns None if no valid bearer token (non-throwing)
- require_user raises 401 if not authenticated, 403 if deactivated
- require_admin raises 403 if user.role != "admin"
- require_self_or_admin raises 403 unless the path user_id is the caller
- ensure_owner_or_admin raises 403 unless the caller owns the resource

Called by: all routers
Depends on: models, database, security
"""

import logging

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from .database import get_db
from .logging_config import security_event
from .models import User
from .security import verify_access_token

log = logging.getLogger(__name__)


# ── Authentication ────────────────────────────────────────────────────


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def get_user(request: Request, db: Session) -> User | None:
    """Return the user named by the bearer token, or None."""
    token = _bearer_token(request)
    if not token:
        return None
    try:
        payload = verify_access_token(token)
    except ValueError as e:
        security_event("Invalid access token", path=request.url.path, reason=str(e))
        return None
    try:
        return db.get(User, int(payload["sub"]))
    except (KeyError, ValueError):
        return None


def require_user(request: Request, db: Session = Depends(get_db)) -> User:
    """Dependency: raises 401 if no authenticated user, 403 if deactivated."""
    user = get_user(request, db)
    if not user:
        raise HTTPException(401, "Not authenticated", headers={"WWW-Authenticate": "Bearer"})
    if not getattr(user, "is_active", True):
        raise HTTPException(403, "Account deactivated")
    return user


def is_admin(user: User) -> bool:
    """Check if user has admin privileges (by role)."""
    return user.role == "admin"


def require_admin(user: User = Depends(require_user)) -> User:
    """Dependency: raises 403 if user is not an admin."""
    if not is_admin(user):
        raise HTTPException(403, "Admin access required")
    return user


def require_self_or_admin(user_id: int, user: User = Depends(require_user)) -> User:
    """Dependency for /users/{user_id}/… routes."""
    if user.id != user_id and not is_admin(user):
        raise HTTPException(403, "Forbidden")
    return user


def ensure_owner_or_admin(user: User, owner_id: int | None) -> None:
    """Raise 403 unless user owns the resource or is an admin."""
    if owner_id != user.id and not is_admin(user):
        raise HTTPException(403, "Forbidden")
