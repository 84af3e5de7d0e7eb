"""
routers/auth.py — Registration, login, token refresh and logout

Business Rules:
- Access token (15 min) in the JSON body; refresh token (7 days) only in
  an httponly, secure, SameSite=strict cookie
- Registration limited to 5 per hour per IP, login to 10 per 15 minutes
- Lockout after repeated failures lives in services/auth_service.py
- Every successful login writes a "User logged in" audit row

Called by: main.py (router mount)
Depends on: services/auth_service, services/audit_service, rate_limit
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from loguru import logger
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..exceptions import AuthenticationError, EmailTakenError
from ..rate_limit import client_ip, enforce_rate_limit
from ..schemas.auth import AuthResponse, LoginRequest, RegisterRequest
from ..services import auth_service
from ..services.audit_service import record_audit

router = APIRouter(tags=["auth"])

REFRESH_COOKIE = "refresh_token"
REGISTER_LIMIT = (5, 3600)
LOGIN_LIMIT = (10, 900)


def set_refresh_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=REFRESH_COOKIE,
        value=token,
        max_age=settings.refresh_token_expire_days * 24 * 3600,
        httponly=True,
        secure=True,
        samesite="strict",
        path="/",
    )


def _session_body(user, tokens: dict) -> dict:
    return {
        "user": auth_service.sanitize_user(user),
        "access_token": tokens["access_token"],
        "token_type": "bearer",
    }


@router.post("/api/auth/register", status_code=201, response_model=AuthResponse)
def register(
    payload: RegisterRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    enforce_rate_limit(
        request, "register", *REGISTER_LIMIT,
        message="Too many registration attempts. Please try again later.",
    )
    try:
        user = auth_service.register_user(
            db, payload.email, payload.password, payload.name, payload.role
        )
    except EmailTakenError as e:
        raise HTTPException(409, str(e))

    record_audit(db, "User registered", user_id=user.id, resource_type="user",
                 resource_id=user.id, new_values={"role": user.role}, request=request)
    tokens = auth_service.issue_tokens(user)
    set_refresh_cookie(response, tokens["refresh_token"])
    return _session_body(user, tokens)


@router.post("/api/auth/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    enforce_rate_limit(
        request, "login", *LOGIN_LIMIT,
        message="Too many login attempts. Please try again later.",
    )
    try:
        user = auth_service.authenticate(db, payload.email, payload.password, ip=client_ip(request))
    except AuthenticationError as e:
        raise HTTPException(401, str(e))

    record_audit(db, "User logged in", user_id=user.id, resource_type="user",
                 resource_id=user.id, request=request)
    tokens = auth_service.issue_tokens(user)
    set_refresh_cookie(response, tokens["refresh_token"])
    logger.info("Login: {} ({})", user.email, user.role)
    return _session_body(user, tokens)


@router.post("/api/auth/refresh", response_model=AuthResponse)
def refresh(request: Request, response: Response, db: Session = Depends(get_db)):
    try:
        user = auth_service.refresh_session(db, request.cookies.get(REFRESH_COOKIE))
    except AuthenticationError as e:
        raise HTTPException(401, str(e))
    tokens = auth_service.issue_tokens(user)
    set_refresh_cookie(response, tokens["refresh_token"])
    return _session_body(user, tokens)


@router.post("/api/auth/logout")
def logout(response: Response):
    response.delete_cookie(REFRESH_COOKIE, path="/", secure=True, httponly=True, samesite="strict")
    return {"ok": True}
