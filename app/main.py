"""
main.py — OpenHaus API application

Builds the FastAPI app: logging, middleware, exception handlers and
router mounts. No routes live here except /health.

Middleware (outermost first):
- /api/v1/... is rewritten to /api/... so both prefixes work
- X-Request-ID (8 hex chars) bound into the log context for the request
- Security headers and X-API-Version on every response
- slowapi default per-IP limit

Error bodies always follow schemas/errors.ErrorResponse. Validation
failures are 400 with one {"field", "message"} entry per offending field;
anything unexpected is logged and answered with a generic 500.

Called by: uvicorn (app.main:app)
Depends on: config, logging_config, rate_limit, routers/*
"""

import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .exceptions import PaymentProcessingError, StorageError, UpstreamError
from .http_client import close_clients
from .logging_config import log_error, setup_logging
from .rate_limit import limiter
from .routers import (
    address_search,
    auth,
    energy,
    mortgage,
    payments,
    properties,
    uploads,
    users,
    valuations,
    woz,
)
from .schemas.errors import ErrorResponse

APP_VERSION = "1.0.0"
API_VERSION = "v1"

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("OpenHaus {} starting ({})", APP_VERSION, settings.environment)
    yield
    await close_clients()
    logger.info("OpenHaus shut down")


app = FastAPI(title="OpenHaus", version=APP_VERSION, lifespan=lifespan)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)


# ── Middleware ────────────────────────────────────────────────────────

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = uuid.uuid4().hex[:8]
    request.state.request_id = request_id
    with logger.contextualize(request_id=request_id):
        response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    for name, value in SECURITY_HEADERS.items():
        response.headers[name] = value
    response.headers["X-API-Version"] = API_VERSION
    return response


@app.middleware("http")
async def api_version_middleware(request: Request, call_next):
    path = request.scope["path"]
    if path.startswith(f"/api/{API_VERSION}/"):
        request.scope["path"] = "/api/" + path[len(f"/api/{API_VERSION}/"):]
    return await call_next(request)


# ── Exception handlers ────────────────────────────────────────────────


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "")


def _error(request: Request, status_code: int, error: str, detail: list | None = None,
           headers: dict | None = None, **extra) -> JSONResponse:
    body = ErrorResponse(
        error=error, status_code=status_code, request_id=_request_id(request), detail=detail
    ).model_dump()
    body.update(extra)
    return JSONResponse(status_code=status_code, content=body, headers=headers)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    extra = {}
    if isinstance(exc.detail, dict):
        extra = dict(exc.detail)
        message = str(extra.pop("message", "Request failed"))
    else:
        message = str(exc.detail)
    return _error(request, exc.status_code, message, headers=getattr(exc, "headers", None), **extra)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    fields = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path", "form")]
        fields.append({"field": ".".join(loc) or "body", "message": err.get("msg", "Invalid value")})
    logger.info("Validation failed on {}: {}", request.url.path, [f["field"] for f in fields])
    return _error(request, 400, "Validation failed", detail=fields)


@app.exception_handler(PaymentProcessingError)
async def payment_exception_handler(request: Request, exc: PaymentProcessingError):
    return _error(request, 502, str(exc), processor=exc.processor)


@app.exception_handler(UpstreamError)
async def upstream_exception_handler(request: Request, exc: UpstreamError):
    logger.warning("Upstream failure on {}: {}", request.url.path, exc)
    return _error(request, 502, "External service unavailable")


@app.exception_handler(StorageError)
async def storage_exception_handler(request: Request, exc: StorageError):
    return _error(request, 502, str(exc))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    log_error(
        f"Unhandled error on {request.method} {request.url.path}",
        exc,
        request_id=_request_id(request),
    )
    return _error(request, 500, "Internal server error")


# ── Routers ───────────────────────────────────────────────────────────

for _module in (
    auth, properties, valuations, woz, energy, users, uploads, payments, mortgage, address_search,
):
    app.include_router(_module.router)


@app.get("/health")
async def health():
    return {"status": "ok", "version": APP_VERSION}
