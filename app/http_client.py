"""Shared HTTP client — connection pooling for all outbound requests.

One module-level httpx.AsyncClient singleton used by every connector
(CBS, PDOK/WOZ, Nominatim, Overpass, PayPal, Square). 30 s default
timeout, no redirects, identifying User-Agent (Nominatim requires one).

Per-request timeout overrides via http.get(url, timeout=15).

Usage:
    from app.http_client import http
    resp = await http.post(url, json=payload, timeout=15)
"""

import httpx

from .config import settings

_LIMITS = httpx.Limits(
    max_connections=50,
    max_keepalive_connections=20,
    keepalive_expiry=30,
)

http = httpx.AsyncClient(
    timeout=30,
    limits=_LIMITS,
    follow_redirects=False,
    headers={"User-Agent": settings.http_user_agent},
)


async def close_clients():
    """Shut down the shared client. Call from app lifespan shutdown."""
    try:
        await http.aclose()
    except RuntimeError:
        pass
