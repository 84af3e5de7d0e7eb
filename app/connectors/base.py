"""Shared plumbing for outbound API connectors.

Every connector goes through _request(): one call on the shared httpx
client, non-2xx raised, transport and HTTP errors logged with the
connector's name and re-raised as UpstreamError. No retries; callers
decide whether to fall back or fail.
"""

import logging
from abc import ABC

import httpx

from ..exceptions import UpstreamError
from ..http_client import http

log = logging.getLogger(__name__)


class BaseConnector(ABC):
    name = "upstream"

    def __init__(self, timeout: float = 20.0):
        self.timeout = timeout

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        kwargs.setdefault("timeout", self.timeout)
        try:
            r = await http.request(method, url, **kwargs)
            r.raise_for_status()
            return r
        except httpx.HTTPStatusError as e:
            log.warning(
                f"{self.__class__.__name__} {method} {url} → {e.response.status_code}"
            )
            raise UpstreamError(self.name, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            log.warning(f"{self.__class__.__name__} {method} {url} failed: {e}")
            raise UpstreamError(self.name, str(e) or e.__class__.__name__) from e

    async def _get_json(self, url: str, **kwargs):
        r = await self._request("GET", url, **kwargs)
        try:
            return r.json()
        except ValueError as e:
            raise UpstreamError(self.name, "Malformed JSON reply") from e
