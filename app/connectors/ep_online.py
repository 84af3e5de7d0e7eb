"""EP-Online — registered energy labels by address.

Optional: without an API key every lookup returns None and valuations
fall back to label C. Labels are cached for 30 days.
"""

import logging
import re

from ..cache.store import get_cached, set_cached
from ..config import settings
from ..exceptions import UpstreamError
from ..utils.normalization import normalize_postal_code
from .base import BaseConnector

log = logging.getLogger(__name__)

LABEL_TTL = 30 * 86400
_HOUSE_NUMBER_RE = re.compile(r"(\d+)\s*([a-zA-Z]?)\s*$")


def split_house_number(address: str) -> tuple[str | None, str | None]:
    """"Damrak 1A" → ("1", "A")."""
    m = _HOUSE_NUMBER_RE.search(address.strip())
    if not m:
        return None, None
    return m.group(1), (m.group(2) or None)


class EPOnlineConnector(BaseConnector):
    name = "ep_online"

    def __init__(self):
        super().__init__(timeout=10.0)
        self.base_url = settings.ep_online_url.rstrip("/")

    async def energy_label(self, address: str, postal_code: str) -> str | None:
        if not settings.ep_online_api_key:
            return None
        postcode = normalize_postal_code(postal_code)
        cache_key = f"energy_label:{address.lower()}:{postcode}"
        cached = get_cached(cache_key)
        if cached:
            return cached

        number, addition = split_house_number(address)
        if not number:
            return None
        params = {"postcode": postcode, "huisnummer": number}
        if addition:
            params["huisletter"] = addition
        try:
            data = await self._get_json(
                f"{self.base_url}/PandEnergielabel/Adres",
                params=params,
                headers={"Authorization": settings.ep_online_api_key},
            )
        except UpstreamError as e:
            log.warning("EP-Online lookup failed for %s %s: %s", address, postcode, e)
            return None

        records = data if isinstance(data, list) else [data]
        label = next((r.get("Energieklasse") or r.get("labelLetter") for r in records if r), None)
        if label:
            set_cached(cache_key, label, ttl_seconds=LABEL_TTL)
        return label


ep_online = EPOnlineConnector()
