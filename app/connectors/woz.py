"""WOZ value lookup — PDOK Locatieserver + WOZ-waardeloket API.

Two steps:
  1. Resolve address + postal code to a BAG nummeraanduiding id via the
     PDOK Locatieserver free-text search.
  2. Fetch the WOZ object and its value history for that id.

Returns a flat dict; values arriving as text are run through the same
parsers used for scraped pages.
"""

import logging
from datetime import datetime, timezone

from ..config import settings
from ..exceptions import UpstreamError
from ..utils.normalization import (
    normalize_postal_code,
    parse_surface_area,
    parse_woz_value,
    parse_year,
)
from .base import BaseConnector

log = logging.getLogger(__name__)


def _value(raw) -> int | None:
    if raw is None:
        return None
    if isinstance(raw, (int, float)):
        return int(raw)
    return parse_woz_value(str(raw))


def build_woz_data(address: str, postal_code: str, doc: dict, payload: dict, source_url: str) -> dict:
    """Shape a WOZ-waardeloket reply into the stored lookup record."""
    obj = payload.get("wozObject") or {}
    history = sorted(
        payload.get("wozWaarden") or [],
        key=lambda w: w.get("peildatum") or "",
        reverse=True,
    )
    if not history:
        raise UpstreamError("woz", "No WOZ values for address")

    latest = history[0]
    woz_value = _value(latest.get("vastgesteldeWaarde"))
    if not woz_value:
        raise UpstreamError("woz", "Could not extract WOZ value")

    oppervlakte = obj.get("oppervlakte") or doc.get("oppervlakte")
    surface = parse_surface_area(f"{oppervlakte} m²") if oppervlakte else None
    bouwjaar = obj.get("bouwjaar") or doc.get("bouwjaar")

    return {
        "address": address,
        "postal_code": normalize_postal_code(postal_code),
        "woz_value": woz_value,
        "reference_year": parse_year(latest.get("peildatum")) or datetime.now().year - 1,
        "object_type": obj.get("gebruiksdoel") or doc.get("type") or "Woning",
        "surface_area": surface,
        "scraped_at": datetime.now(timezone.utc).isoformat(),
        "source_url": source_url,
        "city": doc.get("woonplaatsnaam"),
        "grond_oppervlakte": str(obj["grondoppervlakte"]) if obj.get("grondoppervlakte") else None,
        "bouwjaar": str(bouwjaar) if bouwjaar else None,
        "gebruiksdoel": obj.get("gebruiksdoel"),
        "oppervlakte": str(oppervlakte) if oppervlakte else None,
        "identificatie": str(obj["wozobjectnummer"]) if obj.get("wozobjectnummer") else None,
        "adresseerbaar_object": obj.get("adresseerbaarobjectid") or doc.get("adresseerbaarobject_id"),
        "nummeraanduiding": obj.get("nummeraanduidingid") or doc.get("nummeraanduiding_id"),
        "woz_values": [
            {"date": w.get("peildatum"), "value": str(_value(w.get("vastgesteldeWaarde")) or "")}
            for w in history
        ],
    }


class WozConnector(BaseConnector):
    name = "woz"

    def __init__(self):
        super().__init__(timeout=15.0)
        self.locatieserver = settings.pdok_locatieserver_url.rstrip("/")
        self.api_url = settings.woz_api_url.rstrip("/")

    async def resolve_address(self, address: str, postal_code: str) -> dict | None:
        data = await self._get_json(
            f"{self.locatieserver}/free",
            params={
                "q": f"{address} {normalize_postal_code(postal_code)}",
                "fq": "type:adres",
                "rows": "1",
            },
        )
        docs = (data.get("response") or {}).get("docs") or []
        return docs[0] if docs else None

    async def lookup(self, address: str, postal_code: str) -> dict:
        """Fetch the current WOZ record. Raises UpstreamError if unavailable."""
        doc = await self.resolve_address(address, postal_code)
        if not doc or not doc.get("nummeraanduiding_id"):
            raise UpstreamError("woz", "Address not found")

        url = f"{self.api_url}/wozwaarde/nummeraanduiding/{doc['nummeraanduiding_id']}"
        payload = await self._get_json(url, headers={"Accept": "application/json"})
        return build_woz_data(address, postal_code, doc, payload, url)


woz_connector = WozConnector()
