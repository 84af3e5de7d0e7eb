"""OpenStreetMap — Nominatim address search and Overpass amenity counts."""

import logging

from ..config import settings
from ..exceptions import UpstreamError
from .base import BaseConnector

log = logging.getLogger(__name__)

_ADMIN_LEVELS = (10, 8, 6, 4)
_AREA_OFFSET = 3_600_000_000  # OSM area id = offset + relation id

_AMENITY_SELECTORS = (
    'node["amenity"="restaurant"]',
    'node["shop"]',
    'node["amenity"="school"]',
    'way["highway"="cycleway"]',
    'node["public_transport"="stop_position"]',
    'node["highway"="bus_stop"]',
    'node["railway"="station"]',
)


def amenity_query(scope: str) -> str:
    """Overpass QL counting amenities within an area filter or bbox."""
    body = "\n".join(f"  {sel}({scope});" for sel in _AMENITY_SELECTORS)
    return f"[out:json][timeout:25];\n(\n{body}\n);\nout body;"


def count_amenities(elements: list[dict]) -> dict:
    counts = {"restaurants": 0, "shops": 0, "schools": 0, "bike_infra": 0, "transit_stops": 0}
    for el in elements:
        tags = el.get("tags") or {}
        if tags.get("amenity") == "restaurant":
            counts["restaurants"] += 1
        if tags.get("shop"):
            counts["shops"] += 1
        if tags.get("amenity") == "school":
            counts["schools"] += 1
        if tags.get("highway") == "cycleway":
            counts["bike_infra"] += 1
        if (
            tags.get("public_transport") == "stop_position"
            or tags.get("highway") == "bus_stop"
            or tags.get("railway") == "station"
        ):
            counts["transit_stops"] += 1
    return counts


class OpenStreetMapConnector(BaseConnector):
    name = "openstreetmap"

    def __init__(self):
        super().__init__(timeout=25.0)

    async def search_addresses(self, query: str, limit: int = 5) -> list[dict]:
        """Nominatim search restricted to the Netherlands."""
        data = await self._get_json(
            settings.nominatim_url,
            params={
                "q": query,
                "format": "json",
                "addressdetails": "1",
                "countrycodes": "nl",
                "limit": str(limit),
            },
        )
        return data if isinstance(data, list) else []

    async def _overpass(self, query: str) -> dict:
        r = await self._request("POST", settings.overpass_url, data={"data": query})
        try:
            return r.json()
        except ValueError as e:
            raise UpstreamError(self.name, "Malformed Overpass reply") from e

    async def area_id(self, name: str) -> int | None:
        """OSM area id for an administrative boundary, most local first."""
        escaped = name.replace('"', '\\"')
        for level in _ADMIN_LEVELS:
            query = (
                "[out:json][timeout:10];\n"
                f'area["name"="{escaped}"]["boundary"="administrative"]["admin_level"="{level}"];\n'
                "out ids;"
            )
            data = await self._overpass(query)
            elements = data.get("elements") or []
            if elements and elements[0].get("id"):
                # Area ids from Overpass already carry the offset
                area = int(elements[0]["id"])
                return area if area >= _AREA_OFFSET else _AREA_OFFSET + area
        return None

    async def bounding_box(self, name: str) -> str | None:
        """Overpass bbox (south,west,north,east) from Nominatim."""
        data = await self._get_json(
            settings.nominatim_url,
            params={"q": name, "format": "json", "limit": "1", "polygon_geojson": "0"},
        )
        if data and data[0].get("boundingbox"):
            south, north, west, east = data[0]["boundingbox"]
            return f"{south},{west},{north},{east}"
        return None

    async def city_metrics(self, name: str) -> dict | None:
        """Amenity counts for a city or address; None if the place is unknown."""
        used_fallback = False
        area = await self.area_id(name)
        if area:
            scope = f"area:{area}"
        else:
            bbox = await self.bounding_box(name)
            if not bbox:
                return None
            scope = bbox
            used_fallback = True

        data = await self._overpass(amenity_query(scope))
        return {
            "query": name,
            **count_amenities(data.get("elements") or []),
            "used_fallback": used_fallback,
        }


osm = OpenStreetMapConnector()
