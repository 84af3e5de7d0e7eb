"""
routers/address_search.py — Address autocomplete (OpenStreetMap Nominatim)

Queries shorter than 3 characters return an empty list without calling
Nominatim. Upstream failures become a 502 via main.py.

Called by: main.py (router mount)
Depends on: connectors/openstreetmap
"""

from fastapi import APIRouter, Query

from ..connectors.openstreetmap import osm

router = APIRouter(tags=["address"])

MIN_QUERY_LENGTH = 3


@router.get("/api/address-search")
async def address_search(q: str = Query("", max_length=200), limit: int = Query(5, ge=1, le=10)):
    query = q.strip()
    if len(query) < MIN_QUERY_LENGTH:
        return []
    return await osm.search_addresses(query, limit=limit)
