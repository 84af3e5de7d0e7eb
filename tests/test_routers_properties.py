"""
tests/test_routers_properties.py -- Tests for routers/properties.py

Covers: listing CRUD with ownership checks, search filters/sorting and
cache invalidation, city stats, OSM metrics, market stats, the blended
city market view, and offers.

Called by: pytest
Depends on: app/routers/properties.py, app/services/property_service.py, conftest.py
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.orm import Session

from app.exceptions import UpstreamError
from app.models import AuditLog, Offer, Property, User

NEW_LISTING = {
    "address": "Oudegracht 12",
    "postal_code": "3511 ab",
    "city": "Utrecht",
    "property_type": "house",
    "bedrooms": 3,
    "bathrooms": 1,
    "square_meters": 110,
    "construction_year": 1935,
    "asking_price": 495000,
    "energy_label": "B",
    "description": "Karakteristiek herenhuis aan de gracht",
}


def _listing(db: Session, owner: User, **overrides) -> Property:
    data = {
        "user_id": owner.id,
        "address": "Teststraat 1",
        "postal_code": "1234AB",
        "city": "Amsterdam",
        "property_type": "house",
        "bedrooms": 3,
        "square_meters": 100,
        "asking_price": 400000,
        "status": "AVAILABLE",
        "created_at": datetime.now(timezone.utc),
    }
    data.update(overrides)
    prop = Property(**data)
    db.add(prop)
    db.commit()
    db.refresh(prop)
    return prop


# ── CRUD ─────────────────────────────────────────────────────────────


class TestListingCrud:
    def test_create(self, client, test_user, db_session):
        resp = client.post("/api/properties", json=NEW_LISTING)
        assert resp.status_code == 201
        data = resp.json()
        assert data["postal_code"] == "3511AB"
        assert data["user_id"] == test_user.id
        assert data["estimated_value"] == 495000
        assert data["confidence_score"] == 0.8
        assert data["status"] == "AVAILABLE"
        assert db_session.query(AuditLog).filter_by(action="Property created").count() == 1

    def test_create_requires_login(self, anon_client):
        assert anon_client.post("/api/properties", json=NEW_LISTING).status_code == 401

    @pytest.mark.parametrize("field,value", [
        ("postal_code", "35111"),
        ("property_type", "castle"),
        ("construction_year", 1700),
        ("description", "kort"),
        ("asking_price", 0),
    ])
    def test_create_invalid(self, client, field, value):
        resp = client.post("/api/properties", json={**NEW_LISTING, field: value})
        assert resp.status_code == 400
        assert field in [d["field"] for d in resp.json()["detail"]]

    def test_get(self, client, test_property):
        resp = client.get(f"/api/properties/{test_property.id}")
        assert resp.status_code == 200
        assert resp.json()["address"] == "Prinsengracht 263"

    def test_get_missing(self, client):
        resp = client.get("/api/properties/9999")
        assert resp.status_code == 404
        assert resp.json()["error"] == "Property not found"

    def test_list_only_available(self, client, test_user, db_session, test_property):
        _listing(db_session, test_user, status="SOLD")
        resp = client.get("/api/properties")
        assert resp.json()["total"] == 1

    def test_owner_updates(self, client, test_property, db_session):
        resp = client.put(f"/api/properties/{test_property.id}", json={"asking_price": 625000, "status": "PENDING"})
        assert resp.status_code == 200
        assert resp.json()["asking_price"] == 625000
        audit = db_session.query(AuditLog).filter_by(action="Property updated").one()
        assert audit.old_values["asking_price"] == 650000
        assert sorted(audit.new_values["changed"]) == ["asking_price", "status"]

    def test_unchanged_update_writes_no_audit(self, client, test_property, db_session):
        client.put(f"/api/properties/{test_property.id}", json={"city": "Amsterdam"})
        assert db_session.query(AuditLog).filter_by(action="Property updated").count() == 0

    def test_non_owner_forbidden(self, anon_client, test_property, buyer_user, auth_header):
        resp = anon_client.put(
            f"/api/properties/{test_property.id}", json={"asking_price": 600000},
            headers=auth_header(buyer_user),
        )
        assert resp.status_code == 403

    def test_admin_may_delete(self, anon_client, test_property, admin_user, db_session, auth_header):
        resp = anon_client.delete(f"/api/properties/{test_property.id}", headers=auth_header(admin_user))
        assert resp.status_code == 200
        assert db_session.get(Property, test_property.id) is None
        assert db_session.query(AuditLog).filter_by(action="Property deleted").one().user_id == admin_user.id

    def test_non_owner_cannot_delete(self, anon_client, test_property, buyer_user, auth_header):
        resp = anon_client.delete(f"/api/properties/{test_property.id}", headers=auth_header(buyer_user))
        assert resp.status_code == 403


# ── Search ───────────────────────────────────────────────────────────


class TestSearch:
    @pytest.fixture()
    def listings(self, db_session, test_user):
        now = datetime.now(timezone.utc)
        return [
            _listing(db_session, test_user, address="A 1", city="Amsterdam", asking_price=300000,
                     bedrooms=1, property_type="apartment", created_at=now - timedelta(days=3)),
            _listing(db_session, test_user, address="B 2", city="Amsterdam", asking_price=500000,
                     bedrooms=3, created_at=now - timedelta(days=2)),
            _listing(db_session, test_user, address="C 3", city="Rotterdam", asking_price=400000,
                     bedrooms=4, created_at=now - timedelta(days=1)),
            _listing(db_session, test_user, address="D 4", city="Amsterdam", asking_price=450000,
                     status="SOLD"),
        ]

    def test_city_filter_case_insensitive(self, client, listings):
        data = client.get("/api/properties/search", params={"city": "amster"}).json()
        assert data["total"] == 2
        assert {p["address"] for p in data["properties"]} == {"A 1", "B 2"}

    def test_price_and_bedroom_filters(self, client, listings):
        data = client.get("/api/properties/search", params={
            "min_price": 350000, "max_price": 450000, "min_bedrooms": 2,
        }).json()
        assert [p["address"] for p in data["properties"]] == ["C 3"]

    def test_type_filter(self, client, listings):
        data = client.get("/api/properties/search", params={"property_type": "apartment"}).json()
        assert [p["address"] for p in data["properties"]] == ["A 1"]

    def test_sort_by_price_asc(self, client, listings):
        data = client.get("/api/properties/search", params={"sort_by": "price", "sort_order": "asc"}).json()
        assert [p["asking_price"] for p in data["properties"]] == [300000, 400000, 500000]

    def test_default_sort_newest_first(self, client, listings):
        data = client.get("/api/properties/search").json()
        assert [p["address"] for p in data["properties"]] == ["C 3", "B 2", "A 1"]

    def test_pagination_has_more(self, client, listings):
        data = client.get("/api/properties/search", params={"limit": 2}).json()
        assert len(data["properties"]) == 2
        assert data["has_more"] is True
        data = client.get("/api/properties/search", params={"limit": 2, "offset": 2}).json()
        assert data["has_more"] is False

    def test_invalid_sort_400(self, client):
        resp = client.get("/api/properties/search", params={"sort_by": "colour"})
        assert resp.status_code == 400

    def test_new_listing_invalidates_cached_search(self, client, listings):
        before = client.get("/api/properties/search", params={"city": "Utrecht"}).json()
        assert before["total"] == 0
        client.post("/api/properties", json=NEW_LISTING)
        after = client.get("/api/properties/search", params={"city": "Utrecht"}).json()
        assert after["total"] == 1


# ── Statistics ───────────────────────────────────────────────────────


class TestStats:
    def test_city_stats(self, client, db_session, test_user):
        _listing(db_session, test_user, city="Amsterdam", asking_price=400000)
        _listing(db_session, test_user, city="amsterdam", asking_price=500000)
        data = client.get("/api/properties/city-stats", params={"cities": "Amsterdam, Delft"}).json()
        assert data["Amsterdam"] == {"count": 2, "average_price": 450000.0}
        assert data["Delft"] == {"count": 0, "average_price": 0.0}

    def test_city_stats_missing_param(self, client):
        resp = client.get("/api/properties/city-stats")
        assert resp.status_code == 400
        assert resp.json()["error"] == "Missing cities parameter"

    def test_city_stats_blank_list(self, client):
        resp = client.get("/api/properties/city-stats", params={"cities": " , "})
        assert resp.status_code == 400
        assert resp.json()["error"] == "No cities provided"

    def test_city_metrics(self, client):
        metrics = {"query": "Utrecht", "restaurants": 5, "shops": 9, "schools": 2,
                   "bike_infra": 7, "transit_stops": 4, "used_fallback": False}
        with patch("app.routers.properties.osm.city_metrics", new_callable=AsyncMock, return_value=metrics):
            resp = client.get("/api/properties/city-stats/metrics", params={"q": "Utrecht"})
        assert resp.json() == metrics

    def test_city_metrics_unknown(self, client):
        with patch("app.routers.properties.osm.city_metrics", new_callable=AsyncMock, return_value=None):
            resp = client.get("/api/properties/city-stats/metrics", params={"q": "Nergens"})
        assert resp.status_code == 404
        assert resp.json()["error"] == "City not found"

    def test_city_metrics_missing_q(self, client):
        assert client.get("/api/properties/city-stats/metrics").status_code == 400

    def test_city_metrics_upstream_down_502(self, client):
        with patch("app.routers.properties.osm.city_metrics", new_callable=AsyncMock,
                   side_effect=UpstreamError("openstreetmap", "HTTP 504")):
            resp = client.get("/api/properties/city-stats/metrics", params={"q": "Utrecht"})
        assert resp.status_code == 502
        assert resp.json()["error"] == "External service unavailable"

    def test_market_stats(self, client, db_session, test_user, test_property):
        _listing(db_session, test_user, status="SOLD", asking_price=300000)
        data = client.get("/api/properties/market-stats").json()
        assert data["total_properties"] == 2
        assert data["active_listings"] == 1
        assert data["sold_this_month"] == 1
        assert data["average_price"] == 650000.0
        assert data["growth_rate"] == 12

    def test_market_stats_empty(self, client):
        data = client.get("/api/properties/market-stats").json()
        assert data["total_properties"] == 0
        assert data["average_days_on_market"] == 30

    def test_city_market_blended(self, client, test_property):
        rows = [{"region": "Groot-Amsterdam", "average_house_price": 610000, "price_change": 7.1,
                 "transaction_volume": 9100, "average_days_on_market": 21}]
        with patch("app.routers.properties.cbs.housing_market", new_callable=AsyncMock, return_value=rows):
            data = client.get("/api/properties/city-market", params={"city": "Amsterdam"}).json()
        assert data["source"] == "database+cbs"
        assert data["listing_count"] == 1
        assert data["average_price"] == 610000

    def test_city_market_cbs_down(self, client, test_property):
        with patch("app.routers.properties.cbs.housing_market", new_callable=AsyncMock,
                   side_effect=UpstreamError("cbs", "HTTP 503")):
            resp = client.get("/api/properties/city-market", params={"city": "Amsterdam"})
        assert resp.status_code == 200
        assert resp.json()["source"] == "database_only"
        assert resp.json()["average_price"] == 650000.0


# ── Offers ───────────────────────────────────────────────────────────


OFFER = {"amount": 640000, "buyer_name": "Piet Koper", "buyer_email": "Piet@Example.nl",
         "financing_confirmed": True}


class TestOffers:
    def test_anonymous_offer(self, anon_client, test_property, test_user, db_session):
        resp = anon_client.post(f"/api/properties/{test_property.id}/offers", json=OFFER)
        assert resp.status_code == 201
        data = resp.json()
        assert data["buyer_id"] is None
        assert data["buyer_email"] == "piet@example.nl"
        assert data["status"] == "PENDING"

        audit = db_session.query(AuditLog).filter_by(action="Offer created").one()
        assert audit.user_id == test_user.id
        assert audit.new_values["amount"] == 640000

    def test_signed_in_buyer_recorded(self, anon_client, test_property, buyer_user, auth_header):
        resp = anon_client.post(
            f"/api/properties/{test_property.id}/offers", json=OFFER, headers=auth_header(buyer_user)
        )
        assert resp.json()["buyer_id"] == buyer_user.id

    def test_offer_on_sold_property(self, anon_client, db_session, test_user):
        prop = _listing(db_session, test_user, status="SOLD")
        resp = anon_client.post(f"/api/properties/{prop.id}/offers", json=OFFER)
        assert resp.status_code == 400
        assert resp.json()["error"] == "Property is not available for offers"

    def test_zero_amount_rejected(self, anon_client, test_property):
        resp = anon_client.post(f"/api/properties/{test_property.id}/offers", json={**OFFER, "amount": 0})
        assert resp.status_code == 400

    def test_owner_lists_offers(self, client, test_property, db_session):
        db_session.add(Offer(property_id=test_property.id, amount=600000, buyer_name="X",
                             buyer_email="x@example.nl", created_at=datetime.now(timezone.utc)))
        db_session.commit()
        data = client.get(f"/api/properties/{test_property.id}/offers").json()
        assert len(data["offers"]) == 1
        assert data["offers"][0]["amount"] == 600000

    def test_other_user_cannot_list_offers(self, anon_client, test_property, buyer_user, auth_header):
        resp = anon_client.get(f"/api/properties/{test_property.id}/offers", headers=auth_header(buyer_user))
        assert resp.status_code == 403
