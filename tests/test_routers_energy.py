"""
tests/test_routers_energy.py -- Tests for routers/energy.py

Covers: project listing/creation, energy assessments, the market-intelligence
overview and price optimization advice.

Called by: pytest
Depends on: app/routers/energy.py, conftest.py
"""

from unittest.mock import AsyncMock, patch

from app.models import AuditLog, EnergyProject
from app.services import energy_service


class TestProjects:
    def test_create(self, client, test_user, db_session):
        resp = client.post("/api/energy/projects", json={
            "name": "Isolatie jaren-30 woning", "location": "Haarlem", "status": "in_progress",
            "label_before": "F", "label_after": "B", "measures": ["spouwmuur", "HR++ glas"],
            "total_cost": 18500, "subsidy_amount": 4200, "energy_savings": 45,
        })
        assert resp.status_code == 201
        data = resp.json()
        assert data["user_id"] == test_user.id
        assert data["measures"] == ["spouwmuur", "HR++ glas"]
        assert data["completed_at"] is None
        assert db_session.query(AuditLog).filter_by(action="Energy project created").count() == 1

    def test_create_requires_login(self, anon_client):
        assert anon_client.post("/api/energy/projects", json={"name": "X"}).status_code == 401

    def test_invalid_savings(self, client):
        resp = client.post("/api/energy/projects", json={"name": "X", "energy_savings": 150})
        assert resp.status_code == 400

    def test_list_public(self, anon_client, db_session, test_user):
        db_session.add_all([
            EnergyProject(user_id=test_user.id, name="A", status="completed"),
            EnergyProject(user_id=test_user.id, name="B", status="planned"),
        ])
        db_session.commit()
        data = anon_client.get("/api/energy/projects").json()
        assert data["total"] == 2
        data = anon_client.get("/api/energy/projects", params={"status": "completed"}).json()
        assert [p["name"] for p in data["projects"]] == ["A"]

    def test_list_bad_status(self, anon_client):
        assert anon_client.get("/api/energy/projects", params={"status": "done"}).status_code == 400


class TestMarketIntelligence:
    def test_national(self, anon_client):
        with patch("app.routers.energy.energy_service.market_intelligence", new_callable=AsyncMock,
                   return_value={"summary": {}, "source": "cbs"}) as m:
            resp = anon_client.get("/api/energy/market-intelligence")
        assert resp.json()["source"] == "cbs"
        m.assert_awaited_once_with(None)

    def test_region_trimmed(self, anon_client):
        with patch("app.routers.energy.energy_service.market_intelligence", new_callable=AsyncMock,
                   return_value={"regional_data": {}}) as m:
            anon_client.get("/api/energy/market-intelligence", params={"region": "  Utrecht "})
        m.assert_awaited_once_with("Utrecht")


class TestAssessment:
    def test_assessment(self, anon_client, db_session):
        with patch("app.services.energy_service.ep_online.energy_label", new_callable=AsyncMock,
                   return_value="E") as m:
            resp = anon_client.post("/api/energy/assessment", json={
                "address": " Oudegracht 12 ", "postal_code": "3511ar", "current_heating": "gas",
            })
        assert resp.status_code == 200
        a = resp.json()["assessment"]
        assert a["current_energy_label"] == "E"
        assert a["target_energy_label"] == "B"
        assert a["property_type"] == "house"
        m.assert_awaited_once_with("Oudegracht 12", "3511AR")
        row = db_session.query(AuditLog).filter_by(action="Energy assessment created").one()
        assert row.new_values["energy_label"] == "E"

    def test_label_unavailable(self, anon_client, db_session):
        with patch("app.services.energy_service.ep_online.energy_label", new_callable=AsyncMock,
                   return_value=None):
            resp = anon_client.post("/api/energy/assessment", json={
                "address": "Oudegracht 12", "postal_code": "3511 AR",
            })
        assert resp.status_code == 404
        assert "suggestion" in resp.json()
        assert db_session.query(AuditLog).filter_by(action="Energy assessment created").count() == 0

    def test_invalid_postal_code(self, anon_client):
        resp = anon_client.post("/api/energy/assessment", json={"address": "Oudegracht 12", "postal_code": "35111"})
        assert resp.status_code == 400
        assert resp.json()["detail"][0]["field"] == "postal_code"


class TestPriceOptimization:
    def test_advice(self, anon_client, db_session):
        resp = anon_client.post("/api/energy/market-intelligence", json={
            "current_heating": "gas", "planned_measures": ["heat_pump", "insulation"], "region": " Utrecht ",
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["optimization"]["investment_cost"] == 26000
        assert data["optimization"]["payback_period"] == 11.5
        assert data["market_context"]["contractor_market"]["average_wait_time"] == 6.2
        assert "Hoge besparingen mogelijk - prioriteer dit project" in data["recommendations"]["immediate"]
        row = db_session.query(AuditLog).filter_by(action="Price optimization analysis completed").one()
        assert row.new_values["planned_measures"] == ["heat_pump", "insulation"]

    def test_region_trimmed(self, anon_client):
        with patch("app.routers.energy.energy_service.price_optimization_report",
                   wraps=energy_service.price_optimization_report) as m:
            anon_client.post("/api/energy/market-intelligence", json={
                "current_heating": "gas", "planned_measures": ["solar_panels"], "region": "  Utrecht ",
            })
        m.assert_called_once_with("gas", ["solar_panels"], region="Utrecht")

    def test_requires_measures(self, anon_client):
        resp = anon_client.post("/api/energy/market-intelligence", json={
            "current_heating": "gas", "planned_measures": [],
        })
        assert resp.status_code == 400
        assert resp.json()["detail"][0]["field"] == "planned_measures"

    def test_requires_heating(self, anon_client):
        resp = anon_client.post("/api/energy/market-intelligence", json={"planned_measures": ["insulation"]})
        assert resp.status_code == 400
