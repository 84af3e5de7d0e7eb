"""
tests/test_mortgage.py — Tests for services/mortgage_service.py and routers/mortgage.py

Covers: annuity maths, income limits with NHG cap, buying costs with the
starter exemption, loan constraints and the 400 body when no loan fits.

Called by: pytest
Depends on: app.services.mortgage_service, app/routers/mortgage.py
"""

import pytest

from app.config import settings
from app.services import mortgage_service as ms


class TestAnnuity:
    def test_payment_and_principal_are_inverse(self):
        payment = ms.annuity_payment(300000, 0.041, 30)
        assert ms.annuity_principal(payment, 0.041, 30) == pytest.approx(300000)

    def test_zero_rate(self):
        assert ms.annuity_payment(360000, 0, 30) == 1000
        assert ms.annuity_principal(1000, 0, 30) == 360000

    def test_known_payment(self):
        # 300k at 4.1% over 30 years
        assert ms.annuity_payment(300000, 0.041, 30) == pytest.approx(1449.6, abs=0.5)


class TestMaxMortgage:
    def test_partner_income_counts_only_with_partner(self):
        alone = ms.max_mortgage_from_income(60000, has_partner=False, partner_income=40000)
        together = ms.max_mortgage_from_income(60000, has_partner=True, partner_income=40000)
        assert together > alone

    def test_obligations_reduce_limit(self):
        assert ms.max_mortgage_from_income(60000, monthly_obligations=300) < ms.max_mortgage_from_income(60000)

    def test_capped_at_nhg(self):
        assert ms.max_mortgage_from_income(500000) == settings.nhg_max_mortgage

    def test_no_capacity(self):
        assert ms.max_mortgage_from_income(10000, monthly_obligations=1000) == 0.0


class TestBuyingCosts:
    def test_regular_buyer_pays_transfer_tax(self):
        costs = ms.buying_costs(400000, 360000, buyer_age=40, is_first_home=True)
        assert costs["transfer_tax"] == 8000
        assert costs["starter_exemption"] is False
        assert costs["notary_fees"] == pytest.approx(1150)
        assert costs["mortgage_deed"] == pytest.approx(990)
        assert costs["land_registry"] == 165
        assert costs["breakdown"][0]["item"] == "Overdrachtsbelasting"
        assert costs["total"] == pytest.approx(8000 + 1150 + 990 + 165)

    def test_starter_exemption(self):
        costs = ms.buying_costs(400000, 360000, buyer_age=30, is_first_home=True)
        assert costs["transfer_tax"] == 0
        assert costs["starter_exemption"] is True
        assert costs["breakdown"][0]["item"] == "Startersvrijstelling"

    def test_no_exemption_above_limit(self):
        costs = ms.buying_costs(600000, 400000, buyer_age=30, is_first_home=True)
        assert costs["transfer_tax"] == 12000

    def test_no_exemption_without_age(self):
        assert ms.buying_costs(300000, 270000, buyer_age=None, is_first_home=True)["starter_exemption"] is False


class TestCalculate:
    def test_value_limits_loan(self):
        result = ms.calculate(gross_annual_income=200000, property_value=300000)
        assert result["constraints"]["actual_max"] == 270000
        assert result["calculation"]["loan_to_value"] == 90
        assert result["calculation"]["interest_rate"] == 4.1

    def test_capital_limits_loan(self):
        result = ms.calculate(gross_annual_income=200000, property_value=300000, own_capital=100000)
        assert result["calculation"]["max_loan_amount"] == 200000

    def test_totals(self):
        calc = ms.calculate(gross_annual_income=200000, property_value=300000)["calculation"]
        assert calc["total_amount"] == pytest.approx(calc["monthly_payment"] * 360, abs=2)
        assert calc["total_interest"] == pytest.approx(calc["total_amount"] - calc["max_loan_amount"], abs=0.01)
        assert calc["total_monthly_cost"] == pytest.approx(calc["monthly_payment"] + 25, abs=0.01)

    def test_not_possible(self):
        with pytest.raises(ms.MortgageNotPossible) as exc:
            ms.calculate(gross_annual_income=20000, property_value=300000, monthly_obligations=1000)
        assert exc.value.constraints["max_mortgage_from_income"] == 0.0
        assert exc.value.constraints["required_capital"] == 300000


class TestRoute:
    def test_calculate(self, anon_client):
        resp = anon_client.post("/api/mortgage/calculate", json={
            "gross_annual_income": 75000, "property_value": 425000, "own_capital": 30000,
            "buyer_age": 29, "is_first_home": True,
        })
        assert resp.status_code == 200
        data = resp.json()
        assert set(data) == {"calculation", "buying_costs", "constraints"}
        assert data["buying_costs"]["starter_exemption"] is True

    def test_not_possible_400(self, anon_client):
        resp = anon_client.post("/api/mortgage/calculate", json={
            "gross_annual_income": 20000, "property_value": 300000, "monthly_obligations": 1000,
        })
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"] == "No mortgage possible with current parameters"
        assert body["max_mortgage_from_income"] == 0.0

    def test_validation(self, anon_client):
        resp = anon_client.post("/api/mortgage/calculate", json={"gross_annual_income": 0, "property_value": 1})
        assert resp.status_code == 400
        assert resp.json()["detail"][0]["field"] == "gross_annual_income"
