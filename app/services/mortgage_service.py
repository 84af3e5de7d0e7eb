"""Mortgage affordability and buying costs (Dutch rules).

Business Rules:
- Maximum mortgage from income: financing ratio × (own + partner income)
  minus yearly obligations, turned into a principal with the annuity
  formula at the configured rate over 30 years, capped at the NHG limit
- Actual loan = min(income limit, 90% of value, value − own capital)
- Transfer tax 2%, waived for first-time buyers under 35 when the value is
  within the starter exemption limit
- Monthly property tax estimate = value × 0.1% / 12
- Rates and fees come from settings; there is no live rate feed

Called by: routers/mortgage.py
"""

from ..config import settings

INCOME_TERM_YEARS = 30


def annuity_payment(principal: float, annual_rate: float, years: int) -> float:
    n = years * 12
    r = annual_rate / 12
    if r == 0:
        return principal / n
    return principal * r / (1 - (1 + r) ** -n)


def annuity_principal(monthly_payment: float, annual_rate: float, years: int) -> float:
    n = years * 12
    r = annual_rate / 12
    if r == 0:
        return monthly_payment * n
    return monthly_payment * (1 - (1 + r) ** -n) / r


def max_mortgage_from_income(gross_income: float, monthly_obligations: float = 0,
                             has_partner: bool = False, partner_income: float = 0) -> float:
    income = gross_income + (partner_income if has_partner else 0)
    yearly_capacity = income * settings.mortgage_financing_ratio - monthly_obligations * 12
    if yearly_capacity <= 0:
        return 0.0
    principal = annuity_principal(
        yearly_capacity / 12, settings.mortgage_interest_rate, INCOME_TERM_YEARS
    )
    return round(min(principal, settings.nhg_max_mortgage), 2)


def buying_costs(property_value: float, loan_amount: float, buyer_age: int | None,
                 is_first_home: bool) -> dict:
    exempt = (
        is_first_home
        and buyer_age is not None
        and buyer_age < settings.starter_age_limit
        and property_value <= settings.starter_exemption_limit
    )
    transfer_tax = 0.0 if exempt else property_value * settings.transfer_tax_rate
    notary = property_value * settings.notary_fee_rate + settings.notary_fixed_costs
    deed = loan_amount * settings.mortgage_deed_rate + settings.mortgage_deed_fixed_costs
    registry = float(settings.land_registry_fee)

    breakdown = [
        {
            "item": "Startersvrijstelling" if exempt else "Overdrachtsbelasting",
            "amount": round(transfer_tax, 2),
            "description": (
                "Vrijstelling overdrachtsbelasting voor starters"
                if exempt
                else f"{settings.transfer_tax_rate * 100:g}% van de koopsom"
            ),
        },
        {"item": "Notariskosten koopakte", "amount": round(notary, 2),
         "description": "Leveringsakte en inschrijving"},
        {"item": "Hypotheekakte", "amount": round(deed, 2),
         "description": "Notariskosten hypotheekakte"},
        {"item": "Kadaster inschrijving", "amount": round(registry, 2),
         "description": "Inschrijving in de openbare registers"},
    ]
    return {
        "transfer_tax": round(transfer_tax, 2),
        "notary_fees": round(notary, 2),
        "mortgage_deed": round(deed, 2),
        "land_registry": round(registry, 2),
        "total": round(transfer_tax + notary + deed + registry, 2),
        "starter_exemption": exempt,
        "breakdown": breakdown,
    }


class MortgageNotPossible(ValueError):
    """The inputs leave no room for a loan."""

    def __init__(self, constraints: dict):
        self.constraints = constraints
        super().__init__("No mortgage possible with current parameters")


def calculate(
    gross_annual_income: float,
    property_value: float,
    own_capital: float = 0,
    monthly_obligations: float = 0,
    has_partner: bool = False,
    partner_income: float = 0,
    buyer_age: int | None = None,
    is_first_home: bool = False,
    term_years: int = 30,
) -> dict:
    """Full calculation. Raises MortgageNotPossible when the loan would be <= 0."""
    max_from_income = max_mortgage_from_income(
        gross_annual_income, monthly_obligations, has_partner, partner_income
    )
    max_from_value = property_value * settings.max_loan_to_value
    max_from_capital = property_value - own_capital
    loan = min(max_from_income, max_from_value, max_from_capital)
    if loan <= 0:
        raise MortgageNotPossible({
            "max_mortgage_from_income": max_from_income,
            "max_loan_from_value": max_from_value,
            "required_capital": property_value - max_from_income,
        })

    rate = settings.mortgage_interest_rate
    monthly = annuity_payment(loan, rate, term_years)
    total_amount = monthly * term_years * 12
    monthly_tax = property_value * 0.001 / 12

    return {
        "calculation": {
            "max_loan_amount": round(loan, 2),
            "monthly_payment": round(monthly, 2),
            "total_monthly_cost": round(monthly + monthly_tax, 2),
            "interest_rate": round(rate * 100, 3),
            "loan_to_value": round(loan / property_value * 100, 2),
            "total_interest": round(total_amount - loan, 2),
            "total_amount": round(total_amount, 2),
        },
        "buying_costs": buying_costs(property_value, loan, buyer_age, is_first_home),
        "constraints": {
            "max_from_income": max_from_income,
            "max_from_value": round(max_from_value, 2),
            "max_from_capital": round(max_from_capital, 2),
            "actual_max": round(loan, 2),
        },
    }
