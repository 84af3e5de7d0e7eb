"""Energy renovation projects and energy market intelligence.

Business Rules:
- Projects are public showcase data; anyone may list them, only signed-in
  users may create them
- Market intelligence for a region blends the CBS energy dataset by
  approximate region name (services/region_blending.py); an unknown
  region or an unavailable CBS API yields the static defaults with
  source="defaults"
- The national summary fetches the CBS energy and regional datasets
  concurrently
- Subsidy budget alert fires for ISDE/SEEH above 80% utilization
- An assessment needs a registered EP-Online label; without one it fails
  with EnergyLabelUnavailable rather than guessing
- Assessment targets follow the 2030 label steps (G/F → C, E/D → B, ...);
  savings are priced at the market gas price
- Price optimization compares yearly costs for the current heating type
  against the planned measures (combined reduction capped at 80%); payback
  is None when the measures save nothing

Called by: routers/energy.py, services/dashboard_service.py
Depends on: connectors/cbs.py, connectors/ep_online.py, services/region_blending.py
"""

import asyncio
import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from ..connectors.cbs import cbs
from ..connectors.ep_online import ep_online
from ..exceptions import EnergyLabelUnavailable, UpstreamError
from ..models import EnergyProject
from .region_blending import SOURCE_CBS, SOURCE_DEFAULTS, blend_energy_region

log = logging.getLogger(__name__)

SUBSIDY_ALERT_THRESHOLD = 80

SUBSIDY_BUDGETS = {
    "isde": {"scheme": "ISDE", "total_budget": 150_000_000, "remaining_budget": 127_500_000,
             "utilization_rate": 15, "application_backlog": 2847},
    "seeh": {"scheme": "SEEH", "total_budget": 200_000_000, "remaining_budget": 144_000_000,
             "utilization_rate": 28, "application_backlog": 4521},
    "bei": {"scheme": "BEI", "total_budget": 500_000_000, "remaining_budget": 455_000_000,
            "utilization_rate": 9, "application_backlog": 1203},
    "municipal": [
        {"scheme": "Amsterdam Energiesubsidie", "total_budget": 25_000_000,
         "remaining_budget": 11_250_000, "utilization_rate": 55, "application_backlog": 892},
    ],
}

MARKET_TRENDS = {
    "energy_transition_progress": 23.5,
    "heat_pump_adoption": 8.2,
    "solar_panel_penetration": 31.4,
    "gas_phase_out": 12.1,
}

CONTRACTOR_MARKET = {"average_wait_time": 6.2, "price_inflation": 12.5}

# €/m³ gas, €/kWh electricity and district heat
MARKET_PRICES = {"gas": 1.45, "electricity": 0.28, "district_heating": 0.08}

PRICE_FORECASTS = {
    "gas": {"current": 1.45, "forecast_3_months": 1.38, "forecast_6_months": 1.32,
            "forecast_12_months": 1.28, "confidence": 0.75},
    "electricity": {"current": 0.28, "forecast_3_months": 0.27, "forecast_6_months": 0.25,
                    "forecast_12_months": 0.23, "confidence": 0.68},
}


# ── Projects ──────────────────────────────────────────────────────────


def project_to_dict(p: EnergyProject) -> dict:
    return {
        "id": p.id,
        "user_id": p.user_id,
        "property_id": p.property_id,
        "name": p.name,
        "location": p.location,
        "description": p.description,
        "status": p.status,
        "label_before": p.label_before,
        "label_after": p.label_after,
        "measures": p.measures or [],
        "total_cost": p.total_cost,
        "subsidy_amount": p.subsidy_amount,
        "energy_savings": p.energy_savings,
        "co2_reduction": p.co2_reduction,
        "annual_savings": p.annual_savings,
        "completed_at": p.completed_at.isoformat() if p.completed_at else None,
        "created_at": p.created_at.isoformat() if p.created_at else None,
    }


def list_projects(db: Session, status: str | None = None, limit: int = 20) -> dict:
    q = db.query(EnergyProject)
    if status:
        q = q.filter(EnergyProject.status == status)
    total = q.count()
    rows = q.order_by(EnergyProject.created_at.desc()).limit(limit).all()
    return {"projects": [project_to_dict(p) for p in rows], "total": total}


def create_project(db: Session, user_id: int, data: dict) -> EnergyProject:
    project = EnergyProject(user_id=user_id, **data)
    if project.status == "completed" and project.completed_at is None:
        project.completed_at = datetime.now(timezone.utc)
    db.add(project)
    db.commit()
    db.refresh(project)
    return project


# ── Market intelligence ───────────────────────────────────────────────


def subsidy_alert(budgets: dict) -> str:
    urgent = [
        budgets[k]["scheme"]
        for k in ("isde", "seeh")
        if budgets[k]["utilization_rate"] > SUBSIDY_ALERT_THRESHOLD
    ]
    if urgent:
        return f"Urgent: {', '.join(urgent)} budget raakt op"
    return "Subsidiebudgetten zijn beschikbaar"


def summarize_energy(energy_rows: list[dict], regional_rows: list[dict]) -> dict:
    """National figures from the transformed CBS datasets."""
    households = sum(r["total_households"] for r in energy_rows)
    renewable = [r["renewable_percentage"] for r in energy_rows if r["renewable_percentage"]]
    progress = [r["energy_transition_progress"] for r in regional_rows if r["energy_transition_progress"]]
    labels: dict[str, int] = {}
    for r in energy_rows:
        labels[r["average_energy_label"]] = labels.get(r["average_energy_label"], 0) + 1
    return {
        "regions": len(energy_rows),
        "total_households": households,
        "population": sum(r["population"] for r in regional_rows),
        "average_renewable_percentage": round(sum(renewable) / len(renewable), 1) if renewable else 0.0,
        "total_co2_emissions": round(sum(r["co2_emissions"] for r in energy_rows), 1),
        "energy_transition_progress": (
            round(sum(progress) / len(progress), 1)
            if progress else MARKET_TRENDS["energy_transition_progress"]
        ),
        "label_distribution": labels,
    }


async def regional_intelligence(region: str) -> dict:
    try:
        rows = await cbs.energy_statistics()
    except UpstreamError as e:
        log.warning("CBS energy data unavailable for %s: %s", region, e)
        rows = []
    return blend_energy_region(region, rows)


async def market_intelligence(region: str | None = None) -> dict:
    now = datetime.now(timezone.utc).isoformat()
    if region:
        return {"regional_data": await regional_intelligence(region), "last_updated": now}

    energy_rows, regional_rows = await asyncio.gather(
        cbs.energy_statistics(), cbs.regional_statistics(), return_exceptions=True
    )
    for result in (energy_rows, regional_rows):
        if isinstance(result, BaseException) and not isinstance(result, UpstreamError):
            raise result
    source = SOURCE_CBS
    if isinstance(energy_rows, UpstreamError):
        log.warning("CBS energy dataset unavailable: %s", energy_rows)
        energy_rows, source = [], SOURCE_DEFAULTS
    if isinstance(regional_rows, UpstreamError):
        log.warning("CBS regional dataset unavailable: %s", regional_rows)
        regional_rows = []

    summary = summarize_energy(energy_rows, regional_rows)
    return {
        "summary": {
            **summary,
            "average_wait_time": CONTRACTOR_MARKET["average_wait_time"],
            "subsidy_budget_alert": subsidy_alert(SUBSIDY_BUDGETS),
        },
        "market_trends": {**MARKET_TRENDS, "energy_transition_progress": summary["energy_transition_progress"]},
        "subsidy_budget_status": SUBSIDY_BUDGETS,
        "contractor_market": CONTRACTOR_MARKET,
        "source": source,
        "last_updated": now,
    }


# ── Assessment ────────────────────────────────────────────────────────

# Yearly gas use (m³ equivalent) of an average Dutch home per label
LABEL_GAS_USAGE = {
    "A+++": 200, "A++": 300, "A+": 400, "A": 500, "B": 700,
    "C": 1000, "D": 1400, "E": 1800, "F": 2200, "G": 2600,
}
LABEL_TARGETS = {
    "G": "C", "F": "C", "E": "B", "D": "B", "C": "A",
    "B": "A+", "A": "A+", "A+": "A++", "A++": "A+++", "A+++": "A+++",
}
CO2_PER_M3_GAS = 1.88
COMPLIANCE_DEADLINE = "2030-01-01"
POOR_LABELS = ("G", "F", "E", "D")

HEAT_PUMP = {"measure": "Warmtepomp", "description": "Vervang gasketel door efficiënte warmtepomp",
             "energy_saving": 40, "cost": 15000, "subsidy": 7000, "priority": 1, "co2_reduction": 2500}
INSULATION = [
    {"measure": "Dakisolatie", "description": "Isolatie van dak en zolder",
     "energy_saving": 20, "cost": 3500, "subsidy": 1500, "priority": 2, "co2_reduction": 800},
    {"measure": "Muurisolatie", "description": "Isolatie van buitenmuren",
     "energy_saving": 25, "cost": 8000, "subsidy": 3000, "priority": 3, "co2_reduction": 1000},
]
SOLAR = {"measure": "Zonnepanelen", "description": "12 zonnepanelen voor elektriciteitsopwekking",
         "energy_saving": 15, "cost": 8000, "subsidy": 2000, "priority": 4, "co2_reduction": 1200}


def gas_usage(label: str) -> int:
    return LABEL_GAS_USAGE.get(label, 1000)


def target_label(label: str) -> str:
    return LABEL_TARGETS.get(label, "A")


def assessment_measures(label: str, heating: str) -> list[dict]:
    measures = []
    if heating == "gas":
        measures.append(dict(HEAT_PUMP))
    if label in POOR_LABELS:
        measures.extend(dict(m) for m in INSULATION)
    measures.append(dict(SOLAR))
    return measures


def build_assessment(label: str, property_type: str = "house", heating: str = "gas") -> dict:
    """Savings, investment and payback for moving `label` to its 2030 target."""
    target = target_label(label)
    current_usage = gas_usage(label)
    saved_m3 = current_usage - gas_usage(target)
    annual_savings = saved_m3 * MARKET_PRICES["gas"]
    measures = assessment_measures(label, heating)
    investment = sum(m["cost"] for m in measures)
    subsidy = sum(m["subsidy"] for m in measures)
    net = investment - subsidy
    return {
        "current_energy_label": label,
        "target_energy_label": target,
        "property_type": property_type,
        "current_heating": heating,
        "current_energy_usage": current_usage,
        "potential_savings": round(saved_m3),
        "annual_savings": round(annual_savings),
        "estimated_cost": investment,
        "subsidy_amount": subsidy,
        "net_investment": net,
        "payback_period": round(net / annual_savings) if annual_savings > 0 else 0,
        "co2_reduction": round(saved_m3 * CO2_PER_M3_GAS),
        "recommendations": measures,
        "compliance_deadline": COMPLIANCE_DEADLINE,
        "assessment_date": datetime.now(timezone.utc).isoformat(),
    }


async def energy_assessment(address: str, postal_code: str,
                            property_type: str = "house", heating: str = "gas") -> dict:
    label = await ep_online.energy_label(address, postal_code)
    if not label:
        log.info("No registered energy label for %s %s", address, postal_code)
        raise EnergyLabelUnavailable(f"{address} {postal_code}")
    return build_assessment(label.strip().upper(), property_type, heating)


# ── Price optimization ────────────────────────────────────────────────

# Yearly use of an average Dutch household
HOUSEHOLD_GAS_M3 = 1200
HOUSEHOLD_ELECTRICITY_KWH = 2900
MEASURE_REDUCTION = {"heat_pump": 0.4, "insulation": 0.25, "solar_panels": 0.3, "ventilation": 0.1}
MEASURE_COST = {"heat_pump": 18000, "insulation": 8000, "solar_panels": 9000, "ventilation": 4500}
MAX_REDUCTION = 0.8
INSTALL_SEASON = range(3, 7)


def current_energy_costs(heating: str, prices: dict = MARKET_PRICES) -> float:
    heating = heating.lower()
    base_electricity = HOUSEHOLD_ELECTRICITY_KWH * prices["electricity"]
    if heating in ("electric", "elektrisch"):
        return (HOUSEHOLD_ELECTRICITY_KWH + 3500) * prices["electricity"]
    if heating in ("heat_pump", "warmtepomp"):
        return (HOUSEHOLD_ELECTRICITY_KWH + 2100) * prices["electricity"]
    if heating in ("district", "stadsverwarming"):
        return HOUSEHOLD_GAS_M3 * 0.7 * prices["district_heating"] + base_electricity
    return HOUSEHOLD_GAS_M3 * prices["gas"] + base_electricity


def projected_energy_costs(measures: list[str], prices: dict = MARKET_PRICES) -> float:
    reduction = sum(MEASURE_REDUCTION.get(m, 0) for m in set(measures))
    return HOUSEHOLD_ELECTRICITY_KWH * prices["electricity"] * (1 - min(reduction, MAX_REDUCTION))


def investment_cost(measures: list[str]) -> int:
    return sum(MEASURE_COST.get(m, 0) for m in measures)


def price_risk_factors() -> list[str]:
    risks = []
    if PRICE_FORECASTS["gas"]["confidence"] < 0.7:
        risks.append("Hoge onzekerheid in gasprijsvoorspellingen")
    if CONTRACTOR_MARKET["price_inflation"] > 10:
        risks.append("Hoge prijsinflatie bij installateurs")
    if CONTRACTOR_MARKET["average_wait_time"] > 8:
        risks.append("Lange wachttijden kunnen kosten verhogen")
    return risks


def price_optimization(heating: str, measures: list[str]) -> dict:
    current = current_energy_costs(heating)
    projected = projected_energy_costs(measures)
    savings = current - projected
    investment = investment_cost(measures)
    advice = []
    if PRICE_FORECASTS["gas"]["forecast_12_months"] < MARKET_PRICES["gas"] * 0.9:
        advice.append("Wacht met warmtepomp - gasprijzen dalen waarschijnlijk")
    if SUBSIDY_BUDGETS["isde"]["utilization_rate"] > SUBSIDY_ALERT_THRESHOLD:
        advice.append("Dien subsidieaanvraag snel in - budget raakt op")
    if CONTRACTOR_MARKET["average_wait_time"] > 6:
        advice.append("Plan project vroeg - lange wachttijden verwacht")
    return {
        "current_costs": round(current, 2),
        "projected_costs": round(projected, 2),
        "savings": round(savings, 2),
        "investment_cost": investment,
        "payback_period": round(investment / savings, 1) if savings > 0 else None,
        "risk_factors": price_risk_factors(),
        "recommendations": advice,
    }


def immediate_recommendations(optimization: dict) -> list[str]:
    out = []
    payback = optimization["payback_period"]
    if payback is not None and payback < 7:
        out.append("Uitstekende investering - korte terugverdientijd")
    if CONTRACTOR_MARKET["average_wait_time"] > 8:
        out.append("Plan project nu - lange wachttijden verwacht")
    if optimization["savings"] > 1000:
        out.append("Hoge besparingen mogelijk - prioriteer dit project")
    return out


def timing_recommendations(now: datetime | None = None) -> list[str]:
    now = now or datetime.now(timezone.utc)
    out = []
    if PRICE_FORECASTS["gas"]["forecast_6_months"] < MARKET_PRICES["gas"] * 0.95:
        out.append("Overweeg uitstel - gasprijzen dalen waarschijnlijk")
    if SUBSIDY_BUDGETS["isde"]["utilization_rate"] > 70:
        out.append("Dien subsidieaanvraag binnen 4 weken in")
    if now.month in INSTALL_SEASON:
        out.append("Optimale periode voor installaties")
    return out


def price_optimization_report(heating: str, measures: list[str], region: str | None = None,
                              now: datetime | None = None) -> dict:
    optimization = price_optimization(heating, measures)
    log.info("Price optimization for %s with %s (region=%s)", heating, measures, region)
    return {
        "optimization": optimization,
        "market_context": {
            "current_prices": MARKET_PRICES,
            "price_forecasts": PRICE_FORECASTS,
            "contractor_market": CONTRACTOR_MARKET,
            "subsidy_status": SUBSIDY_BUDGETS,
        },
        "recommendations": {
            "immediate": immediate_recommendations(optimization),
            "timing": timing_recommendations(now),
            "risk_mitigation": optimization["risk_factors"],
        },
        "last_updated": (now or datetime.now(timezone.utc)).isoformat(),
    }
