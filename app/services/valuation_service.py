"""Property Valuation — WOZ value adjusted by market and property factors.

estimated = WOZ × area multiplier
            × (1 + energy label impact)
            × (1 + building age impact)
            × (1 + size impact)
            × (1 + location premium)

Area multipliers, days-on-market and price change come from a static table
keyed by the 4-digit postal area (2025 CBS/NVM figures), falling back to
the national average. Confidence starts at 0.80 for a real WOZ value and
rises with richer source data, capped at 0.95.

Factor descriptions are Dutch; they are shown to users as-is.
"""

import logging
import random
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from ..cache.store import get_cached, set_cached
from ..models import Valuation
from ..utils.normalization import normalize_postal_code, postal_area

log = logging.getLogger(__name__)

BASE_CONFIDENCE = 0.80
MAX_CONFIDENCE = 0.95
DEFAULT_LABEL = "C"
LOCATION_PREMIUM = 0.10
VALUATION_TTL = 1800

DATA_SOURCE = "WOZ + EP Online + Market Analysis"
FALLBACK_DATA_SOURCE = "WOZ + Market Analysis"

MARKET_DATA = {
    # Amsterdam
    "1000": {"market_multiplier": 1.32, "average_days_on_market": 16, "price_change": 6.8},
    "1001": {"market_multiplier": 1.32, "average_days_on_market": 16, "price_change": 6.8},
    "1010": {"market_multiplier": 1.29, "average_days_on_market": 20, "price_change": 6.2},
    "1015": {"market_multiplier": 1.35, "average_days_on_market": 14, "price_change": 7.2},
    # Rotterdam
    "3000": {"market_multiplier": 1.26, "average_days_on_market": 24, "price_change": 8.2},
    "3010": {"market_multiplier": 1.24, "average_days_on_market": 28, "price_change": 7.8},
    # Den Haag
    "2500": {"market_multiplier": 1.22, "average_days_on_market": 22, "price_change": 7.8},
    "2510": {"market_multiplier": 1.20, "average_days_on_market": 26, "price_change": 7.2},
    # Utrecht
    "3500": {"market_multiplier": 1.27, "average_days_on_market": 18, "price_change": 8.5},
    "3510": {"market_multiplier": 1.25, "average_days_on_market": 22, "price_change": 8.0},
    # Eindhoven, Groningen
    "5600": {"market_multiplier": 1.16, "average_days_on_market": 30, "price_change": 7.2},
    "9700": {"market_multiplier": 1.14, "average_days_on_market": 36, "price_change": 6.1},
}
NATIONAL_MARKET_DATA = {"market_multiplier": 1.18, "average_days_on_market": 34, "price_change": 6.2}

ENERGY_LABEL_IMPACT = {
    "A+++": 0.12, "A++": 0.10, "A+": 0.08, "A": 0.06,
    "B": 0.02, "C": 0.0, "D": -0.04, "E": -0.08, "F": -0.12, "G": -0.16,
}

PREMIUM_AREAS = {"1000", "1001", "1015", "2500", "2501", "3500", "3501"}

_CITY_RANGES = {
    "Amsterdam": range(1000, 1020),
    "Rotterdam": range(3000, 3016),
    "Den Haag": range(2500, 2516),
    "Utrecht": range(3500, 3516),
    "Eindhoven": range(5600, 5604),
    "Groningen": range(9700, 9704),
    "Arnhem": range(6800, 6804),
    "Enschede": range(7500, 7504),
}

_PROVINCES = {
    "Noord-Holland": ("1000", "1001", "1002", "1003", "1004", "1005"),
    "Zuid-Holland": ("2500", "2501", "2502", "3000", "3001", "3002"),
    "Utrecht": ("3500", "3501", "3502"),
    "Noord-Brabant": ("5600", "5601"),
    "Groningen": ("9700", "9701"),
    "Gelderland": ("6800", "6801"),
    "Overijssel": ("7500", "7501"),
}


# ── Lookups ───────────────────────────────────────────────────────────


def market_data_for(postal_code: str) -> dict:
    return dict(MARKET_DATA.get(postal_area(postal_code), NATIONAL_MARKET_DATA))


def city_from_postal_code(postal_code: str) -> str:
    area = postal_area(postal_code)
    if not area.isdigit():
        return "Nederland"
    for city, codes in _CITY_RANGES.items():
        if int(area) in codes:
            return city
    return "Nederland"


def province_from_postal_code(postal_code: str) -> str:
    area = postal_area(postal_code)
    for province, areas in _PROVINCES.items():
        if area in areas:
            return province
    return "Nederland"


def property_type_from_object_type(object_type: str | None) -> str:
    """WOZ object/usage description → Dutch display type."""
    t = (object_type or "").lower()
    if "appartement" in t or "flat" in t:
        return "Appartement"
    if "rijtjes" in t or "tussenwoning" in t:
        return "Rijtjeshuis"
    if "hoek" in t or "twee-onder-een-kap" in t:
        return "Hoekwoning"
    if "vrijstaand" in t:
        return "Vrijstaande woning"
    return "Eengezinswoning"


# ── Impacts ───────────────────────────────────────────────────────────


def energy_label_impact(label: str | None) -> float:
    return ENERGY_LABEL_IMPACT.get((label or "").upper(), 0.0)


def age_impact(construction_year: int, current_year: int | None = None) -> float:
    age = (current_year or datetime.now().year) - construction_year
    if age < 5:
        return 0.08
    if age < 15:
        return 0.04
    if age < 25:
        return 0.02
    if age < 40:
        return 0.0
    if age < 60:
        return -0.04
    if age < 100:
        return -0.08
    return -0.12


def size_impact(square_meters: float) -> float:
    if square_meters < 50:
        return -0.08
    if square_meters < 75:
        return -0.04
    if square_meters < 100:
        return 0.0
    if square_meters < 150:
        return 0.02
    if square_meters < 200:
        return 0.04
    return 0.06


def location_impact(postal_code: str) -> float:
    return LOCATION_PREMIUM if postal_area(postal_code) in PREMIUM_AREAS else 0.0


def confidence_score(property_data: dict) -> float:
    confidence = BASE_CONFIDENCE
    label = property_data.get("energy_label")
    if label and label != DEFAULT_LABEL:
        confidence += 0.05
    if property_data.get("bouwjaar"):
        confidence += 0.05
    if property_data.get("oppervlakte"):
        confidence += 0.05
    if len(property_data.get("woz_values") or []) > 1:
        confidence += 0.02
    return round(min(MAX_CONFIDENCE, confidence), 2)


def comparable_sales(postal_code: str, property_type: str) -> list[dict]:
    """Indicative comparables for the area, stable per area and type."""
    area = postal_area(postal_code)
    rng = random.Random(f"{area}:{property_type}")
    base_price = round(market_data_for(postal_code)["market_multiplier"] * 300_000)
    today = datetime.now(timezone.utc).date()
    sales = []
    for i, (spread, days, size_base, size_spread) in enumerate(
        ((50_000, 90, 100, 50), (60_000, 120, 90, 60), (40_000, 60, 95, 55)), start=1
    ):
        sold_price = base_price + round((rng.random() - 0.5) * spread)
        sqm = size_base + round(rng.random() * size_spread)
        sales.append({
            "address": f"Vergelijkbare woning {i} in {area}",
            "sold_price": sold_price,
            "sold_date": (today - timedelta(days=int(rng.random() * days))).isoformat(),
            "square_meters": sqm,
            "price_per_sqm": round(sold_price / sqm),
        })
    return sales


# ── Calculation ───────────────────────────────────────────────────────


def property_data_from_woz(woz: dict, energy_label: str | None) -> dict:
    """Derive the valuation inputs from a WOZ lookup record."""
    current_year = datetime.now().year
    if woz.get("bouwjaar") and str(woz["bouwjaar"]).isdigit():
        construction_year = int(woz["bouwjaar"])
    elif woz.get("reference_year"):
        construction_year = int(woz["reference_year"]) - 20
    else:
        construction_year = current_year - 30

    square_meters = None
    oppervlakte = woz.get("oppervlakte")
    if oppervlakte and str(oppervlakte).replace(".", "", 1).isdigit() and 10 < float(oppervlakte) < 1000:
        square_meters = float(oppervlakte)
    elif woz.get("surface_area"):
        square_meters = float(woz["surface_area"])
    if not square_meters:
        square_meters = 100.0

    postal_code = woz.get("postal_code", "")
    return {
        "address": woz.get("address"),
        "postal_code": postal_code,
        "city": woz.get("city") or city_from_postal_code(postal_code),
        "property_type": property_type_from_object_type(woz.get("object_type")),
        "construction_year": construction_year,
        "square_meters": square_meters,
        "energy_label": energy_label or DEFAULT_LABEL,
        "woz_value": woz["woz_value"],
        "grond_oppervlakte": woz.get("grond_oppervlakte"),
        "bouwjaar": woz.get("bouwjaar"),
        "gebruiksdoel": woz.get("gebruiksdoel"),
        "oppervlakte": woz.get("oppervlakte"),
        "identificatie": woz.get("identificatie"),
        "adresseerbaar_object": woz.get("adresseerbaar_object"),
        "nummeraanduiding": woz.get("nummeraanduiding"),
        "woz_values": woz.get("woz_values") or [],
    }


def calculate_valuation(property_data: dict) -> dict:
    """Pure calculation — no DB or network access."""
    postal_code = property_data["postal_code"]
    market = market_data_for(postal_code)
    multiplier = market["market_multiplier"]
    estimated = float(property_data["woz_value"]) * multiplier
    factors = []

    label = property_data.get("energy_label") or DEFAULT_LABEL
    impact = energy_label_impact(label)
    estimated *= 1 + impact
    factors.append({
        "factor": "Energielabel",
        "impact": round(impact * 100, 2),
        "description": f"Energielabel {label} - marktimpact",
    })

    year = property_data.get("construction_year")
    if year:
        impact = age_impact(int(year))
        estimated *= 1 + impact
        factors.append({
            "factor": "Bouwjaar",
            "impact": round(impact * 100, 2),
            "description": f"Gebouwd in {year} - marktimpact",
        })

    sqm = property_data.get("square_meters")
    if sqm:
        impact = size_impact(float(sqm))
        estimated *= 1 + impact
        factors.append({
            "factor": "Oppervlakte",
            "impact": round(impact * 100, 2),
            "description": f"{sqm:g}m² - marktimpact",
        })

    impact = location_impact(postal_code)
    estimated *= 1 + impact
    factors.append({
        "factor": "Locatie",
        "impact": round(impact * 100, 2),
        "description": f"Locatiepremie voor {postal_code}",
    })

    now = datetime.now(timezone.utc).isoformat()
    return {
        "estimated_value": round(estimated),
        "confidence_score": confidence_score(property_data),
        "woz_value": property_data["woz_value"],
        "market_multiplier": multiplier,
        "factors": factors,
        "last_updated": now,
        "data_source": DATA_SOURCE,
        "market_trends": {
            "average_days_on_market": market["average_days_on_market"],
            "average_price_change": market["price_change"],
            "price_per_square_meter": round(estimated / (sqm or 100)),
        },
        "comparable_sales": comparable_sales(postal_code, property_data.get("property_type", "")),
        "property_data": {
            k: property_data.get(k)
            for k in (
                "city", "property_type", "construction_year", "square_meters", "energy_label",
                "grond_oppervlakte", "bouwjaar", "gebruiksdoel", "oppervlakte", "identificatie",
                "adresseerbaar_object", "nummeraanduiding", "woz_values",
            )
        },
    }


def cached_valuation(property_data: dict) -> dict:
    """calculate_valuation with a 30-minute cache per address."""
    key = f"valuation:{property_data['address']}:{normalize_postal_code(property_data['postal_code'])}"
    cached = get_cached(key)
    if cached is not None:
        log.info("Valuation retrieved from cache for %s", property_data["address"])
        return cached
    result = calculate_valuation(property_data)
    set_cached(key, result, ttl_seconds=VALUATION_TTL)
    return result


# ── Persistence ───────────────────────────────────────────────────────


def save_valuation(db: Session, address: str, postal_code: str, result: dict,
                   user_id: int | None = None) -> Valuation:
    row = Valuation(
        user_id=user_id,
        address=address,
        postal_code=normalize_postal_code(postal_code),
        estimated_value=result["estimated_value"],
        confidence_score=result["confidence_score"],
        woz_value=result["woz_value"],
        market_multiplier=result["market_multiplier"],
        data_source=result["data_source"],
        factors=result["factors"],
        market_trends=result["market_trends"],
        comparable_sales=result["comparable_sales"],
        property_data=result["property_data"],
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def valuation_to_dict(v: Valuation) -> dict:
    """Full valuation object, filling gaps in older rows with defaults."""
    estimated = v.estimated_value or 0
    trends = v.market_trends or {
        "average_days_on_market": 35,
        "average_price_change": 5.2,
        "price_per_square_meter": round(estimated / 100),
    }
    return {
        "id": v.id,
        "address": v.address,
        "postal_code": v.postal_code,
        "estimated_value": estimated,
        "confidence_score": v.confidence_score,
        "woz_value": v.woz_value or 0,
        "market_multiplier": v.market_multiplier or 1,
        "factors": v.factors or [],
        "data_source": v.data_source or FALLBACK_DATA_SOURCE,
        "market_trends": trends,
        "comparable_sales": v.comparable_sales or [],
        "property_data": v.property_data or {},
        "created_at": v.created_at.isoformat() if v.created_at else None,
    }


async def get_property_data(db: Session, address: str, postal_code: str) -> dict | None:
    """WOZ record plus registered energy label, shaped for calculate_valuation.

    Returns None when no WOZ value can be found for the address.
    """
    from ..connectors.ep_online import ep_online
    from .woz_service import get_woz_value

    woz = await get_woz_value(db, address, postal_code)
    if not woz["success"]:
        return None
    label = await ep_online.energy_label(address, postal_code)
    return property_data_from_woz(woz["data"], label)
