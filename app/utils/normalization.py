"""Deterministic normalization — pure Python.

Normalizes values pulled from WOZ pages, API replies and user input:
  - Postal codes: "1012 ab" → "1012AB"
  - Numbers: "412.000" → 412000, "1.250.000,00" → 1250000, "123,456.78" → 123457
  - WOZ values: "WOZ-waarde € 412.000" → 412000 (plausible range only)
  - Reference years: "peildatum 01-01-2023" → 2023
  - Surface areas: "112 m²" → 112.0

Design: Prefer less data if it means better data. Return None for ambiguous values.
"""

import math
import re
from typing import Any

POSTAL_CODE_RE = re.compile(r"^\d{4}\s?[A-Z]{2}$", re.IGNORECASE)

# Plausible WOZ range; anything outside is a year, a surface or noise
WOZ_MIN = 50_000
WOZ_MAX = 5_000_000

_WOZ_PATTERNS = [
    re.compile(r"€\s*(\d{1,3}(?:[.,]\d{3})*(?:[.,]\d{2})?)"),
    re.compile(r"(\d{1,3}(?:[.,]\d{3})*(?:[.,]\d{2})?)\s*euro", re.IGNORECASE),
    re.compile(r"(\d{1,3}(?:[.,]\d{3})*)\s*(?:euro|€)", re.IGNORECASE),
    re.compile(r"woz[^€\d]*€?\s*(\d{1,3}(?:[.,]\d{3})*)", re.IGNORECASE),
    re.compile(r"waarde[^€\d]*€?\s*(\d{1,3}(?:[.,]\d{3})*)", re.IGNORECASE),
]


def normalize_postal_code(raw: str | None) -> str:
    """Strip whitespace and upper-case: "1012 ab" → "1012AB"."""
    if not raw:
        return ""
    return re.sub(r"\s", "", raw).upper()


def is_valid_postal_code(raw: str | None) -> bool:
    return bool(raw) and bool(POSTAL_CODE_RE.match(raw.strip()))


def postal_area(raw: str | None) -> str:
    """First four digits of a postal code ("1012AB" → "1012")."""
    return normalize_postal_code(raw)[:4]


def _js_round(value: float) -> int:
    # Half-up, matching how the figures are published
    return int(math.floor(value + 0.5))


def normalize_number(raw: Any) -> int | None:
    """Parse a European or US formatted number and round to an integer."""
    if raw is None:
        return None
    if isinstance(raw, (int, float)):
        return _js_round(float(raw))

    s = str(raw).strip()
    if not s:
        return None

    if "," in s and "." in s:
        if s.rfind(",") > s.rfind("."):
            # European: 123.456,78
            s = s.replace(".", "").replace(",", ".", 1)
        else:
            # US: 123,456.78
            s = s.replace(",", "")
    elif "," in s:
        parts = s.split(",")
        if len(parts) == 2 and len(parts[1]) <= 2:
            s = s.replace(",", ".")
        else:
            s = s.replace(",", "")
    elif "." in s:
        parts = s.split(".")
        if not (len(parts) == 2 and len(parts[1]) <= 2):
            s = s.replace(".", "")

    try:
        return _js_round(float(s))
    except ValueError:
        return None


def parse_woz_value(text: str | None) -> int | None:
    """Extract the most likely WOZ value from free text.

    Every euro-looking amount in the plausible range is a candidate; the
    highest wins. Without candidates, the first number in the text is used.
    """
    if not text:
        return None

    candidates = []
    for pattern in _WOZ_PATTERNS:
        for match in pattern.finditer(text):
            value = normalize_number(match.group(1))
            if value and WOZ_MIN <= value <= WOZ_MAX:
                candidates.append(value)
    if candidates:
        return max(candidates)

    clean = re.sub(r"[^\d.,]", "", text)
    m = re.search(r"(\d{1,3}(?:[.,]\d{3})*(?:[.,]\d{2})?)", clean)
    if not m:
        return None
    return normalize_number(m.group(1))


def parse_year(text: str | None) -> int | None:
    """First 20xx year in text."""
    if not text:
        return None
    m = re.search(r"(20\d{2})", str(text))
    return int(m.group(1)) if m else None


def parse_surface_area(text: str | None) -> float | None:
    """Surface in m² from text like "112 m²" or "85,5m2"."""
    if not text:
        return None
    m = re.search(r"(\d+(?:[.,]\d+)?) *m[²2]?", str(text))
    if not m:
        return None
    return float(m.group(1).replace(",", "."))
