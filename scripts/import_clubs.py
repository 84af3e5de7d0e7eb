#!/usr/bin/env python3
"""Import the club directory from an Excel workbook.

Reads the first sheet, expecting the header row
    Land | Competitie | Club | Website
and upserts one Club per (country, competition, name). Rows missing any
of the four values are skipped. Re-running updates websites in place.

Usage:
    PYTHONPATH=. python scripts/import_clubs.py Clubs_met_sfeer_en_websites.xlsx
"""

import argparse
import logging
import os
import sys

# Must set up path before app imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from openpyxl import load_workbook
from sqlalchemy.orm import Session

from app.database import SessionLocal
from app.models import Club

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(message)s",
    datefmt="%H:%M:%S",
)
log = logging.getLogger("import_clubs")

EXPECTED_HEADER = ["Land", "Competitie", "Club", "Website"]


def read_rows(path: str) -> list[tuple[str, str, str, str]]:
    """Data rows of the first sheet as (country, competition, name, website)."""
    wb = load_workbook(path, read_only=True, data_only=True)
    try:
        sheet = wb.worksheets[0]
        rows = sheet.iter_rows(values_only=True)
        header = next(rows, None)
        if not header or len(header) < 4:
            raise ValueError(f"Unexpected header in Excel file: {header}")
        if [str(h).strip() if h else "" for h in header[:4]] != EXPECTED_HEADER:
            log.warning("Header %s differs from %s; reading by position", header[:4], EXPECTED_HEADER)

        result = []
        for row in rows:
            if not row or len(row) < 4:
                continue
            values = [str(v).strip() if v is not None else "" for v in row[:4]]
            if not all(values):
                continue
            result.append(tuple(values))
        return result
    finally:
        wb.close()


def upsert_clubs(db: Session, rows: list[tuple[str, str, str, str]]) -> dict:
    created = updated = 0
    for country, competition, name, website in rows:
        club = (
            db.query(Club)
            .filter_by(country=country, competition=competition, name=name)
            .first()
        )
        if club is None:
            db.add(Club(country=country, competition=competition, name=name, website=website))
            created += 1
        elif club.website != website:
            club.website = website
            updated += 1
        log.info("Upserted: %s | %s | %s", country, competition, name)
    db.commit()
    return {"created": created, "updated": updated, "total": len(rows)}


def main() -> int:
    parser = argparse.ArgumentParser(description="Import clubs from an xlsx workbook")
    parser.add_argument("path", help="Path to the .xlsx file")
    args = parser.parse_args()

    if not os.path.exists(args.path):
        log.error("Excel file not found: %s", args.path)
        return 1

    rows = read_rows(args.path)
    db = SessionLocal()
    try:
        stats = upsert_clubs(db, rows)
    finally:
        db.close()
    log.info("Import complete: %s", stats)
    return 0


if __name__ == "__main__":
    sys.exit(main())
