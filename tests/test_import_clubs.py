"""
tests/test_import_clubs.py — Tests for scripts/import_clubs.py

Covers: reading the first sheet, skipping incomplete rows, header
mismatch tolerance and idempotent upserts.

Called by: pytest
Depends on: openpyxl, app.models.Club, conftest (db_session)
"""

import importlib.util
from pathlib import Path

import pytest
from openpyxl import Workbook

from app.models import Club

SCRIPT = Path(__file__).parent.parent / "scripts" / "import_clubs.py"


@pytest.fixture(scope="module")
def importer():
    spec = importlib.util.spec_from_file_location("import_clubs", SCRIPT)
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)
    return mod


def _workbook(path, rows, header=("Land", "Competitie", "Club", "Website")):
    wb = Workbook()
    ws = wb.active
    ws.append(list(header))
    for row in rows:
        ws.append(list(row))
    wb.save(path)
    return str(path)


ROWS = [
    ("Nederland", "Eredivisie", "Ajax", "https://www.ajax.nl"),
    ("Nederland", "Eredivisie", "PSV", "https://www.psv.nl"),
    ("Duitsland", "Bundesliga", "FC Köln", "https://fc.de"),
]


class TestReadRows:
    def test_reads_all_complete_rows(self, importer, tmp_path):
        path = _workbook(tmp_path / "clubs.xlsx", ROWS)
        assert importer.read_rows(path) == ROWS

    def test_skips_incomplete_rows(self, importer, tmp_path):
        path = _workbook(tmp_path / "clubs.xlsx", [
            ROWS[0],
            ("Nederland", "Eredivisie", None, "https://leeg.nl"),
            ("  Nederland ", "Eerste Divisie", " Cambuur ", "https://cambuur.nl"),
        ])
        assert importer.read_rows(path) == [
            ROWS[0],
            ("Nederland", "Eerste Divisie", "Cambuur", "https://cambuur.nl"),
        ]

    def test_other_header_read_by_position(self, importer, tmp_path):
        path = _workbook(tmp_path / "clubs.xlsx", ROWS[:1], header=("Country", "League", "Team", "Url"))
        assert importer.read_rows(path) == ROWS[:1]

    def test_short_header_raises(self, importer, tmp_path):
        path = _workbook(tmp_path / "clubs.xlsx", [], header=("Land", "Club"))
        with pytest.raises(ValueError):
            importer.read_rows(path)


class TestUpsert:
    def test_creates(self, importer, db_session):
        stats = importer.upsert_clubs(db_session, ROWS)
        assert stats == {"created": 3, "updated": 0, "total": 3}
        assert db_session.query(Club).count() == 3

    def test_rerun_updates_websites_only(self, importer, db_session):
        importer.upsert_clubs(db_session, ROWS)
        changed = [ROWS[0][:3] + ("https://ajax.nl/nieuw",), ROWS[1]]
        stats = importer.upsert_clubs(db_session, changed)
        assert stats == {"created": 0, "updated": 1, "total": 2}
        assert db_session.query(Club).count() == 3
        ajax = db_session.query(Club).filter_by(name="Ajax").one()
        assert ajax.website == "https://ajax.nl/nieuw"
