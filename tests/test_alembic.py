"""
test_alembic.py — Verify Alembic migration setup and structure.

Tests migration chain validity, model-metadata consistency and env.py
configuration. Runs the baseline migration against in-memory SQLite.

Called by: pytest
Depends on: alembic/, app.models
"""

from pathlib import Path

from alembic.config import Config
from alembic.migration import MigrationContext
from alembic.operations import Operations
from alembic.script import ScriptDirectory
from sqlalchemy import create_engine, inspect

from app.models import Base

ROOT = Path(__file__).parent.parent


def _script() -> ScriptDirectory:
    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "alembic"))
    return ScriptDirectory.from_config(cfg)


def test_single_head():
    assert len(_script().get_heads()) == 1


def test_initial_migration_has_no_parent():
    base = _script().get_revision("001_initial")
    assert base.down_revision is None


def test_baseline_creates_and_drops_every_table():
    """Running upgrade()/downgrade() yields exactly the model tables."""
    module = _script().get_revision("001_initial").module
    engine = create_engine("sqlite://")
    with engine.begin() as conn:
        ctx = MigrationContext.configure(conn)
        with Operations.context(ctx):
            module.upgrade()
        assert set(inspect(conn).get_table_names()) == set(Base.metadata.tables)
        with Operations.context(ctx):
            module.downgrade()
        assert inspect(conn).get_table_names() == []


def test_env_py_imports_all_models():
    content = (ROOT / "alembic" / "env.py").read_text()
    assert "from app.models import Base" in content


def test_no_create_all_in_main():
    """main.py must NOT use create_all — Alembic manages schema."""
    assert "create_all" not in (ROOT / "app" / "main.py").read_text()
