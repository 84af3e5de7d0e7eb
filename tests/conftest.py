"""
conftest.py — Shared Test Fixtures for OpenHaus

Provides an in-memory SQLite database, FastAPI TestClient with auth
overrides, and factory fixtures for core models (User, Property).

Business Rules:
- All tests run against isolated in-memory DB (no prod data risk)
- The in-process cache (rate-limit counters, cached searches) is wiped
  between tests
- `client` signs every request in as test_user (a seller);
  `anon_client` only swaps the database, so real bearer tokens apply

Called by: all test files via pytest autodiscovery
Depends on: app.models (Base), app.database (get_db), app.dependencies
"""

import os

os.environ["TESTING"] = "1"  # Must be set before importing app modules
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.cache.store import reset_memory_cache
from app.models import Base, Property, User
from app.security import create_access_token

# ── In-memory SQLite engine ──────────────────────────────────────────

TEST_DB_URL = "sqlite://"  # in-memory, fresh per session

engine = create_engine(
    TEST_DB_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@event.listens_for(engine, "connect")
def _enable_fk(dbapi_conn, _):
    """SQLite ignores FKs by default — turn them on."""
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def db_session():
    """Create all tables, yield a session, then tear down."""
    Base.metadata.create_all(bind=engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _clear_cache():
    reset_memory_cache()
    yield
    reset_memory_cache()


def _make_user(db: Session, email: str, name: str, role: str, **extra) -> User:
    user = User(
        email=email,
        name=name,
        role=role,
        verified=True,
        is_active=True,
        created_at=datetime.now(timezone.utc),
        **extra,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def test_user(db_session: Session) -> User:
    """A seller who owns listings."""
    return _make_user(db_session, "verkoper@openhaus.nl", "Test Verkoper", "seller")


@pytest.fixture()
def buyer_user(db_session: Session) -> User:
    return _make_user(db_session, "koper@openhaus.nl", "Test Koper", "buyer")


@pytest.fixture()
def admin_user(db_session: Session) -> User:
    return _make_user(db_session, "beheer@openhaus.nl", "Test Beheer", "admin")


@pytest.fixture()
def test_property(db_session: Session, test_user: User) -> Property:
    """An available Amsterdam apartment owned by test_user."""
    prop = Property(
        user_id=test_user.id,
        address="Prinsengracht 263",
        postal_code="1016 GV",
        city="Amsterdam",
        province="Noord-Holland",
        property_type="apartment",
        bedrooms=2,
        bathrooms=1,
        square_meters=85,
        construction_year=1920,
        asking_price=650000,
        estimated_value=650000,
        confidence_score=0.8,
        status="AVAILABLE",
        energy_label="C",
        description="Grachtenpand met uitzicht",
        features=["balkon"],
        images=[],
        created_at=datetime.now(timezone.utc),
    )
    db_session.add(prop)
    db_session.commit()
    db_session.refresh(prop)
    return prop


def _auth_header(user: User) -> dict:
    token = create_access_token(user.id, user.email, user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def auth_header():
    """Builds an Authorization header carrying a real access token for a user."""
    return _auth_header


@pytest.fixture()
def client(db_session: Session, test_user: User) -> TestClient:
    """FastAPI TestClient with auth overridden to return test_user.

    Overrides get_db to use the test session and require_user to
    skip token checks entirely.
    """
    from app.database import get_db
    from app.dependencies import require_user
    from app.main import app

    def _override_db():
        yield db_session

    def _override_user():
        return test_user

    app.dependency_overrides[get_db] = _override_db
    app.dependency_overrides[require_user] = _override_user

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture()
def anon_client(db_session: Session) -> TestClient:
    """TestClient with only the database overridden."""
    from app.database import get_db
    from app.main import app

    def _override_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_db

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
