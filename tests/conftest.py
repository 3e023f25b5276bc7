"""
conftest.py — Shared Test Fixtures for Smartify

Provides an in-memory SQLite database, FastAPI TestClients (with and without
agent auth overridden), and factory fixtures for stores, agents, catalog
rows, applications and the number pool.

Business Rules:
- All tests run against an isolated in-memory DB
- Dev mode is on, so the OTP code is the fixed "123456"
- Rate limiting is disabled so loops of requests don't trip 429s
- Each test function gets fresh tables

Called by: all test files via pytest autodiscovery
Depends on: smartify.models (Base), smartify.database (get_db), smartify.dependencies
"""

import os

# Must be set before importing smartify modules (settings load at import)
os.environ["TESTING"] = "1"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DEV_MODE"] = "true"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from smartify.models import (
    Agent,
    Application,
    AvailableNumber,
    Barangay,
    Base,
    City,
    Device,
    DeviceConfiguration,
    Plan,
    Province,
    Store,
)
from smartify.services.agent_service import hash_password

# ── In-memory SQLite engine ──────────────────────────────────────────

TEST_DB_URL = "sqlite://"

engine = create_engine(
    TEST_DB_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

AGENT_PASSWORD = "correct-horse-battery"


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


@pytest.fixture()
def locations(db_session: Session) -> dict:
    """Metro Manila → Quezon City → Commonwealth, plus Manila → Ermita."""
    ncr = Province(name="Metro Manila", code="NCR")
    db_session.add(ncr)
    db_session.flush()
    qc = City(province_id=ncr.id, name="Quezon City", code="QC")
    mnl = City(province_id=ncr.id, name="Manila", code="MNL")
    db_session.add_all([qc, mnl])
    db_session.flush()
    commonwealth = Barangay(city_id=qc.id, name="Barangay Commonwealth", zip_code="1121")
    ermita = Barangay(city_id=mnl.id, name="Barangay Ermita", zip_code="1000")
    db_session.add_all([commonwealth, ermita])
    db_session.commit()
    return {"province": ncr, "city": qc, "barangay": commonwealth, "other_city": mnl, "other_barangay": ermita}


@pytest.fixture()
def store(db_session: Session) -> Store:
    s = Store(name="Main Store - Quezon City", address="Commonwealth Avenue", is_active=True)
    db_session.add(s)
    db_session.commit()
    db_session.refresh(s)
    return s


@pytest.fixture()
def agent(db_session: Session, store: Store) -> Agent:
    """An active store agent (bcrypt with low rounds for speed)."""
    a = Agent(
        username="agent1",
        email="agent1@smartify.test",
        password_hash=hash_password(AGENT_PASSWORD, rounds=4),
        full_name="Agent One",
        store_id=store.id,
        role="agent",
    )
    db_session.add(a)
    db_session.commit()
    db_session.refresh(a)
    return a


@pytest.fixture()
def other_agent(db_session: Session, store: Store) -> Agent:
    a = Agent(
        username="agent2",
        email="agent2@smartify.test",
        password_hash=hash_password(AGENT_PASSWORD, rounds=4),
        full_name="Agent Two",
        store_id=store.id,
        role="agent",
    )
    db_session.add(a)
    db_session.commit()
    db_session.refresh(a)
    return a


@pytest.fixture()
def plan(db_session: Session) -> Plan:
    p = Plan(
        name="PLAN 1299",
        price=Decimal("1299.00"),
        duration_months=12,
        features={"data": "25GB DATA"},
        is_active=True,
    )
    db_session.add(p)
    db_session.commit()
    db_session.refresh(p)
    return p


@pytest.fixture()
def device(db_session: Session) -> Device:
    d = Device(
        name="iPhone 17",
        brand="Apple",
        model="iPhone 17",
        base_price=Decimal("59990.00"),
        images=["/images/iphone-17.jpg"],
        is_active=True,
    )
    db_session.add(d)
    db_session.commit()
    db_session.refresh(d)
    return d


@pytest.fixture()
def device_config(db_session: Session, device: Device) -> DeviceConfiguration:
    c = DeviceConfiguration(
        device_id=device.id,
        color="Purple",
        storage="256GB",
        price_adjustment=Decimal("4000.00"),
        stock_quantity=15,
        is_active=True,
    )
    db_session.add(c)
    db_session.commit()
    db_session.refresh(c)
    return c


def make_application(db: Session, **overrides) -> Application:
    fields = {
        "cart_id": f"CART-TEST-{db.query(Application).count() + 1:04d}",
        "status": "pending",
        "email": "u@x.com",
        "email_verified": False,
        "sim_type": "physical",
    }
    fields.update(overrides)
    app = Application(**fields)
    db.add(app)
    db.commit()
    db.refresh(app)
    return app


@pytest.fixture()
def pending_application(db_session: Session) -> Application:
    """A fresh pending application with an unverified email."""
    return make_application(db_session)


@pytest.fixture()
def submitted_application(db_session: Session, agent: Agent, store: Store) -> Application:
    """A submitted application owned by `agent`."""
    return make_application(
        db_session,
        email="owned@x.com",
        status="submitted",
        email_verified=True,
        assigned_agent_id=agent.id,
        store_id=store.id,
    )


@pytest.fixture()
def numbers(db_session: Session) -> list[AvailableNumber]:
    rows = [
        AvailableNumber(msisdn="09171234567", status="available"),
        AvailableNumber(msisdn="09181234567", status="available"),
        AvailableNumber(msisdn="09191234567", status="available"),
    ]
    db_session.add_all(rows)
    db_session.commit()
    for r in rows:
        db_session.refresh(r)
    return rows


@pytest.fixture()
def public_client(db_session: Session) -> TestClient:
    """TestClient with only the DB overridden; agent routes need a real login."""
    from smartify.database import get_db
    from smartify.main import app

    def _override_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_db

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture()
def client(db_session: Session, agent: Agent) -> TestClient:
    """TestClient with require_agent overridden to return `agent`."""
    from smartify.database import get_db
    from smartify.dependencies import require_agent
    from smartify.main import app

    def _override_db():
        yield db_session

    def _override_agent():
        return agent

    app.dependency_overrides[get_db] = _override_db
    app.dependency_overrides[require_agent] = _override_agent

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
