"""
Pytest fixtures for the test suite.

Database tests use an in-memory SQLite engine (one per test) and a session
whose work is rolled back afterwards. `world` seeds a small two-shipper,
two-carrier marketplace; `client` runs the API against that same session.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from freight_core.db import filters as _filters  # noqa: F401  (register listing scope)
from freight_core.db.base import utcnow
from freight_core.db.session import configure_sqlite, get_db
from freight_core.models import (
    AccountType,
    BookingRequest,
    FinancialAccount,
    Load,
    Organization,
    PostingStatus,
    Trip,
    Truck,
    TruckPosting,
    User,
)
from freight_core.security.config import load_policy_config
from freight_core.security.context import Role, UserStatus
from freight_core.workflow.booking import RequestKind, RequestStatus
from freight_core.workflow.load import LoadStatus

TEST_DB_URL = "sqlite://"
POLICY_PATH = Path(__file__).resolve().parents[1] / "config" / "policy.yaml"


@pytest.fixture
def engine():
    """Fresh in-memory SQLite engine; StaticPool keeps one connection alive."""
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    return configure_sqlite(engine)


@pytest.fixture
def tables(engine):
    """Create all ORM tables on the test engine."""
    from freight_core.db.base import Base

    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def db_session(tables):
    """
    Session bound to the test DB; everything is rolled back after the test.

    Code under test may commit (services do): each commit only releases a
    SAVEPOINT inside the outer transaction.
    """
    connection = tables.connect()
    transaction = connection.begin()
    TestSession = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        class_=Session,
        join_transaction_mode="create_savepoint",
    )
    session = TestSession()
    yield session
    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def policy():
    return load_policy_config(POLICY_PATH)


@dataclass
class World:
    now: datetime
    shipper_a: str = "org-shipper-a"
    shipper_b: str = "org-shipper-b"
    carrier_a: str = "org-carrier-a"
    carrier_b: str = "org-carrier-b"


def _build_world(db: Session, now: datetime) -> World:
    world = World(now=now)

    db.add_all(
        [
            Organization(id=world.shipper_a, name="Abay Shippers", org_type="SHIPPER"),
            Organization(id=world.shipper_b, name="Rift Valley Traders", org_type="SHIPPER"),
            Organization(id=world.carrier_a, name="Selam Transport", org_type="CARRIER_COMPANY"),
            Organization(id=world.carrier_b, name="Tana Haulage", org_type="CARRIER_COMPANY"),
        ]
    )
    db.flush()

    db.add_all(
        [
            User(id="u-shipper-a", email="sa@example.com", role=Role.SHIPPER.value, organization_id=world.shipper_a),
            User(id="u-shipper-b", email="sb@example.com", role=Role.SHIPPER.value, organization_id=world.shipper_b),
            User(id="u-carrier-a", email="ca@example.com", role=Role.CARRIER.value, organization_id=world.carrier_a),
            User(id="u-carrier-b", email="cb@example.com", role=Role.CARRIER.value, organization_id=world.carrier_b),
            User(id="u-dispatcher", email="dispatch@example.com", role=Role.DISPATCHER.value),
            User(id="u-admin", email="admin@example.com", role=Role.ADMIN.value),
            User(id="u-super", email="super@example.com", role=Role.SUPER_ADMIN.value),
            User(id="u-agent", email="agent@example.com", role=Role.LOGISTICS_AGENT.value, organization_id=world.carrier_a),
            User(
                id="u-suspended",
                email="suspended@example.com",
                role=Role.CARRIER.value,
                status=UserStatus.SUSPENDED.value,
                organization_id=world.carrier_a,
            ),
            User(
                id="u-pending",
                email="pending@example.com",
                role=Role.SHIPPER.value,
                status=UserStatus.PENDING_VERIFICATION.value,
                organization_id=world.shipper_a,
            ),
        ]
    )
    db.flush()

    db.add_all(
        [
            Truck(id="truck-a", carrier_org_id=world.carrier_a, license_plate="AA-1", truck_type="DRY_VAN"),
            Truck(id="truck-b", carrier_org_id=world.carrier_b, license_plate="BB-1", truck_type="FLATBED"),
        ]
    )
    db.flush()

    db.add_all(
        [
            TruckPosting(
                id="posting-a",
                truck_id="truck-a",
                carrier_org_id=world.carrier_a,
                status=PostingStatus.ACTIVE.value,
                origin_city="Addis Ababa",
            ),
            TruckPosting(
                id="posting-b-expired",
                truck_id="truck-b",
                carrier_org_id=world.carrier_b,
                status=PostingStatus.EXPIRED.value,
                origin_city="Adama",
            ),
        ]
    )

    db.add_all(
        [
            Load(
                id="load-posted",
                shipper_org_id=world.shipper_a,
                created_by_id="u-shipper-a",
                status=LoadStatus.POSTED.value,
                pickup_city="Addis Ababa",
                delivery_city="Dire Dawa",
                shipper_service_fee=Decimal("150.00"),
                carrier_service_fee=Decimal("100.00"),
            ),
            Load(
                id="load-draft",
                shipper_org_id=world.shipper_a,
                created_by_id="u-shipper-a",
                status=LoadStatus.DRAFT.value,
                pickup_city="Addis Ababa",
                delivery_city="Hawassa",
            ),
            Load(
                id="load-draft-b",
                shipper_org_id=world.shipper_b,
                created_by_id="u-shipper-b",
                status=LoadStatus.DRAFT.value,
                pickup_city="Adama",
                delivery_city="Gondar",
            ),
            Load(
                id="load-trip",
                shipper_org_id=world.shipper_b,
                carrier_org_id=world.carrier_b,
                assigned_truck_id="truck-b",
                created_by_id="u-shipper-b",
                status=LoadStatus.ASSIGNED.value,
                pickup_city="Adama",
                delivery_city="Mekelle",
                shipper_service_fee=Decimal("200.00"),
                carrier_service_fee=Decimal("120.00"),
            ),
        ]
    )
    db.flush()

    db.add(
        Trip(
            id="trip-1",
            load_id="load-trip",
            truck_id="truck-b",
            carrier_org_id=world.carrier_b,
            shipper_org_id=world.shipper_b,
        )
    )

    def request(request_id: str, kind: RequestKind, carrier_org: str, truck: str, expires_at: datetime, by: str):
        return BookingRequest(
            id=request_id,
            kind=kind.value,
            load_id="load-posted",
            truck_id=truck,
            shipper_org_id=world.shipper_a,
            carrier_org_id=carrier_org,
            created_by_id=by,
            status=RequestStatus.PENDING.value,
            expires_at=expires_at,
        )

    later = now + timedelta(hours=24)
    db.add_all(
        [
            request("req-load", RequestKind.LOAD_REQUEST, world.carrier_a, "truck-a", later, "u-carrier-a"),
            request("req-load-b", RequestKind.LOAD_REQUEST, world.carrier_b, "truck-b", later, "u-carrier-b"),
            request("req-expired", RequestKind.LOAD_REQUEST, world.carrier_b, "truck-b", now - timedelta(hours=1), "u-carrier-b"),
            request("req-truck", RequestKind.TRUCK_REQUEST, world.carrier_a, "truck-a", later, "u-shipper-a"),
            request("req-match", RequestKind.MATCH_PROPOSAL, world.carrier_a, "truck-a", later, "u-dispatcher"),
        ]
    )

    db.add_all(
        [
            FinancialAccount(
                id="wallet-shipper-a",
                organization_id=world.shipper_a,
                account_type=AccountType.SHIPPER_WALLET.value,
                balance=Decimal("5000.00"),
            ),
            FinancialAccount(
                id="wallet-shipper-b",
                organization_id=world.shipper_b,
                account_type=AccountType.SHIPPER_WALLET.value,
                balance=Decimal("5000.00"),
            ),
            FinancialAccount(
                id="wallet-carrier-a",
                organization_id=world.carrier_a,
                account_type=AccountType.CARRIER_WALLET.value,
                balance=Decimal("1000.00"),
            ),
            FinancialAccount(
                id="wallet-carrier-b",
                organization_id=world.carrier_b,
                account_type=AccountType.CARRIER_WALLET.value,
                balance=Decimal("1000.00"),
            ),
            FinancialAccount(
                id="platform-revenue",
                organization_id=None,
                account_type=AccountType.PLATFORM_REVENUE.value,
                balance=Decimal("0.00"),
            ),
        ]
    )

    db.commit()
    return world


@pytest.fixture
def world(db_session) -> World:
    return _build_world(db_session, utcnow())


@pytest.fixture
def app(db_session, policy):
    from freight_core.main import create_app

    application = create_app(policy=policy)

    def _override_get_db():
        yield db_session

    application.dependency_overrides[get_db] = _override_get_db
    return application


@pytest.fixture
def client(app):
    return TestClient(app)