from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from freight_core.db.base import Base, utcnow
from freight_core.db.session import SessionLocal, engine
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
from freight_core.security.context import Role
from freight_core.workflow.booking import RequestKind
from freight_core.workflow.load import LoadStatus


def init_db(seed: bool = True, expiry_hours: int = 24) -> None:
    """
    Create tables and, optionally, the demo marketplace.

    The seed uses fixed ids so the API can be tried with
    `Authorization: Bearer carrier-a` and friends.
    """

    Base.metadata.create_all(bind=engine)
    if not seed:
        return

    with SessionLocal() as db:
        if _has_seed_data(db):
            return
        seed_demo_data(db, expiry_hours=expiry_hours)


def _has_seed_data(db: Session) -> bool:
    return db.execute(select(Organization.id).limit(1)).first() is not None


def seed_demo_data(db: Session, now: datetime | None = None, expiry_hours: int = 24) -> None:
    now = now or utcnow()

    # Organizations
    abay = Organization(id="org-abay", name="Abay Shippers", org_type="SHIPPER", is_verified=True)
    rift = Organization(id="org-rift", name="Rift Valley Traders", org_type="SHIPPER", is_verified=True)
    selam = Organization(id="org-selam", name="Selam Transport", org_type="CARRIER_COMPANY", is_verified=True)
    tana = Organization(id="org-tana", name="Tana Haulage", org_type="CARRIER_COMPANY", is_verified=True)
    db.add_all([abay, rift, selam, tana])
    db.flush()

    # Users
    db.add_all(
        [
            User(id="shipper-a", email="ops@abay.example.com", full_name="Almaz Bekele", role=Role.SHIPPER.value, organization_id=abay.id),
            User(id="shipper-b", email="ops@rift.example.com", full_name="Dawit Tesfaye", role=Role.SHIPPER.value, organization_id=rift.id),
            User(id="carrier-a", email="fleet@selam.example.com", full_name="Hana Girma", role=Role.CARRIER.value, organization_id=selam.id),
            User(id="carrier-b", email="fleet@tana.example.com", full_name="Yonas Alemu", role=Role.CARRIER.value, organization_id=tana.id),
            User(id="dispatcher", email="dispatch@freight.example.com", full_name="Meron Haile", role=Role.DISPATCHER.value),
            User(id="admin", email="admin@freight.example.com", full_name="Platform Admin", role=Role.ADMIN.value),
        ]
    )
    db.flush()

    # Trucks and postings
    t1 = Truck(id="truck-selam-1", carrier_org_id=selam.id, license_plate="AA-3-12345", truck_type="DRY_VAN")
    t2 = Truck(id="truck-tana-1", carrier_org_id=tana.id, license_plate="OR-3-54321", truck_type="FLATBED", is_available=False)
    db.add_all([t1, t2])
    db.flush()

    db.add(
        TruckPosting(
            truck_id=t1.id,
            carrier_org_id=selam.id,
            created_by_id="carrier-a",
            status=PostingStatus.ACTIVE.value,
            origin_city="Addis Ababa",
            destination_city="Dire Dawa",
            available_from=now,
        )
    )

    # Loads: one on the marketplace, one still a draft, one already on the road.
    posted = Load(
        id="load-posted",
        shipper_org_id=abay.id,
        created_by_id="shipper-a",
        status=LoadStatus.POSTED.value,
        pickup_city="Addis Ababa",
        delivery_city="Dire Dawa",
        cargo_description="Coffee, 200 bags",
        weight_kg=Decimal("12000"),
        shipper_service_fee=Decimal("150.00"),
        carrier_service_fee=Decimal("100.00"),
        posted_at=now,
    )
    draft = Load(
        id="load-draft",
        shipper_org_id=abay.id,
        created_by_id="shipper-a",
        status=LoadStatus.DRAFT.value,
        pickup_city="Addis Ababa",
        delivery_city="Hawassa",
        cargo_description="Textiles",
    )
    assigned = Load(
        id="load-assigned",
        shipper_org_id=rift.id,
        carrier_org_id=tana.id,
        assigned_truck_id=t2.id,
        created_by_id="shipper-b",
        status=LoadStatus.ASSIGNED.value,
        pickup_city="Adama",
        delivery_city="Mekelle",
        cargo_description="Cement",
        weight_kg=Decimal("20000"),
        shipper_service_fee=Decimal("200.00"),
        carrier_service_fee=Decimal("120.00"),
        posted_at=now - timedelta(days=1),
        assigned_at=now,
    )
    db.add_all([posted, draft, assigned])
    db.flush()

    db.add(
        Trip(
            id="trip-1",
            load_id=assigned.id,
            truck_id=t2.id,
            carrier_org_id=tana.id,
            shipper_org_id=rift.id,
        )
    )

    db.add(
        BookingRequest(
            kind=RequestKind.LOAD_REQUEST.value,
            load_id=posted.id,
            truck_id=t1.id,
            shipper_org_id=abay.id,
            carrier_org_id=selam.id,
            created_by_id="carrier-a",
            expires_at=now + timedelta(hours=expiry_hours),
        )
    )

    # Wallets
    db.add_all(
        [
            FinancialAccount(organization_id=abay.id, account_type=AccountType.SHIPPER_WALLET.value, balance=Decimal("5000.00")),
            FinancialAccount(organization_id=rift.id, account_type=AccountType.SHIPPER_WALLET.value, balance=Decimal("5000.00")),
            FinancialAccount(organization_id=selam.id, account_type=AccountType.CARRIER_WALLET.value, balance=Decimal("1000.00")),
            FinancialAccount(organization_id=tana.id, account_type=AccountType.CARRIER_WALLET.value, balance=Decimal("1000.00")),
            FinancialAccount(organization_id=None, account_type=AccountType.PLATFORM_REVENUE.value, balance=Decimal("0.00")),
        ]
    )

    db.commit()
