from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from freight_core.db.filters import listing_options
from freight_core.db.session import get_db
from freight_core.models.freight import Truck, TruckPosting
from freight_core.routers.common import View, resolve_listing
from freight_core.schemas.freight import TruckOut, TruckPostingOut
from freight_core.security.capability import CapabilityResolver
from freight_core.security.config import PolicyConfig
from freight_core.security.context import RequestSession
from freight_core.security.dependencies import get_capability_resolver, get_current_session, get_policy
from freight_core.security.guard import authorize
from freight_core.security.scope import EntityKind, Listing
from freight_core.security.visibility import Action

router = APIRouter(tags=["trucks"])


@router.get("/trucks", response_model=list[TruckOut])
def list_trucks(db: Session = Depends(get_db)) -> list[Truck]:
    stmt = (
        select(Truck)
        .order_by(Truck.license_plate)
        .execution_options(**listing_options(EntityKind.TRUCK, Listing.ENTITLED))
    )
    return list(db.scalars(stmt).all())


@router.get("/trucks/{truck_id}", response_model=TruckOut)
def get_truck(
    truck_id: str,
    session: RequestSession = Depends(get_current_session),
    resolver: CapabilityResolver = Depends(get_capability_resolver),
    policy: PolicyConfig = Depends(get_policy),
    db: Session = Depends(get_db),
) -> Truck:
    truck = db.get(Truck, truck_id)
    authorize(session, truck, EntityKind.TRUCK, Action.READ, resolver=resolver, policy=policy)
    return truck


@router.get("/truck-postings", response_model=list[TruckPostingOut])
def list_truck_postings(
    view: View | None = None,
    session: RequestSession = Depends(get_current_session),
    db: Session = Depends(get_db),
) -> list[TruckPosting]:
    listing = resolve_listing(session, EntityKind.TRUCK_POSTING, view)
    stmt = (
        select(TruckPosting)
        .order_by(TruckPosting.created_at, TruckPosting.id)
        .execution_options(**listing_options(EntityKind.TRUCK_POSTING, listing))
    )
    return list(db.scalars(stmt).all())


@router.get("/truck-postings/{posting_id}", response_model=TruckPostingOut)
def get_truck_posting(
    posting_id: str,
    session: RequestSession = Depends(get_current_session),
    resolver: CapabilityResolver = Depends(get_capability_resolver),
    policy: PolicyConfig = Depends(get_policy),
    db: Session = Depends(get_db),
) -> TruckPosting:
    posting = db.get(TruckPosting, posting_id)
    authorize(session, posting, EntityKind.TRUCK_POSTING, Action.READ, resolver=resolver, policy=policy)
    return posting
