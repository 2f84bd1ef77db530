from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from freight_core.db.filters import listing_options
from freight_core.db.session import get_db
from freight_core.models.freight import Trip
from freight_core.routers.common import parse_status_filter
from freight_core.schemas.freight import TripOut, TripUpdateIn
from freight_core.security.capability import CapabilityResolver
from freight_core.security.config import PolicyConfig
from freight_core.security.context import RequestSession
from freight_core.security.dependencies import get_capability_resolver, get_current_session, get_policy
from freight_core.security.scope import EntityKind, Listing
from freight_core.services.trips import apply_trip_transition, get_visible_trip

router = APIRouter(tags=["trips"])


@router.get("/trips", response_model=list[TripOut])
def list_trips(
    status: str | None = Query(default=None, description="Comma-separated statuses"),
    db: Session = Depends(get_db),
) -> list[Trip]:
    stmt = select(Trip).order_by(Trip.created_at, Trip.id)
    statuses = parse_status_filter(status)
    if statuses:
        stmt = stmt.where(Trip.status.in_(statuses))
    stmt = stmt.execution_options(**listing_options(EntityKind.TRIP, Listing.ENTITLED))
    return list(db.scalars(stmt).all())


@router.get("/trips/{trip_id}", response_model=TripOut)
def get_trip(
    trip_id: str,
    session: RequestSession = Depends(get_current_session),
    resolver: CapabilityResolver = Depends(get_capability_resolver),
    policy: PolicyConfig = Depends(get_policy),
    db: Session = Depends(get_db),
) -> Trip:
    return get_visible_trip(db, session, trip_id, resolver=resolver, policy=policy)


@router.patch("/trips/{trip_id}", response_model=TripOut)
def patch_trip(
    trip_id: str,
    payload: TripUpdateIn,
    session: RequestSession = Depends(get_current_session),
    resolver: CapabilityResolver = Depends(get_capability_resolver),
    policy: PolicyConfig = Depends(get_policy),
    db: Session = Depends(get_db),
) -> Trip:
    return apply_trip_transition(db, session, trip_id, payload.status, resolver=resolver, policy=policy)
