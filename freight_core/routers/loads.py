from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from freight_core.db.filters import listing_options
from freight_core.db.session import get_db
from freight_core.models.freight import Load
from freight_core.routers.common import View, parse_status_filter, resolve_listing
from freight_core.schemas.freight import LoadOut, LoadUpdateIn
from freight_core.security.capability import CapabilityResolver
from freight_core.security.config import PolicyConfig
from freight_core.security.context import RequestSession
from freight_core.security.dependencies import get_capability_resolver, get_current_session, get_policy
from freight_core.security.scope import EntityKind
from freight_core.services.loads import get_visible_load, update_load

router = APIRouter(tags=["loads"])


@router.get("/loads", response_model=list[LoadOut])
def list_loads(
    view: View | None = None,
    status: str | None = Query(default=None, description="Comma-separated statuses"),
    pickup_city: str | None = None,
    delivery_city: str | None = None,
    session: RequestSession = Depends(get_current_session),
    db: Session = Depends(get_db),
) -> list[Load]:
    listing = resolve_listing(session, EntityKind.LOAD, view)

    # Client filters only narrow; the ownership predicate is added by db/filters.py.
    stmt = select(Load).order_by(Load.created_at, Load.id)
    statuses = parse_status_filter(status)
    if statuses:
        stmt = stmt.where(Load.status.in_(statuses))
    if pickup_city:
        stmt = stmt.where(Load.pickup_city == pickup_city)
    if delivery_city:
        stmt = stmt.where(Load.delivery_city == delivery_city)

    stmt = stmt.execution_options(**listing_options(EntityKind.LOAD, listing))
    return list(db.scalars(stmt).all())


@router.get("/loads/{load_id}", response_model=LoadOut)
def get_load(
    load_id: str,
    session: RequestSession = Depends(get_current_session),
    resolver: CapabilityResolver = Depends(get_capability_resolver),
    policy: PolicyConfig = Depends(get_policy),
    db: Session = Depends(get_db),
) -> Load:
    return get_visible_load(db, session, load_id, resolver=resolver, policy=policy)


@router.patch("/loads/{load_id}", response_model=LoadOut)
def patch_load(
    load_id: str,
    payload: LoadUpdateIn,
    session: RequestSession = Depends(get_current_session),
    resolver: CapabilityResolver = Depends(get_capability_resolver),
    policy: PolicyConfig = Depends(get_policy),
    db: Session = Depends(get_db),
) -> Load:
    return update_load(
        db,
        session,
        load_id,
        payload.model_dump(exclude_unset=True),
        resolver=resolver,
        policy=policy,
    )
