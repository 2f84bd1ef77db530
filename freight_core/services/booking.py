"""
Responding to and withdrawing booking requests.

Approval is the point where a load becomes a trip: inside one transaction the
request is marked approved, the load is assigned to the requesting truck, a
Trip is created in ASSIGNED, and every other PENDING request for the same load
is cancelled.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.orm import Session

from freight_core.db.base import utcnow
from freight_core.errors import ExpiredWorkflowItem, StaleWorkflowState
from freight_core.models.freight import BookingRequest, Load, LoadEvent, Trip, Truck
from freight_core.security.capability import CapabilityResolver
from freight_core.security.config import PolicyConfig
from freight_core.security.context import RequestSession
from freight_core.security.guard import authorize
from freight_core.security.scope import EntityKind
from freight_core.security.visibility import Action
from freight_core.workflow.booking import RequestKind, RequestStatus, ResponseAction, cancel, expire, respond
from freight_core.workflow.load import BOOKABLE_LOAD_STATUSES, LoadStatus
from freight_core.workflow.trip import INITIAL_TRIP_STATUS

logger = logging.getLogger(__name__)


def _lookup(db: Session, kind: RequestKind, request_id: str) -> BookingRequest | None:
    request = db.get(BookingRequest, request_id)
    if request is None or request.kind != kind.value:
        return None
    return request


def get_visible_request(
    db: Session,
    session: RequestSession,
    kind: RequestKind,
    request_id: str,
    *,
    resolver: CapabilityResolver,
    policy: PolicyConfig,
) -> BookingRequest:
    request = _lookup(db, kind, request_id)
    authorize(session, request, EntityKind.BOOKING_REQUEST, Action.READ, resolver=resolver, policy=policy, label=kind.label)
    return request


def _swap_status(db: Session, request: BookingRequest, values: dict[str, object]) -> None:
    result = db.execute(
        update(BookingRequest)
        .where(BookingRequest.id == request.id, BookingRequest.status == RequestStatus.PENDING.value)
        .values(**values),
        execution_options={"synchronize_session": False},
    )
    if result.rowcount != 1:
        raise StaleWorkflowState(f"{RequestKind(request.kind).label} was answered concurrently; reload and retry")


def _stamp_expired(db: Session, kind: RequestKind, request: BookingRequest) -> None:
    if request.status != RequestStatus.PENDING.value:
        return
    expire(kind, request.status)
    db.execute(
        update(BookingRequest)
        .where(BookingRequest.id == request.id, BookingRequest.status == RequestStatus.PENDING.value)
        .values(status=RequestStatus.EXPIRED.value),
        execution_options={"synchronize_session": False},
    )
    db.commit()
    logger.info("Request expired on response attempt request_id=%s kind=%s", request.id, kind.value)


def _book_load(db: Session, request: BookingRequest, session: RequestSession, now: datetime) -> Trip:
    # Re-check availability in the same statement that claims the load.
    claimed = db.execute(
        update(Load)
        .where(
            Load.id == request.load_id,
            Load.status.in_([s.value for s in BOOKABLE_LOAD_STATUSES]),
            Load.assigned_truck_id.is_(None),
        )
        .values(
            carrier_org_id=request.carrier_org_id,
            assigned_truck_id=request.truck_id,
            status=LoadStatus.ASSIGNED.value,
            assigned_at=now,
            updated_at=now,
        ),
        execution_options={"synchronize_session": False},
    )
    if claimed.rowcount != 1:
        raise StaleWorkflowState(f"Load {request.load_id} is no longer available for booking")

    trip = Trip(
        load_id=request.load_id,
        truck_id=request.truck_id,
        carrier_org_id=request.carrier_org_id,
        shipper_org_id=request.shipper_org_id,
        status=INITIAL_TRIP_STATUS.value,
    )
    db.add(trip)

    truck = db.get(Truck, request.truck_id)
    if truck is not None:
        truck.is_available = False

    db.execute(
        update(BookingRequest)
        .where(
            BookingRequest.load_id == request.load_id,
            BookingRequest.id != request.id,
            BookingRequest.status == RequestStatus.PENDING.value,
        )
        .values(status=RequestStatus.CANCELLED.value, responded_at=now, response_notes="Load was booked through another request"),
        execution_options={"synchronize_session": False},
    )

    db.add(
        LoadEvent(
            load_id=request.load_id,
            event_type="LOAD_ASSIGNED",
            description=f"Load assigned to truck {request.truck_id} via {RequestKind(request.kind).label.lower()}",
            user_id=session.user_id,
            details={"request_id": request.id, "truck_id": request.truck_id},
        )
    )
    db.flush()
    return trip


def respond_to_request(
    db: Session,
    session: RequestSession,
    kind: RequestKind,
    request_id: str,
    action: ResponseAction | str,
    *,
    resolver: CapabilityResolver,
    policy: PolicyConfig,
    notes: str | None = None,
    now: datetime | None = None,
) -> BookingRequest:
    request = _lookup(db, kind, request_id)
    capabilities = authorize(
        session, request, EntityKind.BOOKING_REQUEST, Action.WRITE, resolver=resolver, policy=policy, label=kind.label
    )
    now = now or utcnow()

    try:
        target = respond(kind, request.status, request.expires_at, action, capabilities, now)
    except ExpiredWorkflowItem:
        _stamp_expired(db, kind, request)
        raise

    try:
        _swap_status(
            db,
            request,
            {
                "status": target.value,
                "responded_at": now,
                "responded_by_id": session.user_id,
                "response_notes": notes,
            },
        )
        trip = _book_load(db, request, session, now) if target is not RequestStatus.REJECTED else None
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(request)
    logger.info(
        "Request answered request_id=%s kind=%s status=%s user_id=%s trip_id=%s",
        request.id,
        kind.value,
        target.value,
        session.user_id,
        trip.id if trip is not None else None,
    )
    return request


def cancel_request(
    db: Session,
    session: RequestSession,
    kind: RequestKind,
    request_id: str,
    *,
    resolver: CapabilityResolver,
    policy: PolicyConfig,
    now: datetime | None = None,
) -> BookingRequest:
    request = _lookup(db, kind, request_id)
    capabilities = authorize(
        session, request, EntityKind.BOOKING_REQUEST, Action.WRITE, resolver=resolver, policy=policy, label=kind.label
    )
    target = cancel(kind, request.status, capabilities)
    now = now or utcnow()

    try:
        _swap_status(db, request, {"status": target.value, "responded_at": now, "responded_by_id": session.user_id})
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(request)
    logger.info("Request cancelled request_id=%s kind=%s user_id=%s", request.id, kind.value, session.user_id)
    return request
