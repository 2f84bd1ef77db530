"""
Trip status changes with their side effects.

One transaction covers the compare-and-swap on the trip row, the load status
sync, the audit event and (on COMPLETED) fee settlement. If any step fails the
trip keeps its previous status.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.orm import Session

from freight_core.db.base import utcnow
from freight_core.errors import StaleWorkflowState
from freight_core.ledger.settlement import settle_trip
from freight_core.models.freight import Load, LoadEvent, Trip
from freight_core.security.capability import CapabilityResolver
from freight_core.security.config import PolicyConfig
from freight_core.security.context import RequestSession
from freight_core.security.guard import authorize
from freight_core.security.scope import EntityKind
from freight_core.security.visibility import Action
from freight_core.workflow.load import load_status_for_trip
from freight_core.workflow.trip import SETTLEMENT_TRIGGER, TERMINAL_TRIP_STATUSES, TripStatus, transition_trip

logger = logging.getLogger(__name__)

_STATUS_TIMESTAMPS = {
    TripStatus.PICKUP_PENDING: "started_at",
    TripStatus.IN_TRANSIT: "picked_up_at",
    TripStatus.DELIVERED: "delivered_at",
    TripStatus.COMPLETED: "completed_at",
    TripStatus.CANCELLED: "cancelled_at",
}


def get_visible_trip(
    db: Session,
    session: RequestSession,
    trip_id: str,
    *,
    resolver: CapabilityResolver,
    policy: PolicyConfig,
) -> Trip:
    trip = db.get(Trip, trip_id)
    authorize(session, trip, EntityKind.TRIP, Action.READ, resolver=resolver, policy=policy)
    return trip


def apply_trip_transition(
    db: Session,
    session: RequestSession,
    trip_id: str,
    requested: object,
    *,
    resolver: CapabilityResolver,
    policy: PolicyConfig,
    now: datetime | None = None,
) -> Trip:
    trip = db.get(Trip, trip_id)
    capabilities = authorize(session, trip, EntityKind.TRIP, Action.WRITE, resolver=resolver, policy=policy)

    current = trip.status
    target = transition_trip(current, requested, capabilities)
    now = now or utcnow()

    values: dict[str, object] = {"status": target.value, "updated_at": now, _STATUS_TIMESTAMPS[target]: now}
    if target in TERMINAL_TRIP_STATUSES:
        values["tracking_enabled"] = False

    try:
        result = db.execute(
            update(Trip).where(Trip.id == trip.id, Trip.status == current).values(**values),
            execution_options={"synchronize_session": False},
        )
        if result.rowcount != 1:
            raise StaleWorkflowState(f"Trip {trip.id} was modified concurrently; reload and retry")
        db.refresh(trip)

        load = db.get(Load, trip.load_id)
        load.status = load_status_for_trip(target).value
        load.updated_at = now
        db.add(
            LoadEvent(
                load_id=load.id,
                event_type="TRIP_STATUS_CHANGED",
                description=f"Trip status changed from {current} to {target.value}",
                user_id=session.user_id,
                details={"trip_id": trip.id, "from": current, "to": target.value},
            )
        )

        if target is SETTLEMENT_TRIGGER:
            settle_trip(db, trip, load, now)

        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Trip transition trip_id=%s from=%s to=%s user_id=%s role=%s",
        trip.id,
        current,
        target.value,
        session.user_id,
        session.role.value,
    )
    return trip
