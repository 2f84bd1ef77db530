from __future__ import annotations

from enum import Enum

from freight_core.errors import IllegalTransition, UnknownStatus
from freight_core.workflow.trip import TripStatus


class LoadStatus(str, Enum):
    DRAFT = "DRAFT"
    POSTED = "POSTED"
    SEARCHING = "SEARCHING"
    OFFERED = "OFFERED"
    ASSIGNED = "ASSIGNED"
    PICKUP_PENDING = "PICKUP_PENDING"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    COMPLETED = "COMPLETED"
    EXCEPTION = "EXCEPTION"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"
    UNPOSTED = "UNPOSTED"


# Statuses in which the owning shipper may still edit the load.
EDITABLE_LOAD_STATUSES = frozenset({LoadStatus.DRAFT, LoadStatus.POSTED, LoadStatus.UNPOSTED})

# Statuses in which a booking request can still be approved.
BOOKABLE_LOAD_STATUSES = frozenset({LoadStatus.POSTED, LoadStatus.SEARCHING, LoadStatus.OFFERED})

PUBLICATION_TRANSITIONS: frozenset[tuple[LoadStatus, LoadStatus]] = frozenset(
    {
        (LoadStatus.DRAFT, LoadStatus.POSTED),
        (LoadStatus.POSTED, LoadStatus.UNPOSTED),
        (LoadStatus.UNPOSTED, LoadStatus.POSTED),
    }
)

_TRIP_TO_LOAD = {
    TripStatus.ASSIGNED: LoadStatus.ASSIGNED,
    TripStatus.PICKUP_PENDING: LoadStatus.PICKUP_PENDING,
    TripStatus.IN_TRANSIT: LoadStatus.IN_TRANSIT,
    TripStatus.DELIVERED: LoadStatus.DELIVERED,
    TripStatus.COMPLETED: LoadStatus.COMPLETED,
    TripStatus.CANCELLED: LoadStatus.CANCELLED,
}


def parse_load_status(raw: object) -> LoadStatus:
    if isinstance(raw, LoadStatus):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        raise UnknownStatus(raw, "load")
    try:
        return LoadStatus(raw.strip())
    except ValueError as exc:
        raise UnknownStatus(raw, "load") from exc


def publish_transition(current: object, requested: object) -> LoadStatus:
    source = parse_load_status(current)
    target = parse_load_status(requested)
    if (source, target) not in PUBLICATION_TRANSITIONS:
        raise IllegalTransition(f"Invalid status transition from {source.value} to {target.value}")
    return target


def load_status_for_trip(status: TripStatus) -> LoadStatus:
    return _TRIP_TO_LOAD[status]
