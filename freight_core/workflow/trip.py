"""
Trip workflow.

    ASSIGNED -> PICKUP_PENDING -> IN_TRANSIT -> DELIVERED -> COMPLETED

CANCELLED is reachable from every non-terminal status. COMPLETED and CANCELLED
are terminal. Transitions are checked by table lookup; anything not in
`TRIP_TRANSITIONS` (skips, reversals, self-loops, terminal sources) is illegal.
"""

from __future__ import annotations

from enum import Enum

from freight_core.errors import AccessForbidden, IllegalTransition, UnknownStatus
from freight_core.security.capability import CapabilitySet


class TripStatus(str, Enum):
    ASSIGNED = "ASSIGNED"
    PICKUP_PENDING = "PICKUP_PENDING"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


INITIAL_TRIP_STATUS = TripStatus.ASSIGNED
TERMINAL_TRIP_STATUSES = frozenset({TripStatus.COMPLETED, TripStatus.CANCELLED})

_FORWARD = (
    (TripStatus.ASSIGNED, TripStatus.PICKUP_PENDING),
    (TripStatus.PICKUP_PENDING, TripStatus.IN_TRANSIT),
    (TripStatus.IN_TRANSIT, TripStatus.DELIVERED),
    (TripStatus.DELIVERED, TripStatus.COMPLETED),
)

TRIP_TRANSITIONS: frozenset[tuple[TripStatus, TripStatus]] = frozenset(_FORWARD) | frozenset(
    (source, TripStatus.CANCELLED) for source in TripStatus if source not in TERMINAL_TRIP_STATUSES
)

# Transitions the owning carrier performs while driving the load.
OPERATIONAL_TARGETS = frozenset({TripStatus.PICKUP_PENDING, TripStatus.IN_TRANSIT, TripStatus.DELIVERED})

# Reaching this status moves money; it must happen exactly once per trip.
SETTLEMENT_TRIGGER = TripStatus.COMPLETED


def parse_trip_status(raw: object) -> TripStatus:
    if isinstance(raw, TripStatus):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        raise UnknownStatus(raw, "trip")
    try:
        return TripStatus(raw.strip())
    except ValueError as exc:
        raise UnknownStatus(raw, "trip") from exc


def is_valid_trip_transition(current: TripStatus, requested: TripStatus) -> bool:
    return (current, requested) in TRIP_TRANSITIONS


def get_valid_next_trip_states(current: TripStatus) -> list[TripStatus]:
    # Ordered by the declaration order of TripStatus for stable error payloads.
    return [target for target in TripStatus if (current, target) in TRIP_TRANSITIONS]


def can_invoke(capabilities: CapabilitySet, requested: TripStatus) -> bool:
    if capabilities.is_admin:
        return True
    return requested in OPERATIONAL_TARGETS and capabilities.is_carrier


def transition_trip(current: object, requested: object, capabilities: CapabilitySet) -> TripStatus:
    """
    Validate `current -> requested` for the caller and return the new status.

    Order: status parsing, then the transition table, then the per-transition
    permission. Visibility must already have been enforced by the caller.
    """

    source = parse_trip_status(current)
    target = parse_trip_status(requested)

    if not is_valid_trip_transition(source, target):
        allowed = ", ".join(s.value for s in get_valid_next_trip_states(source)) or "none"
        raise IllegalTransition(
            f"Invalid status transition from {source.value} to {target.value} (allowed: {allowed})"
        )

    if not can_invoke(capabilities, target):
        if target in OPERATIONAL_TARGETS:
            raise AccessForbidden("Only the carrier can update trip status")
        raise AccessForbidden(f"Only an administrator can move a trip to {target.value}")

    return target
