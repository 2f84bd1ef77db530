"""
Booking-request workflow shared by load requests, truck requests and match
proposals.

    PENDING -> APPROVED | ACCEPTED | REJECTED | EXPIRED | CANCELLED

Every non-PENDING status is terminal. Only the counterparty of the proposer
may answer; `expires_at` is fixed at creation and checked on every response
attempt, whatever the stored status says.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from freight_core.errors import ExpiredWorkflowItem, IllegalTransition, UnknownStatus, WrongCounterparty
from freight_core.security.capability import CapabilitySet
from freight_core.security.context import Role


class RequestStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class RequestKind(str, Enum):
    LOAD_REQUEST = "LOAD_REQUEST"
    TRUCK_REQUEST = "TRUCK_REQUEST"
    MATCH_PROPOSAL = "MATCH_PROPOSAL"

    @property
    def label(self) -> str:
        return KIND_RULES[self].label


class ResponseAction(str, Enum):
    APPROVE = "APPROVE"
    REJECT = "REJECT"


@dataclass(frozen=True)
class KindRules:
    label: str
    proposer_role: Role
    responder_role: Role
    success_status: RequestStatus


KIND_RULES: dict[RequestKind, KindRules] = {
    # Carrier asks for a shipper's load; the shipper decides.
    RequestKind.LOAD_REQUEST: KindRules("Load request", Role.CARRIER, Role.SHIPPER, RequestStatus.APPROVED),
    # Shipper asks for a carrier's posted truck; the carrier decides.
    RequestKind.TRUCK_REQUEST: KindRules("Truck request", Role.SHIPPER, Role.CARRIER, RequestStatus.APPROVED),
    # Dispatcher proposes a match; the carrier has final authority over its truck.
    RequestKind.MATCH_PROPOSAL: KindRules("Match proposal", Role.DISPATCHER, Role.CARRIER, RequestStatus.ACCEPTED),
}

TERMINAL_REQUEST_STATUSES = frozenset(s for s in RequestStatus if s is not RequestStatus.PENDING)

REQUEST_TRANSITIONS: frozenset[tuple[RequestStatus, RequestStatus]] = frozenset(
    (RequestStatus.PENDING, target) for target in TERMINAL_REQUEST_STATUSES
)


def parse_request_status(raw: object) -> RequestStatus:
    if isinstance(raw, RequestStatus):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        raise UnknownStatus(raw, "request")
    try:
        return RequestStatus(raw.strip())
    except ValueError as exc:
        raise UnknownStatus(raw, "request") from exc


def responding_role(kind: RequestKind) -> Role:
    return KIND_RULES[kind].responder_role


def _acts_as(role: Role, capabilities: CapabilitySet) -> bool:
    if role is Role.SHIPPER:
        return capabilities.is_shipper
    if role is Role.CARRIER:
        return capabilities.is_carrier
    if role is Role.DISPATCHER:
        return capabilities.is_dispatcher
    return False


def is_counterparty(kind: RequestKind, capabilities: CapabilitySet) -> bool:
    return capabilities.is_admin or _acts_as(KIND_RULES[kind].responder_role, capabilities)


def is_proposer_side(kind: RequestKind, capabilities: CapabilitySet) -> bool:
    return capabilities.is_admin or _acts_as(KIND_RULES[kind].proposer_role, capabilities)


def is_expired(expires_at: datetime, now: datetime) -> bool:
    return now > expires_at


def _require_transition(kind: RequestKind, current: RequestStatus, target: RequestStatus) -> None:
    # Every edge leaves PENDING, so a miss means the request was already answered.
    if (current, target) not in REQUEST_TRANSITIONS:
        raise IllegalTransition(f"{kind.label} has already been {current.value.lower()}")


def respond(
    kind: RequestKind,
    current_status: object,
    expires_at: datetime,
    action: ResponseAction | str,
    capabilities: CapabilitySet,
    now: datetime,
) -> RequestStatus:
    """
    Validate a counterparty response and return the new status.

    Callers must already have rejected actors with no relation to the request
    (those get an invisible/404 answer from the guard).
    """

    rules = KIND_RULES[kind]
    if not is_counterparty(kind, capabilities):
        raise WrongCounterparty(
            f"Only the {rules.responder_role.value.lower()} this {rules.label.lower()} is addressed to can respond"
        )

    if is_expired(expires_at, now):
        raise ExpiredWorkflowItem(f"{rules.label} has expired")

    current = parse_request_status(current_status)
    target = rules.success_status if ResponseAction(action) is ResponseAction.APPROVE else RequestStatus.REJECTED
    _require_transition(kind, current, target)
    return target


def cancel(kind: RequestKind, current_status: object, capabilities: CapabilitySet) -> RequestStatus:
    """Withdraw a pending request; only the proposing side (or an admin) may do so."""

    rules = KIND_RULES[kind]
    if not is_proposer_side(kind, capabilities):
        raise WrongCounterparty(f"Only the {rules.proposer_role.value.lower()} who proposed it can cancel this {rules.label.lower()}")

    current = parse_request_status(current_status)
    _require_transition(kind, current, RequestStatus.CANCELLED)
    return RequestStatus.CANCELLED


def expire(kind: RequestKind, current_status: object) -> RequestStatus:
    """Time-triggered PENDING -> EXPIRED; no actor involved."""

    current = parse_request_status(current_status)
    _require_transition(kind, current, RequestStatus.EXPIRED)
    return RequestStatus.EXPIRED
