"""
Listing scopes.

`build_filter` derives the ownership predicate applied to list/search queries
*before* data is fetched. It shares its marketplace table with `exposure_for`,
which feeds the single-record visibility decision, so that:

- every record matched by a listing predicate is readable on its own, and
- every record readable on its own is matched by one of the caller's listings.

Client-supplied filters are always ANDed with the predicate; they can narrow a
listing but never widen it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from sqlalchemy import and_, false, true
from sqlalchemy.sql.elements import ColumnElement

from freight_core.security.capability import EntityOwnership
from freight_core.security.config import PolicyConfig
from freight_core.security.context import RequestSession, Role
from freight_core.security.visibility import Exposure


class EntityKind(str, Enum):
    LOAD = "LOAD"
    TRIP = "TRIP"
    TRUCK = "TRUCK"
    TRUCK_POSTING = "TRUCK_POSTING"
    BOOKING_REQUEST = "BOOKING_REQUEST"
    FINANCIAL_ACCOUNT = "FINANCIAL_ACCOUNT"

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    EntityKind.LOAD: "Load",
    EntityKind.TRIP: "Trip",
    EntityKind.TRUCK: "Truck",
    EntityKind.TRUCK_POSTING: "Truck posting",
    EntityKind.BOOKING_REQUEST: "Request",
    EntityKind.FINANCIAL_ACCOUNT: "Account",
}


class Listing(str, Enum):
    MARKETPLACE = "MARKETPLACE"  # cross-organization, public statuses only
    ENTITLED = "ENTITLED"  # everything the session has a relation to


# Roles that may browse each marketplace. Shippers see only their own loads,
# but search posted trucks; carriers bid on posted loads.
_MARKETPLACE_BROWSERS: dict[EntityKind, frozenset[Role]] = {
    EntityKind.LOAD: frozenset({Role.CARRIER, Role.DISPATCHER, Role.ADMIN, Role.SUPER_ADMIN}),
    EntityKind.TRUCK_POSTING: frozenset(
        {Role.SHIPPER, Role.CARRIER, Role.DISPATCHER, Role.ADMIN, Role.SUPER_ADMIN}
    ),
}

_PLATFORM_WIDE = frozenset({Role.DISPATCHER, Role.ADMIN, Role.SUPER_ADMIN})


def marketplace_statuses(kind: EntityKind, policy: PolicyConfig) -> frozenset[str]:
    if kind is EntityKind.LOAD:
        return policy.marketplace_load_statuses
    if kind is EntityKind.TRUCK_POSTING:
        return policy.marketplace_posting_statuses
    raise ValueError(f"{kind.value} has no marketplace listing")


def exposure_for(session: RequestSession, kind: EntityKind, status: str | None, policy: PolicyConfig) -> Exposure:
    """Whether `status` makes a record of `kind` publicly enumerable to this session."""

    browsers = _MARKETPLACE_BROWSERS.get(kind)
    if browsers is None or session.role not in browsers:
        return Exposure.PRIVATE
    if status is not None and status in marketplace_statuses(kind, policy):
        return Exposure.PUBLIC
    return Exposure.PRIVATE


def default_listing(session: RequestSession, kind: EntityKind) -> Listing:
    """Listing used when the client does not ask for a specific view."""

    if kind is EntityKind.LOAD and session.role is Role.CARRIER:
        return Listing.MARKETPLACE
    if kind is EntityKind.TRUCK_POSTING and session.role in (Role.SHIPPER, Role.CARRIER):
        return Listing.MARKETPLACE
    return Listing.ENTITLED


@dataclass(frozen=True)
class OwnershipPredicate:
    """
    Query-level restriction for one entity kind.

    Dimensions left as None are unrestricted; `deny_all` matches nothing.
    """

    kind: EntityKind
    shipper_org_id: str | None = None
    carrier_org_id: str | None = None
    statuses: frozenset[str] | None = None
    deny_all: bool = False

    @property
    def unrestricted(self) -> bool:
        return (
            not self.deny_all
            and self.shipper_org_id is None
            and self.carrier_org_id is None
            and self.statuses is None
        )

    def matches(self, ownership: EntityOwnership, status: str | None = None) -> bool:
        if self.deny_all:
            return False
        if self.shipper_org_id is not None and ownership.shipper_org_id != self.shipper_org_id:
            return False
        if self.carrier_org_id is not None and ownership.carrier_org_id != self.carrier_org_id:
            return False
        if self.statuses is not None and status not in self.statuses:
            return False
        return True

    def criteria(self, model: Any) -> ColumnElement[bool]:
        """Render as a SQL expression against a mapped class."""

        if self.deny_all:
            return false()
        clauses: list[ColumnElement[bool]] = []
        if self.shipper_org_id is not None:
            clauses.append(model.shipper_org_id == self.shipper_org_id)
        if self.carrier_org_id is not None:
            clauses.append(model.carrier_org_id == self.carrier_org_id)
        if self.statuses is not None:
            clauses.append(model.status.in_(sorted(self.statuses)))
        return and_(true(), *clauses)


def _deny(kind: EntityKind) -> OwnershipPredicate:
    return OwnershipPredicate(kind=kind, deny_all=True)


def build_filter(
    session: RequestSession,
    kind: EntityKind,
    listing: Listing,
    policy: PolicyConfig,
) -> OwnershipPredicate:
    if listing is Listing.MARKETPLACE:
        if kind not in _MARKETPLACE_BROWSERS:
            raise ValueError(f"{kind.value} has no marketplace listing")
        if session.role not in _MARKETPLACE_BROWSERS[kind] and session.role is not Role.SHIPPER:
            return _deny(kind)
        statuses: frozenset[str] | None = marketplace_statuses(kind, policy)
    else:
        statuses = None

    role = session.role
    org = session.organization_id

    if role in _PLATFORM_WIDE:
        return OwnershipPredicate(kind=kind, statuses=statuses)

    if role is Role.SHIPPER:
        if kind is EntityKind.TRUCK:
            return _deny(kind)
        if kind is EntityKind.TRUCK_POSTING:
            # Shippers own no postings; they only search the public ones.
            return OwnershipPredicate(kind=kind, statuses=statuses) if statuses is not None else _deny(kind)
        if org is None:
            return _deny(kind)
        # Unconditional: the marketplace view only narrows a shipper's own records.
        return OwnershipPredicate(kind=kind, shipper_org_id=org, statuses=statuses)

    if role is Role.CARRIER:
        if statuses is not None:
            return OwnershipPredicate(kind=kind, statuses=statuses)
        if org is None:
            return _deny(kind)
        return OwnershipPredicate(kind=kind, carrier_org_id=org)

    return _deny(kind)
