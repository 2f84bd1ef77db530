from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import event
from sqlalchemy.orm import Session, with_loader_criteria

from freight_core.security.config import default_policy
from freight_core.security.scope import EntityKind, Listing, OwnershipPredicate, build_filter

logger = logging.getLogger(__name__)

LISTING_OPTION = "freight_listing"


def listing_options(kind: EntityKind, listing: Listing) -> dict[str, Any]:
    """
    Execution options that mark a SELECT as a scoped listing.

        select(Load).execution_options(**listing_options(EntityKind.LOAD, Listing.ENTITLED))
    """

    return {LISTING_OPTION: (kind, listing)}


def _model_for(kind: EntityKind) -> Any:
    # Local import to avoid cycles.
    from freight_core.models import BookingRequest, FinancialAccount, Load, Trip, Truck, TruckPosting

    return {
        EntityKind.LOAD: Load,
        EntityKind.TRIP: Trip,
        EntityKind.TRUCK: Truck,
        EntityKind.TRUCK_POSTING: TruckPosting,
        EntityKind.BOOKING_REQUEST: BookingRequest,
        EntityKind.FINANCIAL_ACCOUNT: FinancialAccount,
    }[kind]


@event.listens_for(Session, "do_orm_execute")
def _apply_listing_scope(execute_state) -> None:
    """
    Restrict listing queries to what the bound session may enumerate.

    Only statements carrying the `listing_options(...)` execution option are
    touched; single-record lookups go through `security.guard.authorize`.
    """

    if not execute_state.is_select or execute_state.is_column_load or execute_state.is_relationship_load:
        return

    scope = execute_state.execution_options.get(LISTING_OPTION)
    if scope is None:
        return

    kind, listing = scope
    info = execute_state.session.info
    request_session = info.get("session")

    if request_session is None:
        logger.warning("Listing query without a bound session kind=%s; returning no rows", kind.value)
        predicate = OwnershipPredicate(kind=kind, deny_all=True)
    else:
        predicate = build_filter(request_session, kind, listing, info.get("policy") or default_policy())

    logger.debug(
        "Listing scope kind=%s listing=%s user_id=%s predicate=%s",
        kind.value,
        listing.value,
        getattr(request_session, "user_id", None),
        predicate,
    )

    if predicate.unrestricted:
        return

    model = _model_for(kind)
    execute_state.statement = execute_state.statement.options(
        with_loader_criteria(model, predicate.criteria(model), include_aliases=True),
    )
