"""
Load requests, truck requests and match proposals.

The three resources behave identically apart from who proposes and who
answers, so one router factory serves all of them.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from freight_core.db.filters import listing_options
from freight_core.db.session import get_db
from freight_core.models.freight import BookingRequest
from freight_core.routers.common import parse_status_filter
from freight_core.schemas.freight import BookingRequestOut, RespondIn
from freight_core.security.capability import CapabilityResolver
from freight_core.security.config import PolicyConfig
from freight_core.security.context import RequestSession
from freight_core.security.dependencies import get_capability_resolver, get_current_session, get_policy
from freight_core.security.scope import EntityKind, Listing
from freight_core.services.booking import cancel_request, get_visible_request, respond_to_request
from freight_core.workflow.booking import RequestKind


def build_router(kind: RequestKind, prefix: str) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=["booking"])

    @router.get("", response_model=list[BookingRequestOut])
    def list_requests(status: str | None = None, db: Session = Depends(get_db)) -> list[BookingRequest]:
        stmt = select(BookingRequest).where(BookingRequest.kind == kind.value)
        statuses = parse_status_filter(status)
        if statuses:
            stmt = stmt.where(BookingRequest.status.in_(statuses))
        stmt = stmt.order_by(BookingRequest.created_at, BookingRequest.id).execution_options(
            **listing_options(EntityKind.BOOKING_REQUEST, Listing.ENTITLED)
        )
        return list(db.scalars(stmt).all())

    @router.get("/{request_id}", response_model=BookingRequestOut)
    def get_request(
        request_id: str,
        session: RequestSession = Depends(get_current_session),
        resolver: CapabilityResolver = Depends(get_capability_resolver),
        policy: PolicyConfig = Depends(get_policy),
        db: Session = Depends(get_db),
    ) -> BookingRequest:
        return get_visible_request(db, session, kind, request_id, resolver=resolver, policy=policy)

    @router.post("/{request_id}/respond", response_model=BookingRequestOut)
    def respond(
        request_id: str,
        payload: RespondIn,
        session: RequestSession = Depends(get_current_session),
        resolver: CapabilityResolver = Depends(get_capability_resolver),
        policy: PolicyConfig = Depends(get_policy),
        db: Session = Depends(get_db),
    ) -> BookingRequest:
        return respond_to_request(
            db,
            session,
            kind,
            request_id,
            payload.action,
            resolver=resolver,
            policy=policy,
            notes=payload.response_notes,
        )

    @router.post("/{request_id}/cancel", response_model=BookingRequestOut)
    def cancel(
        request_id: str,
        session: RequestSession = Depends(get_current_session),
        resolver: CapabilityResolver = Depends(get_capability_resolver),
        policy: PolicyConfig = Depends(get_policy),
        db: Session = Depends(get_db),
    ) -> BookingRequest:
        return cancel_request(db, session, kind, request_id, resolver=resolver, policy=policy)

    return router


load_requests = build_router(RequestKind.LOAD_REQUEST, "/load-requests")
truck_requests = build_router(RequestKind.TRUCK_REQUEST, "/truck-requests")
match_proposals = build_router(RequestKind.MATCH_PROPOSAL, "/match-proposals")
