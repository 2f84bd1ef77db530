from __future__ import annotations

from typing import Literal

from freight_core.security.context import RequestSession
from freight_core.security.scope import EntityKind, Listing, default_listing

View = Literal["marketplace", "mine"]


def resolve_listing(session: RequestSession, kind: EntityKind, view: View | None) -> Listing:
    if view == "marketplace":
        return Listing.MARKETPLACE
    if view == "mine":
        return Listing.ENTITLED
    return default_listing(session, kind)


def parse_status_filter(raw: str | None) -> list[str]:
    """`"POSTED, assigned"` -> `["POSTED", "ASSIGNED"]`."""

    if not raw:
        return []
    return [part.strip().upper() for part in raw.split(",") if part.strip()]
