from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from freight_core.db.base import utcnow
from freight_core.errors import AccessForbidden, IllegalTransition
from freight_core.models.freight import Load, LoadEvent
from freight_core.security.capability import CapabilityResolver
from freight_core.security.config import PolicyConfig
from freight_core.security.context import RequestSession
from freight_core.security.guard import authorize
from freight_core.security.scope import EntityKind
from freight_core.security.visibility import Action
from freight_core.workflow.load import EDITABLE_LOAD_STATUSES, LoadStatus, parse_load_status, publish_transition

logger = logging.getLogger(__name__)

EDITABLE_LOAD_FIELDS = ("pickup_city", "delivery_city", "cargo_description", "weight_kg")


def get_visible_load(
    db: Session,
    session: RequestSession,
    load_id: str,
    *,
    resolver: CapabilityResolver,
    policy: PolicyConfig,
) -> Load:
    load = db.get(Load, load_id)
    authorize(session, load, EntityKind.LOAD, Action.READ, resolver=resolver, policy=policy)
    return load


def update_load(
    db: Session,
    session: RequestSession,
    load_id: str,
    changes: dict[str, Any],
    *,
    resolver: CapabilityResolver,
    policy: PolicyConfig,
    now: datetime | None = None,
) -> Load:
    """
    Edit a load's details and/or move it through publication
    (DRAFT -> POSTED, POSTED <-> UNPOSTED).

    Only the owning shipper (or an admin) may edit. A carrier looking at a
    posted load gets 403, anyone else 404.
    """

    load = db.get(Load, load_id)
    capabilities = authorize(session, load, EntityKind.LOAD, Action.WRITE, resolver=resolver, policy=policy)
    if not (capabilities.is_shipper or capabilities.is_admin):
        raise AccessForbidden("You do not have permission to modify this load")

    current = parse_load_status(load.status)
    now = now or utcnow()

    field_changes = {k: v for k, v in changes.items() if k in EDITABLE_LOAD_FIELDS}
    if field_changes and current not in EDITABLE_LOAD_STATUSES:
        raise IllegalTransition(f"Load can no longer be edited in status {current.value}")

    requested_status = changes.get("status")
    target = publish_transition(current, requested_status) if requested_status is not None else None

    try:
        for name, value in field_changes.items():
            setattr(load, name, value)

        if target is not None:
            load.status = target.value
            if target is LoadStatus.POSTED:
                load.posted_at = now
            db.add(
                LoadEvent(
                    load_id=load.id,
                    event_type=f"LOAD_{target.value}",
                    description=f"Load status changed from {current.value} to {target.value}",
                    user_id=session.user_id,
                )
            )

        load.updated_at = now
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(load)
    logger.info(
        "Load updated load_id=%s fields=%s status=%s user_id=%s",
        load.id,
        sorted(field_changes),
        load.status,
        session.user_id,
    )
    return load
