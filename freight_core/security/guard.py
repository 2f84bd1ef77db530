from __future__ import annotations

from typing import Protocol

from freight_core.errors import AccessForbidden, EntityInvisible
from freight_core.security.capability import CapabilityResolver, CapabilitySet, EntityOwnership
from freight_core.security.config import PolicyConfig
from freight_core.security.context import RequestSession
from freight_core.security.scope import EntityKind, exposure_for
from freight_core.security.visibility import Action, VisibilityDecision, decide


class ProtectedRecord(Protocol):
    def ownership(self) -> EntityOwnership: ...


def authorize(
    session: RequestSession,
    record: ProtectedRecord | None,
    kind: EntityKind,
    action: Action,
    *,
    resolver: CapabilityResolver,
    policy: PolicyConfig,
    label: str | None = None,
    forbidden_reason: str | None = None,
) -> CapabilitySet:
    """
    Classify the session against `record` and enforce the visibility decision.

    A missing record and an invisible one raise the same `EntityInvisible`, so
    callers can pass the raw lookup result straight in.
    """

    entity_label = label or kind.label
    if record is None:
        raise EntityInvisible(entity_label)

    capabilities = resolver.classify(session, record.ownership())
    exposure = exposure_for(session, kind, getattr(record, "status", None), policy)
    decision = decide(capabilities, action, exposure)

    if decision is VisibilityDecision.INVISIBLE:
        raise EntityInvisible(entity_label)
    if decision is VisibilityDecision.FORBIDDEN:
        raise AccessForbidden(forbidden_reason or f"You do not have permission to modify this {entity_label.lower()}")
    return capabilities
