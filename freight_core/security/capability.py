"""
Role capability classification.

Classifies a session's role relative to the recorded owners of one entity.
Pure and total: an absent owner field yields False for that branch, never an
exception, and absence of ownership never grants access.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, assert_never

from freight_core.security.context import RequestSession, Role


@dataclass(frozen=True)
class EntityOwnership:
    """
    Minimal projection of a protected entity: only the owner ids.

    The core never needs the full entity body to make an access decision.
    """

    shipper_org_id: str | None = None
    carrier_org_id: str | None = None
    created_by_id: str | None = None


@dataclass(frozen=True)
class CapabilitySet:
    is_shipper: bool = False
    is_carrier: bool = False
    is_dispatcher: bool = False
    is_admin: bool = False
    is_super_admin: bool = False

    @property
    def has_access(self) -> bool:
        return self.is_shipper or self.is_carrier or self.is_dispatcher or self.is_admin


NO_CAPABILITIES = CapabilitySet()


class CapabilityResolver(Protocol):
    """Substitution point for capability classification (tests, new roles)."""

    def classify(self, session: RequestSession, ownership: EntityOwnership) -> CapabilitySet: ...


def _owns(session_org: str | None, owner_org: str | None) -> bool:
    return owner_org is not None and session_org is not None and owner_org == session_org


class RoleCapability:
    """Default resolver for the marketplace's fixed set of roles."""

    def classify(self, session: RequestSession, ownership: EntityOwnership) -> CapabilitySet:
        role = session.role
        match role:
            case Role.SHIPPER:
                return CapabilitySet(is_shipper=_owns(session.organization_id, ownership.shipper_org_id))
            case Role.CARRIER:
                return CapabilitySet(is_carrier=_owns(session.organization_id, ownership.carrier_org_id))
            case Role.DISPATCHER:
                # Dispatchers coordinate across organizations; ownership is never checked.
                return CapabilitySet(is_dispatcher=True)
            case Role.ADMIN:
                return CapabilitySet(is_admin=True)
            case Role.SUPER_ADMIN:
                return CapabilitySet(is_admin=True, is_super_admin=True)
            case Role.CARRIER_INDIVIDUAL | Role.LOGISTICS_AGENT | Role.PLATFORM_OPS:
                return NO_CAPABILITIES
            case _:
                assert_never(role)


def classify(session: RequestSession, ownership: EntityOwnership) -> CapabilitySet:
    """Module-level shortcut for the default resolver."""
    return _DEFAULT_RESOLVER.classify(session, ownership)


_DEFAULT_RESOLVER = RoleCapability()
