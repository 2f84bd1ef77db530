from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping


class Role(str, Enum):
    SHIPPER = "SHIPPER"
    CARRIER = "CARRIER"
    CARRIER_INDIVIDUAL = "CARRIER_INDIVIDUAL"
    LOGISTICS_AGENT = "LOGISTICS_AGENT"
    DISPATCHER = "DISPATCHER"
    PLATFORM_OPS = "PLATFORM_OPS"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


class UserStatus(str, Enum):
    REGISTERED = "REGISTERED"
    PENDING_VERIFICATION = "PENDING_VERIFICATION"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class RequestSession:
    """
    Per-request, already-verified session.

    Produced by the authentication layer and passed explicitly into every
    decision function. Attached to:
    - request.state.session (FastAPI request lifetime)
    - Session.info["session"] (SQLAlchemy session lifetime, for listing scopes)
    """

    user_id: str
    role: Role
    organization_id: str | None
    status: UserStatus

    def to_dict(self) -> dict[str, object]:
        return {
            "user_id": self.user_id,
            "role": self.role.value,
            "organization_id": self.organization_id,
            "status": self.status.value,
        }


class InvalidSessionClaims(ValueError):
    """Raised when a claim set cannot be mapped onto a RequestSession."""


def session_from_claims(claims: Mapping[str, Any]) -> RequestSession:
    """
    Build a `RequestSession` from an already-verified, already-decoded claim set.

    Accepts both camelCase (`userId`, `organizationId`) and snake_case keys.
    No signature or expiry checks happen here; the upstream layer owns those.
    """

    user_id = claims.get("userId") or claims.get("user_id") or claims.get("sub")
    if not user_id:
        raise InvalidSessionClaims("claims are missing a user id")

    try:
        role = Role(str(claims.get("role", "")).upper())
    except ValueError as exc:
        raise InvalidSessionClaims(f"unknown role in claims: {claims.get('role')!r}") from exc

    try:
        status = UserStatus(str(claims.get("status", UserStatus.ACTIVE.value)).upper())
    except ValueError as exc:
        raise InvalidSessionClaims(f"unknown status in claims: {claims.get('status')!r}") from exc

    org = claims.get("organizationId", claims.get("organization_id"))
    return RequestSession(
        user_id=str(user_id),
        role=role,
        organization_id=str(org) if org else None,
        status=status,
    )
