from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from freight_core.db.session import bind_request_scope, get_db
from freight_core.security.auth import authenticate
from freight_core.security.capability import CapabilityResolver, RoleCapability
from freight_core.security.config import PolicyConfig
from freight_core.security.context import RequestSession


def get_policy(request: Request) -> PolicyConfig:
    policy = getattr(request.app.state, "policy", None)
    if policy is None:
        raise RuntimeError("Policy config not loaded. Did app startup run?")
    return policy


def get_capability_resolver(request: Request) -> CapabilityResolver:
    resolver = getattr(request.app.state, "capability_resolver", None)
    return resolver if resolver is not None else RoleCapability()


def get_current_session(request: Request) -> RequestSession:
    session = getattr(request.state, "session", None)
    if session is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return session


def enforce_security(
    request: Request,
    policy: PolicyConfig = Depends(get_policy),
    db: Session = Depends(get_db),
) -> None:
    """
    Global security dependency, registered on the app.

    Resolves the route rule from the policy file, authenticates the caller and
    checks role and account status. Row-level decisions happen later, in the
    guard and the listing scope.
    """

    rule = policy.match(request.url.path, request.method.upper())

    endpoint = request.scope.get("endpoint")
    decorator_roles = set(getattr(endpoint, "__security_required_roles__", set())) if endpoint else set()

    if not (rule.auth_required or decorator_roles):
        return

    session = authenticate(request, policy, db)
    request.state.session = session
    # Route handlers share this db session; listing scopes read it from db.info.
    bind_request_scope(db, request)

    if session.status not in rule.allowed_statuses:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Account status {session.status.value} may not access this resource",
        )

    required_roles = set(rule.required_roles) | decorator_roles
    if required_roles and session.role not in required_roles:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Insufficient role. Required one of: {sorted(r.value for r in required_roles)}",
        )
