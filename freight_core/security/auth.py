from __future__ import annotations

import json
import logging

from fastapi import HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from freight_core.models.organization import User
from freight_core.security.config import PolicyConfig
from freight_core.security.context import InvalidSessionClaims, RequestSession, UserStatus, session_from_claims

logger = logging.getLogger(__name__)

# Accounts in these states cannot authenticate at all; other non-ACTIVE states
# authenticate but are stopped by the route rule's `allowed_statuses`.
_LOCKED_STATUSES = frozenset({UserStatus.SUSPENDED.value, UserStatus.REJECTED.value})


def extract_user_id(request: Request, policy: PolicyConfig) -> str | None:
    """
    Dummy auth: extract the bearer token and treat it as a user id.

    - Input: `Authorization: Bearer <user id>`
    - Only meant for local runs and tests; deployments use the "gateway" provider.
    """

    header_name = policy.auth.authorization_header
    bearer_prefix = policy.auth.bearer_prefix

    raw = request.headers.get(header_name)
    if not raw:
        logger.info("Missing Authorization header (auth required) path=%s method=%s", request.url.path, request.method)
        return None

    prefix = f"{bearer_prefix} "
    if not raw.startswith(prefix):
        logger.warning("Invalid Authorization header format path=%s method=%s", request.url.path, request.method)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {header_name}. Expected '{bearer_prefix} <token>'.",
        )

    token = raw[len(prefix) :].strip()
    if not token:
        logger.warning("Empty bearer token path=%s method=%s", request.url.path, request.method)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {header_name}. Missing token after '{bearer_prefix}'.",
        )

    return token


def load_user(db: Session, user_id: str) -> User:
    user = db.execute(select(User).where(User.id == user_id)).scalar_one_or_none()

    if user is None or user.status in _LOCKED_STATUSES:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or inactive user")

    return user


def extract_gateway_session(request: Request, policy: PolicyConfig) -> RequestSession | None:
    """
    Gateway auth: an upstream proxy has verified the token and forwards the
    decoded claim set as JSON in `auth.claims_header`.
    """

    header_name = policy.auth.claims_header
    raw = request.headers.get(header_name)
    if not raw:
        logger.info("Missing %s header (auth required) path=%s method=%s", header_name, request.url.path, request.method)
        return None

    try:
        claims = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning("Claims header is not JSON path=%s method=%s", request.url.path, request.method)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid {header_name}.") from exc

    if not isinstance(claims, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid {header_name}.")

    try:
        session = session_from_claims(claims)
    except InvalidSessionClaims as exc:
        logger.warning("Rejected claim set path=%s reason=%s", request.url.path, exc)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session") from exc

    if session.status.value in _LOCKED_STATUSES:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or inactive user")
    return session


def authenticate(request: Request, policy: PolicyConfig, db: Session) -> RequestSession:
    if policy.auth.provider == "gateway":
        session = extract_gateway_session(request, policy)
        if session is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
        return session

    user_id = extract_user_id(request, policy)
    if user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing user id")

    user = load_user(db, user_id)
    request.state.user = user
    return user.to_session()
