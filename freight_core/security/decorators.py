from __future__ import annotations

from collections.abc import Callable

from freight_core.security.context import Role


def require_roles(roles: list[Role | str]) -> Callable:
    """
    Attach required roles to an endpoint.

    The decorator performs no checks itself; `enforce_security` reads the
    metadata after routing and merges it with the matching policy rule.
    """

    def decorator(fn: Callable) -> Callable:
        existing = set(getattr(fn, "__security_required_roles__", set()))
        setattr(fn, "__security_required_roles__", existing | {Role(r) for r in roles})
        return fn

    return decorator
