from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator

from freight_core.security.context import Role, UserStatus


class AuthConfig(BaseModel):
    provider: Literal["dummy", "gateway"] = "dummy"
    authorization_header: str = "Authorization"
    bearer_prefix: str = "Bearer"
    # Header carrying the JSON claim set in "gateway" mode (already verified upstream).
    claims_header: str = "X-Verified-Session"


class DefaultRule(BaseModel):
    auth_required: bool = True
    required_roles: list[Role] = Field(default_factory=list)
    allowed_statuses: list[UserStatus] = Field(default_factory=lambda: [UserStatus.ACTIVE])


class RouteRule(BaseModel):
    path: str
    methods: list[str] = Field(default_factory=lambda: ["GET"])

    auth_required: bool | None = None
    required_roles: list[Role] = Field(default_factory=list)
    allowed_statuses: list[UserStatus] | None = None

    def normalized_methods(self) -> set[str]:
        return {m.upper() for m in self.methods}


class MarketplaceConfig(BaseModel):
    """
    Statuses in which a record is publicly enumerable to marketplace participants.
    """

    load_statuses: list[str] = Field(default_factory=lambda: ["POSTED"])
    truck_posting_statuses: list[str] = Field(default_factory=lambda: ["ACTIVE"])

    @field_validator("load_statuses", "truck_posting_statuses")
    @classmethod
    def _no_drafts(cls, value: list[str]) -> list[str]:
        normalized = [s.strip().upper() for s in value if s.strip()]
        if "DRAFT" in normalized:
            raise ValueError("DRAFT records can never be listed on the marketplace")
        if not normalized:
            raise ValueError("marketplace status list must not be empty")
        return normalized


class BookingConfig(BaseModel):
    default_expiry_hours: int = Field(default=24, gt=0)


class PolicyConfigModel(BaseModel):
    auth: AuthConfig = Field(default_factory=AuthConfig)
    default: DefaultRule = Field(default_factory=DefaultRule)
    routes: list[RouteRule] = Field(default_factory=list)
    marketplace: MarketplaceConfig = Field(default_factory=MarketplaceConfig)
    booking: BookingConfig = Field(default_factory=BookingConfig)


@dataclass(frozen=True)
class EffectiveRule:
    """
    Fully-resolved rule (defaults applied) for a particular request.
    """

    auth_required: bool
    required_roles: frozenset[Role]
    allowed_statuses: frozenset[UserStatus]


def _path_template_to_regex(path_template: str) -> re.Pattern[str]:
    # Convert "/trips/{id}" -> r"^/trips/[^/]+$"
    regex = re.sub(r"\{[^/]+\}", r"[^/]+", path_template)
    return re.compile(rf"^{regex}$")


class PolicyConfig:
    """
    Runtime helper around validated config + route matching.
    """

    def __init__(self, model: PolicyConfigModel):
        self.model = model

        compiled: list[tuple[str, re.Pattern[str], RouteRule]] = []
        for rule in self.model.routes:
            compiled.append((rule.path, _path_template_to_regex(rule.path), rule))

        # Prefer exact matches over templates.
        self._exact_rules: dict[str, list[RouteRule]] = {}
        for r in self.model.routes:
            self._exact_rules.setdefault(r.path, []).append(r)
        self._compiled_rules = compiled

    @property
    def auth(self) -> AuthConfig:
        return self.model.auth

    @property
    def marketplace_load_statuses(self) -> frozenset[str]:
        return frozenset(self.model.marketplace.load_statuses)

    @property
    def marketplace_posting_statuses(self) -> frozenset[str]:
        return frozenset(self.model.marketplace.truck_posting_statuses)

    def match(self, path: str, method: str) -> EffectiveRule:
        """
        Find the best matching rule for (path, method), then apply defaults.
        """

        method = method.upper()
        default = self.model.default

        # 1) exact path match
        for candidate in self._exact_rules.get(path, []):
            if method in candidate.normalized_methods():
                return _effective(candidate, default)

        # 2) template match
        for _template, regex, candidate in self._compiled_rules:
            if method not in candidate.normalized_methods():
                continue
            if regex.match(path):
                return _effective(candidate, default)

        # 3) no match -> defaults
        return EffectiveRule(
            auth_required=default.auth_required,
            required_roles=frozenset(default.required_roles),
            allowed_statuses=frozenset(default.allowed_statuses),
        )


def _effective(rule: RouteRule, default: DefaultRule) -> EffectiveRule:
    # A rule that names roles is auth-required even if the global default is public.
    inferred_auth_required = default.auth_required or bool(rule.required_roles)

    return EffectiveRule(
        auth_required=inferred_auth_required if rule.auth_required is None else rule.auth_required,
        required_roles=frozenset(rule.required_roles or default.required_roles),
        allowed_statuses=frozenset(default.allowed_statuses if rule.allowed_statuses is None else rule.allowed_statuses),
    )


def load_policy_config(path: Path) -> PolicyConfig:
    raw_text = path.read_text(encoding="utf-8")
    raw: dict[str, Any] = yaml.safe_load(raw_text) or {}

    if "policy" not in raw:
        raise ValueError(f"Missing top-level 'policy' key in config: {path}")

    model = PolicyConfigModel.model_validate(raw["policy"])
    return PolicyConfig(model)


def default_policy() -> PolicyConfig:
    """Policy with built-in defaults only (no route overrides)."""
    return PolicyConfig(PolicyConfigModel())
