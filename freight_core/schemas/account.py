from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class OrganizationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    org_type: str
    is_verified: bool


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    full_name: str | None
    role: str
    status: str
    organization_id: str | None
    organization: OrganizationOut | None


class SessionOut(BaseModel):
    user_id: str
    role: str
    organization_id: str | None
    status: str


class FinancialAccountOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    organization_id: str | None
    account_type: str
    balance: Decimal
    currency: str
    is_active: bool


class JournalLineOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    account_id: str
    amount: Decimal
    is_debit: bool


class JournalEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    transaction_type: str
    reference: str | None
    description: str | None
    created_at: datetime
    lines: list[JournalLineOut]
