from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Numeric, String, Text, case, null
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import Mapped, mapped_column, relationship

from freight_core.db.base import Base, new_id, utcnow
from freight_core.security.capability import EntityOwnership


class AccountType(str, Enum):
    SHIPPER_WALLET = "SHIPPER_WALLET"
    CARRIER_WALLET = "CARRIER_WALLET"
    PLATFORM_REVENUE = "PLATFORM_REVENUE"


class FinancialAccount(Base):
    __tablename__ = "financial_accounts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    # Platform revenue accounts belong to no organization.
    organization_id: Mapped[str | None] = mapped_column(ForeignKey("organizations.id"), nullable=True, index=True)
    account_type: Mapped[str] = mapped_column(String(32), nullable=False)
    balance: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="ETB", nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    # Wallet ownership in the shipper/carrier dimensions used by other protected entities.
    @hybrid_property
    def shipper_org_id(self) -> str | None:
        return self.organization_id if self.account_type == AccountType.SHIPPER_WALLET.value else None

    @shipper_org_id.inplace.expression
    @classmethod
    def _shipper_org_id_expression(cls):
        return case((cls.account_type == AccountType.SHIPPER_WALLET.value, cls.organization_id), else_=null())

    @hybrid_property
    def carrier_org_id(self) -> str | None:
        return self.organization_id if self.account_type == AccountType.CARRIER_WALLET.value else None

    @carrier_org_id.inplace.expression
    @classmethod
    def _carrier_org_id_expression(cls):
        return case((cls.account_type == AccountType.CARRIER_WALLET.value, cls.organization_id), else_=null())

    def ownership(self) -> EntityOwnership:
        return EntityOwnership(shipper_org_id=self.shipper_org_id, carrier_org_id=self.carrier_org_id)


class JournalEntry(Base):
    __tablename__ = "journal_entries"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    transaction_type: Mapped[str] = mapped_column(String(50), nullable=False)
    reference: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    lines: Mapped[list["JournalLine"]] = relationship(back_populates="entry", cascade="all, delete-orphan")


class JournalLine(Base):
    __tablename__ = "journal_lines"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    entry_id: Mapped[str] = mapped_column(ForeignKey("journal_entries.id"), nullable=False, index=True)
    account_id: Mapped[str] = mapped_column(ForeignKey("financial_accounts.id"), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    is_debit: Mapped[bool] = mapped_column(Boolean, nullable=False)

    entry: Mapped[JournalEntry] = relationship(back_populates="lines")

    @property
    def signed_amount(self) -> Decimal:
        return -self.amount if self.is_debit else self.amount
