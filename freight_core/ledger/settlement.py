"""
Zero-sum fee settlement.

`apply_fee` debits two payer accounts and credits one payee with exactly the
sum, inside a SAVEPOINT: either every balance mutation and the journal entry
land, or none do. No account other than the three named ones is touched.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from freight_core.errors import (
    InvalidLedgerOperation,
    LedgerAccountNotFound,
    LedgerInsufficientFunds,
)
from freight_core.models.freight import FeeStatus, Load, Trip
from freight_core.models.ledger import AccountType, FinancialAccount, JournalEntry, JournalLine

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")

SERVICE_FEE_DEDUCT = "SERVICE_FEE_DEDUCT"


def _money(value: object) -> Decimal:
    try:
        amount = Decimal(str(value)).quantize(_CENT)
    except (InvalidOperation, ValueError) as exc:
        raise InvalidLedgerOperation(f"Invalid fee amount: {value!r}") from exc
    if amount < 0:
        raise InvalidLedgerOperation("Fee amounts must not be negative")
    return amount


def apply_fee(
    db: Session,
    payer1_id: str,
    amount1: Decimal | int | str,
    payer2_id: str,
    amount2: Decimal | int | str,
    payee_id: str,
    *,
    transaction_type: str = SERVICE_FEE_DEDUCT,
    reference: str | None = None,
    description: str | None = None,
) -> JournalEntry:
    first = _money(amount1)
    second = _money(amount2)

    account_ids = [payer1_id, payer2_id, payee_id]
    if len(set(account_ids)) != len(account_ids):
        raise InvalidLedgerOperation("Payers and payee must be three distinct accounts")

    accounts = {
        account.id: account
        for account in db.scalars(
            select(FinancialAccount).where(
                FinancialAccount.id.in_(account_ids),
                FinancialAccount.is_active.is_(True),
            )
        )
    }
    missing = [account_id for account_id in account_ids if account_id not in accounts]
    if missing:
        raise LedgerAccountNotFound(missing)

    credited = first + second

    with db.begin_nested():
        for account_id, amount in ((payer1_id, first), (payer2_id, second)):
            if amount == 0:
                continue
            # Conditional decrement: the balance check and the write are one statement.
            result = db.execute(
                update(FinancialAccount)
                .where(FinancialAccount.id == account_id, FinancialAccount.balance >= amount)
                .values(balance=FinancialAccount.balance - amount),
                execution_options={"synchronize_session": False},
            )
            if result.rowcount != 1:
                raise LedgerInsufficientFunds(account_id)

        if credited:
            db.execute(
                update(FinancialAccount)
                .where(FinancialAccount.id == payee_id)
                .values(balance=FinancialAccount.balance + credited),
                execution_options={"synchronize_session": False},
            )

        entry = JournalEntry(
            transaction_type=transaction_type,
            reference=reference,
            description=description,
            lines=[
                JournalLine(account_id=payer1_id, amount=first, is_debit=True),
                JournalLine(account_id=payer2_id, amount=second, is_debit=True),
                JournalLine(account_id=payee_id, amount=credited, is_debit=False),
            ],
        )
        db.add(entry)
        db.flush()

    for account in accounts.values():
        db.expire(account)

    return entry


def find_wallet(db: Session, organization_id: str, account_type: AccountType) -> FinancialAccount | None:
    return db.scalars(
        select(FinancialAccount)
        .where(
            FinancialAccount.organization_id == organization_id,
            FinancialAccount.account_type == account_type.value,
            FinancialAccount.is_active.is_(True),
        )
        .order_by(FinancialAccount.created_at)
    ).first()


def find_platform_revenue_account(db: Session) -> FinancialAccount | None:
    return db.scalars(
        select(FinancialAccount)
        .where(
            FinancialAccount.account_type == AccountType.PLATFORM_REVENUE.value,
            FinancialAccount.organization_id.is_(None),
            FinancialAccount.is_active.is_(True),
        )
        .order_by(FinancialAccount.created_at)
    ).first()


def settle_trip(db: Session, trip: Trip, load: Load, now: datetime) -> JournalEntry | None:
    """
    Move the load's service fees from the shipper and carrier wallets to
    platform revenue. Called once, when the trip reaches COMPLETED.

    Returns None when both fees are zero (the load is marked WAIVED).
    """

    if load.fee_status == FeeStatus.DEDUCTED.value:
        raise InvalidLedgerOperation(f"Service fees for load {load.id} were already settled")

    shipper_fee = _money(load.shipper_service_fee or 0)
    carrier_fee = _money(load.carrier_service_fee or 0)

    if shipper_fee == 0 and carrier_fee == 0:
        load.fee_status = FeeStatus.WAIVED.value
        logger.info("Service fees waived load_id=%s trip_id=%s", load.id, trip.id)
        return None

    shipper_wallet = find_wallet(db, trip.shipper_org_id, AccountType.SHIPPER_WALLET)
    carrier_wallet = find_wallet(db, trip.carrier_org_id, AccountType.CARRIER_WALLET)
    platform = find_platform_revenue_account(db)

    missing: list[str] = []
    if shipper_wallet is None:
        missing.append(f"shipper wallet of {trip.shipper_org_id}")
    if carrier_wallet is None:
        missing.append(f"carrier wallet of {trip.carrier_org_id}")
    if platform is None:
        missing.append("platform revenue")
    if missing:
        raise LedgerAccountNotFound(missing)

    entry = apply_fee(
        db,
        shipper_wallet.id,
        shipper_fee,
        carrier_wallet.id,
        carrier_fee,
        platform.id,
        reference=load.id,
        description=f"Service fees for load {load.id}: shipper {shipper_fee}, carrier {carrier_fee}",
    )

    load.fee_status = FeeStatus.DEDUCTED.value
    load.fees_settled_at = now
    logger.info(
        "Service fees settled load_id=%s trip_id=%s shipper_fee=%s carrier_fee=%s entry_id=%s",
        load.id,
        trip.id,
        shipper_fee,
        carrier_fee,
        entry.id,
    )
    return entry
