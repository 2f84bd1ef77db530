from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from freight_core.db.filters import listing_options
from freight_core.db.session import get_db
from freight_core.models.ledger import FinancialAccount
from freight_core.schemas.account import FinancialAccountOut, SessionOut
from freight_core.security.context import RequestSession
from freight_core.security.dependencies import get_current_session
from freight_core.security.scope import EntityKind, Listing

router = APIRouter(tags=["account"])


@router.get("/me", response_model=SessionOut)
def me(session: RequestSession = Depends(get_current_session)) -> dict[str, object]:
    return session.to_dict()


@router.get("/wallet", response_model=list[FinancialAccountOut])
def wallet(db: Session = Depends(get_db)) -> list[FinancialAccount]:
    # Scoped in db/filters.py: shippers and carriers see their own wallets only.
    stmt = (
        select(FinancialAccount)
        .where(FinancialAccount.is_active.is_(True))
        .order_by(FinancialAccount.account_type, FinancialAccount.id)
        .execution_options(**listing_options(EntityKind.FINANCIAL_ACCOUNT, Listing.ENTITLED))
    )
    return list(db.scalars(stmt).all())
