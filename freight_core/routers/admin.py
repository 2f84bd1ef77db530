from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from freight_core.db.session import get_db
from freight_core.models.ledger import JournalEntry
from freight_core.models.organization import User
from freight_core.schemas.account import JournalEntryOut, UserOut
from freight_core.security.context import Role
from freight_core.security.decorators import require_roles

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users", response_model=list[UserOut])
@require_roles([Role.ADMIN, Role.SUPER_ADMIN])
def list_users(db: Session = Depends(get_db)) -> list[User]:
    stmt = select(User).options(selectinload(User.organization)).order_by(User.email)
    return list(db.scalars(stmt).all())


@router.get("/journal-entries", response_model=list[JournalEntryOut])
@require_roles([Role.ADMIN, Role.SUPER_ADMIN])
def list_journal_entries(reference: str | None = None, db: Session = Depends(get_db)) -> list[JournalEntry]:
    stmt = select(JournalEntry).options(selectinload(JournalEntry.lines)).order_by(JournalEntry.created_at)
    if reference:
        stmt = stmt.where(JournalEntry.reference == reference)
    return list(db.scalars(stmt).all())
