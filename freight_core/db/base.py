from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    # Naive UTC: SQLite DateTime columns do not keep tzinfo.
    return datetime.now(timezone.utc).replace(tzinfo=None)
