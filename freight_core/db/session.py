from __future__ import annotations

from collections.abc import Generator

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from freight_core.settings import get_settings


def configure_sqlite(engine: Engine) -> Engine:
    """
    Let SQLAlchemy own BEGIN on pysqlite connections.

    The stdlib driver opens transactions lazily on its own, which breaks
    SAVEPOINT handling (used by the settlement ledger). This is the recipe from
    the SQLAlchemy SQLite dialect docs.
    """

    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")

    return engine


_settings = get_settings()
_db_url = _settings.resolved_db_url()

engine = create_engine(
    _db_url,
    connect_args={"check_same_thread": False} if _db_url.startswith("sqlite") else {},
)
if _db_url.startswith("sqlite"):
    configure_sqlite(engine)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, class_=Session)


def bind_request_scope(db: Session, request: Request) -> None:
    """
    Copy the verified request session and the loaded policy into `db.info`.

    `freight_core.db.filters` reads both when a listing statement executes.
    """

    session = getattr(getattr(request, "state", None), "session", None)
    if session is None:
        db.info.pop("session", None)
    else:
        db.info["session"] = session

    policy = getattr(request.app.state, "policy", None)
    if policy is not None:
        db.info["policy"] = policy


def get_db(request: Request) -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        bind_request_scope(db, request)
        yield db
    finally:
        db.close()
