from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from insightboard.config import settings


def _sqlite_connect_args(url: str) -> dict:
    if url.startswith("sqlite:"):
        # timeout is in seconds for sqlite3.connect(); helps transient lock contention.
        return {"check_same_thread": False, "timeout": 60}
    return {}


def _set_sqlite_pragmas(dbapi_connection, _connection_record) -> None:
    # WAL lets dashboard readers keep reading the previous summary while a recompute writes.
    cur = dbapi_connection.cursor()
    cur.execute("PRAGMA journal_mode=WAL;")
    cur.execute("PRAGMA synchronous=NORMAL;")
    cur.execute("PRAGMA foreign_keys=ON;")
    cur.execute("PRAGMA busy_timeout=60000;")  # ms
    cur.close()


def build_engine(url: str) -> Engine:
    eng = create_engine(url, connect_args=_sqlite_connect_args(url), pool_pre_ping=True)
    if url.startswith("sqlite:") and ":memory:" not in url:
        event.listen(eng, "connect", _set_sqlite_pragmas)
    return eng


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


def configure(url: str) -> None:
    """
    Re-point the module-level engine/session factory (CLI --database-url and tests).
    """
    global engine
    engine.dispose()
    engine = build_engine(url)
    SessionLocal.configure(bind=engine)


@contextmanager
def session_scope() -> Session:
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_db() -> Session:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
