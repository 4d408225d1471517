from __future__ import annotations

from collections.abc import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": float(settings.db_lock_timeout_seconds)}
    if url.startswith("postgresql"):
        return {
            "connect_timeout": max(1, int(settings.db_pool_timeout_seconds)),
            "options": f"-c statement_timeout={int(settings.db_statement_timeout_ms)}",
        }
    return {}


def _serialize_sqlite_writers(engine: Engine) -> None:
    # pysqlite opens transactions lazily; take the write lock up front so that
    # read-then-insert sequences from separate connections cannot interleave.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str, **kwargs) -> Engine:
    opts: dict = {"connect_args": _connect_args(url), "pool_pre_ping": True}
    if not url.startswith("sqlite"):
        opts["pool_timeout"] = float(settings.db_pool_timeout_seconds)
    opts.update(kwargs)
    engine = create_engine(url, **opts)
    if url.startswith("sqlite") and ":memory:" not in url:
        _serialize_sqlite_writers(engine)
    return engine


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
