"""
Database engine, session factory and declarative base.

Every request gets its own ``Session`` through the ``get_db`` dependency;
there is no cross-request caching of ORM state, so each operation reads the
latest committed rows.
"""

from __future__ import annotations

from collections.abc import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from tracker.config import get_settings

settings = get_settings()


class Base(DeclarativeBase):
    """Declarative base shared by every model in ``tracker.models``."""


def build_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine, enabling FK enforcement for SQLite connections.

    SQLite ignores ``FOREIGN KEY`` clauses (and therefore ``ON DELETE
    CASCADE`` on dependency edges) unless the pragma is set per connection.
    """
    connect_args: dict[str, object] = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    engine = create_engine(url, echo=echo, future=True, connect_args=connect_args)

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine, "connect")
        def _enable_sqlite_fks(dbapi_connection, _connection_record) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


engine = build_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO)

SessionLocal = sessionmaker(bind=engine, autoflush=False)


def get_db() -> Iterator[Session]:
    """FastAPI dependency yielding a request-scoped session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
