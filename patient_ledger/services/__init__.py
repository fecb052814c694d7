"""Database connection and session management."""

from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from patient_ledger.config import settings


def is_memory_sqlite(database_url: str) -> bool:
    """True for SQLite URLs that point at an in-memory database."""
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return False
    return url.database in (None, "", ":memory:") or url.query.get("mode") == "memory"


def build_engine(database_url: str, echo: bool = False, isolation_level: str | None = None) -> Engine:
    """Create an engine for the ledger database.

    In-memory SQLite keeps a single shared connection (StaticPool), otherwise
    the database would vanish between sessions. File-backed SQLite and server
    databases use a regular pool, so every session owns its connection and
    its transaction.
    """
    kwargs = {"echo": echo}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if is_memory_sqlite(database_url):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True
    if isolation_level:
        kwargs["isolation_level"] = isolation_level
    return create_engine(database_url, **kwargs)


engine = build_engine(
    settings.database_url,
    echo=settings.database_echo,
    isolation_level=settings.ledger_isolation_level,
)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


__all__ = [
    "engine",
    "build_engine",
    "is_memory_sqlite",
    "SessionLocal",
    "get_db",
]
