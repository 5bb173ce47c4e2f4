"""SQLAlchemy engine & session factory.

PostgreSQL (psycopg) in every deployed environment; a ``sqlite://`` URL is
accepted for local experiments, in which case row locks degrade to the
process-level ``enrollment_lock``.
"""

from collections.abc import Iterator
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from adaptive_engine.config import settings

# Created on first use so importing the models never opens a connection
_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None  # type: ignore[type-arg]


def get_engine() -> Engine:
    """Get or create the SQLAlchemy engine for ``DATABASE_URL``."""
    global _engine
    if _engine is None:
        connect_args = {}
        if settings.DATABASE_URL.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        _engine = create_engine(
            settings.DATABASE_URL,
            echo=settings.DATABASE_ECHO,
            pool_pre_ping=True,
            connect_args=connect_args,
        )
    return _engine


def get_session_factory() -> sessionmaker:  # type: ignore[type-arg]
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(bind=get_engine(), autocommit=False, autoflush=False)
    return _SessionLocal


class Base(DeclarativeBase):
    """Declarative base for the engine's four tables."""


def get_db() -> Iterator[Session]:
    """FastAPI dependency: one session per request, closed afterwards.

    Services commit explicitly; anything left uncommitted is discarded on close.
    """
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()
