"""
Database base configuration for SQLAlchemy models.

The engine is synchronous: every engine operation is a short
read-modify-write sequence inside one request, and the attempt store relies
on row locks held for the lifetime of a session transaction.
"""

from typing import Any, Dict, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import QueuePool

from coursework.core.config import settings

DATABASE_URL = settings.DATABASE_URL


def _engine_options(database_url: str) -> Dict[str, Any]:
    """Build engine keyword arguments for the configured backend."""
    if database_url.startswith("sqlite"):
        # SQLite connections are shared across the threadpool FastAPI uses
        # for sync endpoints.
        return {"connect_args": {"check_same_thread": False}}
    return {
        "poolclass": QueuePool,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_POOL_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": settings.DB_POOL_RECYCLE,
        "pool_pre_ping": True,  # Verify connections are alive before using them
    }


def enable_sqlite_foreign_keys(engine) -> None:
    """Turn on FK enforcement for SQLite connections (off by default)."""
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_engine(
    DATABASE_URL,
    echo=settings.DB_ECHO,
    **_engine_options(DATABASE_URL),
)
enable_sqlite_foreign_keys(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """
    SQLAlchemy 2.0 declarative base class with type annotation support.

    Using DeclarativeBase instead of declarative_base() enables proper
    type checking for model attributes when using Mapped[] annotations.
    """

    pass


def get_db() -> Generator[Session, None, None]:
    """
    Dependency function to get database session.

    Yields a database session and ensures proper cleanup.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
