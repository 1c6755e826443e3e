"""
Database configuration and session management.
Uses SQLAlchemy 2.0 patterns. The engine is created on first use so that
importing models and repositories never opens a connection.
"""

import os
from collections.abc import Generator
from contextlib import contextmanager
from functools import lru_cache

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from shared.config.logging import get_logger
from shared.config.settings import settings

logger = get_logger(__name__)


def _calculate_pool_size() -> int:
    """
    Pool size from CPU cores: (2 * cores) + 1, capped at 20.
    """
    cores = os.cpu_count() or 4
    return min(cores * 2 + 1, 20)


@lru_cache
def get_engine() -> Engine:
    """
    Create the process-wide engine from settings.database_url.

    Pool tuning only applies to server databases; SQLite URLs get the
    dialect defaults. Repositories run in worker threads, so SQLite
    connections may be used off the thread that opened them.
    """
    url = settings.database_url
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False}, echo=False)

    return create_engine(
        url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=_calculate_pool_size(),
        max_overflow=15,
        pool_timeout=30,  # Wait max 30s for connection from pool
        pool_recycle=1800,  # Recycle connections after 30 minutes
        connect_args={"connect_timeout": 10},
        echo=False,
    )


SessionLocal = sessionmaker(
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
)


def new_session() -> Session:
    """Open a session bound to the process-wide engine."""
    return SessionLocal(bind=get_engine())


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Usage:
        with get_db_context() as db:
            repo = SQLOrderRepository(db)
    """
    db = new_session()
    try:
        yield db
    finally:
        db.close()


def safe_commit(db: Session) -> None:
    """
    Commit with automatic rollback on failure.

    Raises the original exception after rolling back.
    """
    try:
        db.commit()
    except Exception:
        db.rollback()
        logger.error("Commit failed, transaction rolled back")
        raise
