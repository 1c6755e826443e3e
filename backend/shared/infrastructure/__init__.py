"""
Infrastructure module: Database sessions, correlation ids and the event bus.

Provides:
- Database sessions and transactions (db.py)
- Correlation ids for log records (correlation.py)
- Domain event publication and consumption over Redis streams (events/)
"""

from shared.infrastructure.db import (
    get_engine,
    SessionLocal,
    get_db_context,
    safe_commit,
)
from shared.infrastructure.correlation import (
    correlation_scope,
    get_correlation_id,
)

__all__ = [
    # db
    "get_engine",
    "SessionLocal",
    "get_db_context",
    "safe_commit",
    # correlation
    "correlation_scope",
    "get_correlation_id",
]
