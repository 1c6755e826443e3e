"""
Base Repository implementation.

Repositories are the only place that marshal aggregates to rows and back.
They raise NotFoundError for missing rows, ConcurrentModificationError for
stale writes, and wrap every SQLAlchemyError in DatabaseError.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from shared.config.constants import Limits
from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit
from shared.utils.clock import ensure_utc
from shared.utils.exceptions import (
    AppException,
    ConcurrentModificationError,
    DatabaseError,
    DuplicateEntityError,
    NotFoundError,
)

logger = get_logger(__name__)

ModelT = TypeVar("ModelT")


@dataclass
class RepositoryFilters:
    """Base filters for repository queries."""

    # Pagination
    limit: int = Limits.DEFAULT_PAGE_SIZE
    offset: int = 0

    def __post_init__(self):
        """Validate and normalize filters."""
        self.limit = min(max(1, self.limit), Limits.MAX_PAGE_SIZE)
        self.offset = max(0, self.offset)


# =============================================================================
# JSON column helpers
# =============================================================================


def dump_datetime(value: datetime | None) -> str | None:
    return ensure_utc(value).isoformat() if value is not None else None


def load_datetime(value: str | None) -> datetime | None:
    return ensure_utc(datetime.fromisoformat(value)) if value else None


def dump_duration(value: timedelta) -> int:
    """Durations are stored as whole seconds."""
    return int(value.total_seconds())


def load_duration(value: int | None) -> timedelta:
    return timedelta(seconds=value or 0)


def row_datetime(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; every stored value is UTC."""
    return ensure_utc(value) if value is not None else None


def compact(data: dict[str, Any]) -> dict[str, Any]:
    """Drop unset optional fields before they reach a JSON column."""
    return {k: v for k, v in data.items() if v is not None}


# =============================================================================
# SQL repository base
# =============================================================================


class SQLRepository(Generic[ModelT]):
    """
    Shared plumbing for the SQLAlchemy repositories.

    Subclasses set model and entity_name. Every public write is one commit.
    """

    model: type[ModelT]
    entity_name: str = "Entity"

    def __init__(self, db: Session):
        self._db = db

    @contextmanager
    def _errors(self, operation: str) -> Iterator[None]:
        """Translate SQLAlchemy failures into the error taxonomy."""
        try:
            yield
        except AppException:
            raise
        except IntegrityError as e:
            self._db.rollback()
            raise DuplicateEntityError(self.entity_name, op=operation, error=str(e.orig)) from e
        except SQLAlchemyError as e:
            self._db.rollback()
            logger.error("Database operation failed", operation=operation, error=str(e))
            raise DatabaseError(operation, entity=self.entity_name) from e

    def _fetch_row(self, entity_id: str) -> ModelT | None:
        return self._db.get(self.model, entity_id, populate_existing=True)

    def _get_row(self, entity_id: str) -> ModelT:
        row = self._fetch_row(entity_id)
        if row is None:
            raise NotFoundError(self.entity_name, entity_id)
        return row

    def _insert(self, row: ModelT, operation: str) -> None:
        with self._errors(operation):
            self._db.add(row)
            safe_commit(self._db)

    def _scalars(self, query: Select, operation: str) -> Sequence[ModelT]:
        with self._errors(operation):
            # Rows written through bulk UPDATE must not come back stale
            return self._db.execute(query.execution_options(populate_existing=True)).scalars().all()

    def _count(self, query: Select, operation: str) -> int:
        with self._errors(operation):
            count_query = select(func.count()).select_from(query.order_by(None).subquery())
            return self._db.scalar(count_query) or 0

    def _versioned_update(
        self,
        entity_id: str,
        expected_version: int,
        values: dict[str, Any],
        operation: str,
    ) -> int:
        """
        UPDATE ... WHERE id = :id AND row_version = :expected.

        Returns:
            The new row version.

        Raises:
            NotFoundError: No row with this id.
            ConcurrentModificationError: The row moved past expected_version.
        """
        new_version = expected_version + 1
        with self._errors(operation):
            result = self._db.execute(
                update(self.model)
                .where(self.model.id == entity_id, self.model.row_version == expected_version)
                .values(**values, row_version=new_version)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                exists = self._db.scalar(
                    select(func.count()).select_from(self.model).where(self.model.id == entity_id)
                )
                self._db.rollback()
                if not exists:
                    raise NotFoundError(self.entity_name, entity_id, op=operation)
                raise ConcurrentModificationError(
                    self.entity_name, entity_id, expected_version, op=operation
                )
            safe_commit(self._db)
        return new_version

    def _plain_update(self, entity_id: str, values: dict[str, Any], operation: str) -> None:
        """Last-writer-wins update for rows without a version column."""
        with self._errors(operation):
            result = self._db.execute(
                update(self.model)
                .where(self.model.id == entity_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                self._db.rollback()
                raise NotFoundError(self.entity_name, entity_id, op=operation)
            safe_commit(self._db)

    def _delete(self, entity_id: str, operation: str) -> None:
        with self._errors(operation):
            result = self._db.execute(delete(self.model).where(self.model.id == entity_id))
            if result.rowcount == 0:
                self._db.rollback()
                raise NotFoundError(self.entity_name, entity_id, op=operation)
            safe_commit(self._db)
