"""
Reservation Repository - persistence and table availability.

Availability is a policy over a fixed occupancy window: a reservation at b
blocks a booking at a when a < b + d and b < a + d. CANCELLED and NO_SHOW
reservations never block.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from restaurant.domain.reservation import Reservation, default_occupancy
from restaurant.models import ReservationModel
from shared.config.constants import NON_BLOCKING_RESERVATION_STATUSES, ReservationStatus
from shared.utils.clock import ensure_utc, utcnow
from shared.utils.exceptions import ValidationError, parse_enum
from shared.utils.ids import ReservationID

from .base import RepositoryFilters, SQLRepository, row_datetime


@dataclass
class ReservationFilters(RepositoryFilters):
    """Filters specific to reservations."""

    customer_id: str | None = None
    table_id: str | None = None
    status: ReservationStatus | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None


class ReservationRepository(ABC):
    """Contract for Reservation persistence."""

    @abstractmethod
    def create(self, reservation: Reservation) -> None: ...

    @abstractmethod
    def get_by_id(self, reservation_id: str) -> Reservation: ...

    @abstractmethod
    def update(self, reservation: Reservation) -> None: ...

    @abstractmethod
    def delete(self, reservation_id: str) -> None: ...

    @abstractmethod
    def list(self, filters: ReservationFilters | None = None) -> list[Reservation]: ...

    @abstractmethod
    def find_by_customer(self, customer_id: str) -> list[Reservation]: ...

    @abstractmethod
    def find_by_date_range(self, start: datetime, end: datetime) -> list[Reservation]: ...

    @abstractmethod
    def find_by_table_and_date_range(
        self, table_id: str, start: datetime, end: datetime
    ) -> list[Reservation]: ...

    @abstractmethod
    def find_available_tables(
        self,
        candidate_tables: Iterable[str],
        start: datetime,
        duration: timedelta | None = None,
        party_size: int = 1,
    ) -> list[str]: ...

    @abstractmethod
    def is_table_booked(
        self,
        table_id: str,
        start: datetime,
        duration: timedelta | None = None,
        exclude_id: str | None = None,
    ) -> bool: ...

    @abstractmethod
    def find_upcoming(self, limit: int | None = None) -> list[Reservation]: ...


# =============================================================================
# Marshalling
# =============================================================================


def reservation_to_values(reservation: Reservation) -> dict[str, Any]:
    return {
        "customer_id": reservation.customer_id,
        "table_id": reservation.table_id,
        "date_time": reservation.date_time,
        "party_size": reservation.party_size,
        "status": reservation.status.value,
        "notes": reservation.notes,
        "created_at": reservation.created_at,
        "updated_at": reservation.updated_at,
    }


def reservation_from_row(row: ReservationModel) -> Reservation:
    return Reservation(
        id=ReservationID(row.id),
        customer_id=row.customer_id,
        table_id=row.table_id,
        date_time=row_datetime(row.date_time),
        party_size=row.party_size,
        status=ReservationStatus(row.status),
        notes=row.notes,
        created_at=row_datetime(row.created_at),
        updated_at=row_datetime(row.updated_at),
        row_version=row.row_version,
    )


# =============================================================================
# SQLAlchemy implementation
# =============================================================================


class SQLReservationRepository(SQLRepository[ReservationModel], ReservationRepository):
    model = ReservationModel
    entity_name = "Reservation"

    def create(self, reservation: Reservation) -> None:
        row = ReservationModel(id=reservation.id, row_version=1, **reservation_to_values(reservation))
        self._insert(row, "ReservationRepository.create")
        reservation.row_version = 1

    def get_by_id(self, reservation_id: str) -> Reservation:
        with self._errors("ReservationRepository.get_by_id"):
            return reservation_from_row(self._get_row(reservation_id))

    def update(self, reservation: Reservation) -> None:
        reservation.row_version = self._versioned_update(
            reservation.id,
            reservation.row_version,
            reservation_to_values(reservation),
            "ReservationRepository.update",
        )

    def delete(self, reservation_id: str) -> None:
        self._delete(reservation_id, "ReservationRepository.delete")

    def _query(self) -> Select:
        return select(ReservationModel).order_by(ReservationModel.date_time.asc())

    def _find(self, query: Select, operation: str) -> list[Reservation]:
        return [reservation_from_row(row) for row in self._scalars(query, operation)]

    def list(self, filters: ReservationFilters | None = None) -> list[Reservation]:
        filters = filters or ReservationFilters()
        query = self._query()
        if filters.customer_id:
            query = query.where(ReservationModel.customer_id == filters.customer_id)
        if filters.table_id:
            query = query.where(ReservationModel.table_id == filters.table_id)
        if filters.status:
            status = parse_enum(ReservationStatus, filters.status, "status")
            query = query.where(ReservationModel.status == status.value)
        if filters.date_from:
            query = query.where(ReservationModel.date_time >= filters.date_from)
        if filters.date_to:
            query = query.where(ReservationModel.date_time <= filters.date_to)
        query = query.offset(filters.offset).limit(filters.limit)
        return self._find(query, "ReservationRepository.list")

    def find_by_customer(self, customer_id: str) -> list[Reservation]:
        return self._find(
            self._query().where(ReservationModel.customer_id == customer_id),
            "ReservationRepository.find_by_customer",
        )

    def find_by_date_range(self, start: datetime, end: datetime) -> list[Reservation]:
        return self._find(
            self._query().where(ReservationModel.date_time >= start, ReservationModel.date_time <= end),
            "ReservationRepository.find_by_date_range",
        )

    def find_by_table_and_date_range(
        self, table_id: str, start: datetime, end: datetime
    ) -> list[Reservation]:
        return self._find(
            self._query().where(
                ReservationModel.table_id == table_id,
                ReservationModel.date_time >= start,
                ReservationModel.date_time <= end,
            ),
            "ReservationRepository.find_by_table_and_date_range",
        )

    def _blocking(self, table_ids: list[str], start: datetime, duration: timedelta) -> list[Reservation]:
        """Reservations on these tables whose window overlaps [start, start + duration)."""
        non_blocking = [s.value for s in NON_BLOCKING_RESERVATION_STATUSES]
        # b < a + d and a < b + d, i.e. b in (a - d, a + d)
        query = self._query().where(
            ReservationModel.table_id.in_(table_ids),
            ReservationModel.status.not_in(non_blocking),
            ReservationModel.date_time > start - duration,
            ReservationModel.date_time < start + duration,
        )
        return self._find(query, "ReservationRepository.find_available_tables")

    def find_available_tables(
        self,
        candidate_tables: Iterable[str],
        start: datetime,
        duration: timedelta | None = None,
        party_size: int = 1,
    ) -> list[str]:
        """
        Candidate tables with no blocking reservation in the window.

        party_size only has to be positive; table capacity is not modelled.
        """
        if party_size <= 0:
            raise ValidationError(
                "party size must be positive", field="party_size", op="ReservationRepository.find_available_tables"
            )
        candidates = list(dict.fromkeys(candidate_tables))
        if not candidates:
            return []

        start = ensure_utc(start)
        duration = duration or default_occupancy()
        booked = {r.table_id for r in self._blocking(candidates, start, duration)}
        return [table_id for table_id in candidates if table_id not in booked]

    def is_table_booked(
        self,
        table_id: str,
        start: datetime,
        duration: timedelta | None = None,
        exclude_id: str | None = None,
    ) -> bool:
        """exclude_id skips one reservation so a booking can move within its own window."""
        blocking = self._blocking([table_id], ensure_utc(start), duration or default_occupancy())
        return any(r.id != exclude_id for r in blocking)

    def find_upcoming(self, limit: int | None = None) -> list[Reservation]:
        """Future reservations that still block their table, soonest first."""
        non_blocking = [s.value for s in NON_BLOCKING_RESERVATION_STATUSES]
        query = self._query().where(
            ReservationModel.date_time > utcnow(),
            ReservationModel.status.not_in(non_blocking + [ReservationStatus.COMPLETED.value]),
        )
        if limit:
            query = query.limit(limit)
        return self._find(query, "ReservationRepository.find_upcoming")


def get_reservation_repository(db: Session) -> SQLReservationRepository:
    """Factory function for dependency injection."""
    return SQLReservationRepository(db)
