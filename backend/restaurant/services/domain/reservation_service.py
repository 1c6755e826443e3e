"""
Reservation Service - bookings and table availability.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta

from restaurant.domain.reservation import Reservation
from restaurant.domain.user import User
from restaurant.repositories.reservation import ReservationFilters, ReservationRepository
from restaurant.services.permissions import require_permission
from shared.config.constants import Actions, ReservationStatus, Resources
from shared.config.logging import reservation_logger
from shared.infrastructure.events import (
    RESERVATION_CANCELLED,
    RESERVATION_COMPLETED,
    RESERVATION_CONFIRMED,
    RESERVATION_CREATED,
    RESERVATION_NO_SHOW,
    RESERVATION_UPDATED,
    EventPublisher,
)
from shared.infrastructure.events.event_schema import format_timestamp
from shared.infrastructure.events.payloads import ReservationCreatedData, ReservationStatusChangedData
from shared.utils.clock import ensure_utc
from shared.utils.exceptions import ConflictError, ErrorCode

from .base_service import BaseDomainService


class ReservationService(BaseDomainService):
    """Application service for the Reservation aggregate."""

    service_name = "reservation-service"

    def __init__(self, reservations: ReservationRepository, publisher: EventPublisher | None = None):
        super().__init__(publisher)
        self._reservations = reservations

    async def _ensure_table_free(
        self, table_id: str, date_time: datetime, exclude_id: str | None, op: str
    ) -> None:
        if await self._run(self._reservations.is_table_booked, table_id, date_time, exclude_id=exclude_id):
            raise ConflictError(
                "table already booked for this time slot",
                code=ErrorCode.TABLE_ALREADY_BOOKED,
                op=op,
                table_id=table_id,
                date_time=format_timestamp(date_time),
            )

    async def _publish_status(
        self, event_type: str, reservation: Reservation, previous: ReservationStatus
    ) -> None:
        await self._publish(
            event_type,
            reservation.id,
            ReservationStatusChangedData(
                reservation_id=reservation.id,
                customer_id=reservation.customer_id,
                table_id=reservation.table_id,
                party_size=reservation.party_size,
                date_time=format_timestamp(reservation.date_time),
                old_status=previous.value,
                new_status=reservation.status.value,
            ),
            customer_id=reservation.customer_id,
        )

    # =========================================================================
    # Booking
    # =========================================================================

    @require_permission(Resources.RESERVATION, Actions.CREATE)
    async def create_reservation(
        self,
        customer_id: str,
        table_id: str,
        date_time: datetime,
        party_size: int,
        notes: str = "",
        *,
        actor: User | None = None,
    ) -> Reservation:
        """
        Book a table.

        Raises:
            ValidationError: Bad fields, or a date not in the future.
            ConflictError: The table is already booked in the window.
        """
        reservation = Reservation.create(customer_id, table_id, date_time, party_size)
        if notes:
            reservation.add_notes(notes)
        await self._ensure_table_free(
            reservation.table_id, reservation.date_time, None, "ReservationService.create_reservation"
        )

        await self._run(self._reservations.create, reservation)
        reservation_logger.info(
            "Reservation created",
            reservation_id=reservation.id,
            table_id=reservation.table_id,
            party_size=reservation.party_size,
            date_time=format_timestamp(reservation.date_time),
        )

        await self._publish(
            RESERVATION_CREATED,
            reservation.id,
            ReservationCreatedData(
                reservation_id=reservation.id,
                customer_id=reservation.customer_id,
                table_id=reservation.table_id,
                party_size=reservation.party_size,
                date_time=format_timestamp(reservation.date_time),
                status=reservation.status.value,
            ),
            customer_id=reservation.customer_id,
        )
        return reservation

    @require_permission(Resources.RESERVATION, Actions.UPDATE)
    async def update_reservation(
        self,
        reservation_id: str,
        party_size: int | None = None,
        table_id: str | None = None,
        date_time: datetime | None = None,
        notes: str | None = None,
        *,
        actor: User | None = None,
    ) -> Reservation:
        """Change the given fields. A table or time change is re-checked for conflicts."""
        reservation = await self._run(self._reservations.get_by_id, reservation_id)
        previous = reservation.status

        if party_size is not None:
            reservation.update_party_size(party_size)
        if table_id is not None:
            reservation.update_table(table_id)
        if date_time is not None:
            reservation.update_date_time(date_time)
        if notes is not None:
            reservation.add_notes(notes)

        if table_id is not None or date_time is not None:
            await self._ensure_table_free(
                reservation.table_id,
                reservation.date_time,
                reservation.id,
                "ReservationService.update_reservation",
            )

        await self._run(self._reservations.update, reservation)
        await self._publish_status(RESERVATION_UPDATED, reservation, previous)
        return reservation

    # =========================================================================
    # Status
    # =========================================================================

    async def _change_status(self, reservation_id: str, action: str, event_type: str) -> Reservation:
        reservation = await self._run(self._reservations.get_by_id, reservation_id)
        previous = getattr(reservation, action)()
        await self._run(self._reservations.update, reservation)

        reservation_logger.info(
            "Reservation status changed",
            reservation_id=reservation.id,
            old_status=previous.value,
            new_status=reservation.status.value,
        )
        await self._publish_status(event_type, reservation, previous)
        return reservation

    @require_permission(Resources.RESERVATION, Actions.UPDATE)
    async def confirm(self, reservation_id: str, *, actor: User | None = None) -> Reservation:
        return await self._change_status(reservation_id, "confirm", RESERVATION_CONFIRMED)

    @require_permission(Resources.RESERVATION, Actions.UPDATE)
    async def cancel(self, reservation_id: str, *, actor: User | None = None) -> Reservation:
        return await self._change_status(reservation_id, "cancel", RESERVATION_CANCELLED)

    @require_permission(Resources.RESERVATION, Actions.UPDATE)
    async def complete(self, reservation_id: str, *, actor: User | None = None) -> Reservation:
        return await self._change_status(reservation_id, "complete", RESERVATION_COMPLETED)

    @require_permission(Resources.RESERVATION, Actions.UPDATE)
    async def mark_no_show(self, reservation_id: str, *, actor: User | None = None) -> Reservation:
        return await self._change_status(reservation_id, "mark_no_show", RESERVATION_NO_SHOW)

    # =========================================================================
    # Queries
    # =========================================================================

    async def get(self, reservation_id: str) -> Reservation:
        return await self._run(self._reservations.get_by_id, reservation_id)

    async def list(self, filters: ReservationFilters | None = None) -> list[Reservation]:
        return await self._run(self._reservations.list, filters)

    async def get_by_customer(self, customer_id: str) -> list[Reservation]:
        return await self._run(self._reservations.find_by_customer, customer_id)

    async def get_upcoming(self, limit: int | None = None) -> list[Reservation]:
        return await self._run(self._reservations.find_upcoming, limit)

    async def find_available_tables(
        self,
        candidate_tables: Iterable[str],
        date_time: datetime,
        party_size: int = 1,
        duration: timedelta | None = None,
    ) -> list[str]:
        return await self._run(
            self._reservations.find_available_tables,
            candidate_tables,
            ensure_utc(date_time),
            duration,
            party_size,
        )
