"""
Reservation aggregate.

    PENDING → CONFIRMED → COMPLETED
    NO_SHOW and CANCELLED are reachable from PENDING and CONFIRMED.

Availability is a policy, not geometry: a reservation occupies its table
for a fixed window starting at date_time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from shared.config.constants import (
    NON_BLOCKING_RESERVATION_STATUSES,
    ReservationStatus,
    validate_reservation_transition,
)
from shared.config.settings import settings
from shared.utils.clock import ensure_utc, utcnow
from shared.utils.exceptions import InvalidTransitionError, ValidationError
from shared.utils.ids import ReservationID, new_reservation_id

# Messages for moves the state machine rejects, keyed by (from, to)
_TRANSITION_MESSAGES: dict[tuple[ReservationStatus, ReservationStatus], str] = {
    (ReservationStatus.CANCELLED, ReservationStatus.CONFIRMED): "cannot confirm a cancelled reservation",
    (ReservationStatus.COMPLETED, ReservationStatus.CANCELLED): "cannot cancel a completed reservation",
}


def default_occupancy() -> timedelta:
    return timedelta(minutes=settings.reservation_default_duration_minutes)


def windows_overlap(a_start: datetime, b_start: datetime, duration: timedelta) -> bool:
    """[a, a+d) and [b, b+d) overlap iff a < b+d and b < a+d."""
    return a_start < b_start + duration and b_start < a_start + duration


@dataclass
class Reservation:
    """A table booking."""

    id: ReservationID
    customer_id: str
    table_id: str
    date_time: datetime
    party_size: int
    status: ReservationStatus = ReservationStatus.PENDING
    notes: str = ""
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    # Maintained by repositories for optimistic concurrency
    row_version: int = 0

    @classmethod
    def create(
        cls,
        customer_id: str,
        table_id: str,
        date_time: datetime,
        party_size: int,
    ) -> "Reservation":
        if not customer_id:
            raise ValidationError("customer ID is required", field="customer_id", op="Reservation.create")
        if not table_id:
            raise ValidationError("table ID is required", field="table_id", op="Reservation.create")
        date_time = ensure_utc(date_time)
        if date_time <= utcnow():
            raise ValidationError(
                "reservation date must be in the future", field="date_time", op="Reservation.create"
            )
        if party_size <= 0:
            raise ValidationError("party size must be positive", field="party_size", op="Reservation.create")

        now = utcnow()
        return cls(
            id=new_reservation_id(),
            customer_id=customer_id,
            table_id=table_id,
            date_time=date_time,
            party_size=party_size,
            created_at=now,
            updated_at=now,
        )

    # =========================================================================
    # Status
    # =========================================================================

    def _transition(self, new_status: ReservationStatus, op: str, detail: str | None = None) -> ReservationStatus:
        if not validate_reservation_transition(self.status, new_status):
            raise InvalidTransitionError(
                "Reservation",
                self.status,
                new_status,
                detail=detail or _TRANSITION_MESSAGES.get((self.status, new_status)),
                op=op,
                reservation_id=self.id,
            )
        previous = self.status
        self.status = new_status
        self._touch()
        return previous

    def confirm(self) -> ReservationStatus:
        return self._transition(ReservationStatus.CONFIRMED, "Reservation.confirm")

    def cancel(self) -> ReservationStatus:
        return self._transition(ReservationStatus.CANCELLED, "Reservation.cancel")

    def complete(self) -> ReservationStatus:
        detail = None
        if self.status is not ReservationStatus.CONFIRMED:
            detail = "only confirmed reservations can be completed"
        return self._transition(ReservationStatus.COMPLETED, "Reservation.complete", detail)

    def mark_no_show(self) -> ReservationStatus:
        detail = None
        if self.status not in (ReservationStatus.PENDING, ReservationStatus.CONFIRMED):
            detail = "only confirmed or pending reservations can be marked as no show"
        return self._transition(ReservationStatus.NO_SHOW, "Reservation.mark_no_show", detail)

    # =========================================================================
    # Details
    # =========================================================================

    def update_party_size(self, size: int) -> None:
        if size <= 0:
            raise ValidationError(
                "party size must be positive", field="party_size", op="Reservation.update_party_size"
            )
        self.party_size = size
        self._touch()

    def update_table(self, table_id: str) -> None:
        if not table_id:
            raise ValidationError("table ID is required", field="table_id", op="Reservation.update_table")
        self.table_id = table_id
        self._touch()

    def update_date_time(self, date_time: datetime) -> None:
        date_time = ensure_utc(date_time)
        if date_time <= utcnow():
            raise ValidationError(
                "reservation date must be in the future",
                field="date_time",
                op="Reservation.update_date_time",
            )
        self.date_time = date_time
        self._touch()

    def add_notes(self, notes: str) -> None:
        self.notes = notes
        self._touch()

    # =========================================================================
    # Occupancy
    # =========================================================================

    def is_active(self) -> bool:
        """True while the reservation still blocks its table."""
        return self.status not in NON_BLOCKING_RESERVATION_STATUSES

    def occupancy_window(self, duration: timedelta | None = None) -> tuple[datetime, datetime]:
        duration = duration or default_occupancy()
        return self.date_time, self.date_time + duration

    def overlaps(self, start: datetime, duration: timedelta | None = None) -> bool:
        """True if this reservation blocks its table for a booking at start."""
        if not self.is_active():
            return False
        return windows_overlap(self.date_time, ensure_utc(start), duration or default_occupancy())

    def _touch(self) -> None:
        self.updated_at = utcnow()
