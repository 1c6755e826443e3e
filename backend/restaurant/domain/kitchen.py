"""
KitchenOrder aggregate (preparation ticket).

Ticket states: NEW → PREPARING → READY → COMPLETED, CANCELLED from any
non-terminal state. Line states: NEW → PREPARING → READY, CANCELLED from
NEW or PREPARING.

The ticket status follows its lines automatically (see _rollup_status):
every line change may move the ticket, never out of COMPLETED/CANCELLED.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from shared.config.constants import (
    KitchenItemStatus,
    KitchenOrderStatus,
    KitchenPriority,
    validate_kitchen_item_transition,
    validate_kitchen_order_transition,
)
from shared.utils.clock import utcnow
from shared.utils.exceptions import (
    BusinessRuleError,
    ErrorCode,
    InvalidTransitionError,
    ItemNotFoundError,
    ValidationError,
    parse_enum,
)
from shared.utils.ids import (
    KitchenItemID,
    KitchenOrderID,
    new_kitchen_item_id,
    new_kitchen_order_id,
)

ZERO = timedelta(0)

# Lines in these states no longer count towards the estimate
_FINISHED_ITEM_STATUSES = frozenset({KitchenItemStatus.READY, KitchenItemStatus.CANCELLED})
_NO_TIME_REMAINING = frozenset({
    KitchenOrderStatus.READY,
    KitchenOrderStatus.COMPLETED,
    KitchenOrderStatus.CANCELLED,
})


@dataclass
class KitchenItem:
    """A line on the ticket."""

    id: KitchenItemID
    menu_item_id: str
    name: str
    quantity: int
    status: KitchenItemStatus = KitchenItemStatus.NEW
    prep_time: timedelta = ZERO
    started_at: datetime | None = None
    completed_at: datetime | None = None
    assigned_station: str = ""
    notes: str = ""
    modifications: list[str] = field(default_factory=list)


@dataclass
class KitchenOrder:
    """Kitchen ticket for one order."""

    id: KitchenOrderID
    order_id: str
    table_id: str = ""
    status: KitchenOrderStatus = KitchenOrderStatus.NEW
    items: list[KitchenItem] = field(default_factory=list)
    priority: KitchenPriority = KitchenPriority.NORMAL
    assigned_station: str = ""
    estimated_time: timedelta = ZERO
    started_at: datetime | None = None
    completed_at: datetime | None = None
    notes: str = ""
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    # Maintained by repositories for optimistic concurrency
    row_version: int = 0

    @classmethod
    def create(cls, order_id: str, table_id: str = "") -> "KitchenOrder":
        if not order_id:
            raise ValidationError("order ID is required", field="order_id", op="KitchenOrder.create")
        now = utcnow()
        return cls(
            id=new_kitchen_order_id(),
            order_id=order_id,
            table_id=table_id or "",
            created_at=now,
            updated_at=now,
        )

    # =========================================================================
    # Items
    # =========================================================================

    def add_item(
        self,
        menu_item_id: str,
        name: str,
        quantity: int,
        prep_time: timedelta,
        modifications: list[str] | None = None,
        notes: str = "",
    ) -> KitchenItem:
        if not menu_item_id:
            raise ValidationError(
                "menu item ID is required", field="menu_item_id", op="KitchenOrder.add_item"
            )
        if quantity <= 0:
            raise ValidationError("quantity must be positive", field="quantity", op="KitchenOrder.add_item")
        if prep_time < ZERO:
            raise ValidationError(
                "prep time cannot be negative", field="prep_time", op="KitchenOrder.add_item"
            )

        item = KitchenItem(
            id=new_kitchen_item_id(),
            menu_item_id=menu_item_id,
            name=name,
            quantity=quantity,
            prep_time=prep_time,
            modifications=list(modifications or []),
            notes=notes,
        )
        self.items.append(item)
        self._recalculate_estimated_time()
        self._touch()
        return item

    def remove_item(self, item_id: str) -> None:
        item = self.get_item(item_id)
        self.items.remove(item)
        self._recalculate_estimated_time()
        self._touch()

    def get_item(self, item_id: str) -> KitchenItem:
        for item in self.items:
            if item.id == item_id:
                return item
        raise ItemNotFoundError("Kitchen item", item_id, kitchen_order_id=self.id)

    def update_item_status(
        self, item_id: str, new_status: KitchenItemStatus | str
    ) -> KitchenItemStatus:
        """
        Move a line to new_status, then roll the ticket status up.

        Returns:
            The line's previous status.
        """
        new_status = parse_enum(
            KitchenItemStatus, new_status, "status", op="KitchenOrder.update_item_status"
        )
        item = self.get_item(item_id)

        if not validate_kitchen_item_transition(item.status, new_status):
            raise InvalidTransitionError(
                "Kitchen item",
                item.status,
                new_status,
                op="KitchenOrder.update_item_status",
                item_id=item_id,
            )

        now = utcnow()
        if new_status is KitchenItemStatus.PREPARING:
            item.started_at = now
        elif new_status is KitchenItemStatus.READY:
            item.completed_at = now

        previous = item.status
        item.status = new_status

        self._rollup_status()
        self._recalculate_estimated_time()
        self._touch()
        return previous

    def _rollup_status(self) -> None:
        """
        Derive the ticket status from its lines.

        All cancelled wins over all ready-or-cancelled, which wins over any
        preparing. No rule matching leaves the status as it is.
        """
        if self.status in (KitchenOrderStatus.COMPLETED, KitchenOrderStatus.CANCELLED):
            return
        if not self.items:
            return

        statuses = [item.status for item in self.items]
        all_cancelled = all(s is KitchenItemStatus.CANCELLED for s in statuses)
        all_ready_or_cancelled = all(s in _FINISHED_ITEM_STATUSES for s in statuses)
        any_ready = any(s is KitchenItemStatus.READY for s in statuses)
        any_preparing = any(s is KitchenItemStatus.PREPARING for s in statuses)

        if all_cancelled:
            self.status = KitchenOrderStatus.CANCELLED
        elif all_ready_or_cancelled and any_ready:
            self.status = KitchenOrderStatus.READY
        elif any_preparing:
            self.status = KitchenOrderStatus.PREPARING

        if self.status is KitchenOrderStatus.PREPARING and self.started_at is None:
            self.started_at = utcnow()

    def _recalculate_estimated_time(self) -> None:
        self.estimated_time = max(
            (item.prep_time for item in self.items if item.status not in _FINISHED_ITEM_STATUSES),
            default=ZERO,
        )

    # =========================================================================
    # Ticket
    # =========================================================================

    def assign_to_station(self, station_id: str) -> None:
        if not station_id:
            raise ValidationError(
                "station ID is required", field="station_id", op="KitchenOrder.assign_to_station"
            )
        self.assigned_station = station_id
        self._touch()

    def update_status(self, new_status: KitchenOrderStatus | str) -> KitchenOrderStatus:
        """
        Move the ticket to new_status. Returns the previous status.

        Raises:
            InvalidTransitionError: If the move is outside the state machine.
        """
        new_status = parse_enum(KitchenOrderStatus, new_status, "status", op="KitchenOrder.update_status")
        if not validate_kitchen_order_transition(self.status, new_status):
            raise InvalidTransitionError(
                "Kitchen order",
                self.status,
                new_status,
                op="KitchenOrder.update_status",
                kitchen_order_id=self.id,
            )

        now = utcnow()
        if new_status is KitchenOrderStatus.PREPARING and self.started_at is None:
            self.started_at = now
        elif new_status is KitchenOrderStatus.COMPLETED:
            self.completed_at = now

        previous = self.status
        self.status = new_status
        self._touch()
        return previous

    def set_priority(self, priority: KitchenPriority | str) -> None:
        self.priority = parse_enum(KitchenPriority, priority, "priority", op="KitchenOrder.set_priority")
        self._touch()

    def add_notes(self, notes: str) -> None:
        self.notes = notes
        self._touch()

    def cancel(self) -> KitchenOrderStatus:
        """
        Cancel the ticket. Lines already READY keep their state; every other
        line becomes CANCELLED. Returns the previous status.
        """
        if self.status is KitchenOrderStatus.COMPLETED:
            raise BusinessRuleError(
                ErrorCode.INVALID_STATUS_TRANSITION,
                "cannot cancel a completed order",
                op="KitchenOrder.cancel",
                kitchen_order_id=self.id,
            )
        if self.status is KitchenOrderStatus.CANCELLED:
            raise InvalidTransitionError(
                "Kitchen order",
                self.status,
                KitchenOrderStatus.CANCELLED,
                op="KitchenOrder.cancel",
                kitchen_order_id=self.id,
            )

        previous = self.status
        self.status = KitchenOrderStatus.CANCELLED
        for item in self.items:
            if item.status is not KitchenItemStatus.READY:
                item.status = KitchenItemStatus.CANCELLED
        self._recalculate_estimated_time()
        self._touch()
        return previous

    def is_complete(self) -> bool:
        return self.status is KitchenOrderStatus.COMPLETED

    def is_ready(self) -> bool:
        return self.status is KitchenOrderStatus.READY

    def is_cancelled(self) -> bool:
        return self.status is KitchenOrderStatus.CANCELLED

    def time_elapsed(self) -> timedelta:
        if self.started_at is None:
            return ZERO
        if self.completed_at is not None:
            return self.completed_at - self.started_at
        return utcnow() - self.started_at

    def time_remaining(self) -> timedelta:
        if self.status in _NO_TIME_REMAINING:
            return ZERO
        return max(ZERO, self.estimated_time - self.time_elapsed())

    def validate(self) -> None:
        if not self.order_id:
            raise ValidationError("order ID is required", field="order_id", op="KitchenOrder.validate")
        if not self.items:
            raise ValidationError(
                "kitchen order must have at least one item", field="items", op="KitchenOrder.validate"
            )

    def _touch(self) -> None:
        self.updated_at = utcnow()
