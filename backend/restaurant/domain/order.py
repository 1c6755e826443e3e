"""
Order aggregate.

State machine:
    CREATED → PAID → PREPARING → READY → COMPLETED
    CANCELLED is reachable from every non-terminal state.

Pricing is recalculated after every item mutation:
    subtotal = sum(item.subtotal)
    tax      = subtotal * tax_rate
    total    = subtotal + tax
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from shared.config.constants import OrderStatus, OrderType, validate_order_transition
from shared.config.settings import settings
from shared.utils.clock import utcnow
from shared.utils.exceptions import (
    InvalidOrderTypeError,
    InvalidTransitionError,
    ItemNotFoundError,
    OrderNotCancellableError,
    ValidationError,
    parse_enum,
)
from shared.utils.ids import OrderID, OrderItemID, new_order_id, new_order_item_id


@dataclass
class OrderItem:
    """A priced line of an order. subtotal is derived."""

    id: OrderItemID
    menu_item_id: str
    name: str
    quantity: int
    unit_price: float
    modifications: list[str] = field(default_factory=list)
    notes: str = ""

    @property
    def subtotal(self) -> float:
        return self.quantity * self.unit_price


@dataclass
class Order:
    """Order aggregate root. Mutate only through its methods."""

    id: OrderID
    customer_id: str
    type: OrderType
    status: OrderStatus = OrderStatus.CREATED
    items: list[OrderItem] = field(default_factory=list)
    total_amount: float = 0.0
    tax_amount: float = 0.0
    table_id: str = ""
    delivery_address: str = ""
    notes: str = ""
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    # Maintained by repositories for optimistic concurrency
    row_version: int = 0

    @classmethod
    def create(cls, customer_id: str, order_type: OrderType | str) -> "Order":
        """
        Start a new order in CREATED.

        Raises:
            ValidationError: If customer_id is empty or the type is unknown.
        """
        if not customer_id:
            raise ValidationError("customer ID is required", field="customer_id", op="Order.create")
        try:
            order_type = OrderType(order_type)
        except ValueError:
            raise ValidationError(
                f"invalid order type: {order_type}", field="order_type", op="Order.create"
            ) from None

        now = utcnow()
        return cls(
            id=new_order_id(),
            customer_id=customer_id,
            type=order_type,
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
        unit_price: float,
        modifications: list[str] | None = None,
        notes: str = "",
    ) -> OrderItem:
        """Append a line and reprice. Returns the new item."""
        if not menu_item_id:
            raise ValidationError("menu item ID is required", field="menu_item_id", op="Order.add_item")
        if quantity <= 0:
            raise ValidationError("quantity must be positive", field="quantity", op="Order.add_item")
        if unit_price < 0:
            raise ValidationError("unit price cannot be negative", field="unit_price", op="Order.add_item")

        item = OrderItem(
            id=new_order_item_id(),
            menu_item_id=menu_item_id,
            name=name,
            quantity=quantity,
            unit_price=unit_price,
            modifications=list(modifications or []),
            notes=notes,
        )
        self.items.append(item)
        self._recalculate_total()
        self._touch()
        return item

    def remove_item(self, item_id: str) -> None:
        """
        Raises:
            ItemNotFoundError: If no line has this id.
        """
        item = self.get_item(item_id)
        self.items.remove(item)
        self._recalculate_total()
        self._touch()

    def update_item_quantity(self, item_id: str, quantity: int) -> None:
        """Change a line's quantity. A non-positive quantity leaves the item unchanged."""
        if quantity <= 0:
            raise ValidationError(
                "quantity must be positive", field="quantity", op="Order.update_item_quantity"
            )
        item = self.get_item(item_id)
        item.quantity = quantity
        self._recalculate_total()
        self._touch()

    def get_item(self, item_id: str) -> OrderItem:
        for item in self.items:
            if item.id == item_id:
                return item
        raise ItemNotFoundError("Order item", item_id, order_id=self.id)

    @property
    def subtotal(self) -> float:
        return sum(item.subtotal for item in self.items)

    def is_empty(self) -> bool:
        return not self.items

    def _recalculate_total(self) -> None:
        subtotal = self.subtotal
        self.tax_amount = subtotal * settings.order_tax_rate
        self.total_amount = subtotal + self.tax_amount

    # =========================================================================
    # Type-specific fields
    # =========================================================================

    def set_table_id(self, table_id: str) -> None:
        if self.type is not OrderType.DINE_IN:
            raise InvalidOrderTypeError(
                "table ID can only be set for dine-in orders", self.type, op="Order.set_table_id"
            )
        if not table_id:
            raise ValidationError(
                "table ID is required for dine-in orders", field="table_id", op="Order.set_table_id"
            )
        self.table_id = table_id
        self._touch()

    def set_delivery_address(self, address: str) -> None:
        if self.type is not OrderType.DELIVERY:
            raise InvalidOrderTypeError(
                "delivery address can only be set for delivery orders",
                self.type,
                op="Order.set_delivery_address",
            )
        if not address:
            raise ValidationError(
                "delivery address is required for delivery orders",
                field="delivery_address",
                op="Order.set_delivery_address",
            )
        self.delivery_address = address
        self._touch()

    def add_notes(self, notes: str) -> None:
        self.notes = notes
        self._touch()

    # =========================================================================
    # Status
    # =========================================================================

    def update_status(self, new_status: OrderStatus | str) -> OrderStatus:
        """
        Move to new_status. Returns the previous status.

        Entering PAID runs validate() first.

        Raises:
            InvalidTransitionError: If the move is outside the state machine.
            ValidationError: If the order is incomplete when being paid.
        """
        new_status = parse_enum(OrderStatus, new_status, "status", op="Order.update_status")
        if not validate_order_transition(self.status, new_status):
            raise InvalidTransitionError(
                "Order", self.status, new_status, op="Order.update_status", order_id=self.id
            )
        if new_status is OrderStatus.PAID:
            self.validate()

        previous = self.status
        self.status = new_status
        self._touch()
        return previous

    def can_cancel(self) -> bool:
        return self.status not in (OrderStatus.COMPLETED, OrderStatus.CANCELLED)

    def cancel(self) -> OrderStatus:
        """
        Cancel the order. Returns the previous status.

        Raises:
            OrderNotCancellableError: If already COMPLETED or CANCELLED.
        """
        if not self.can_cancel():
            raise OrderNotCancellableError(self.id, self.status, op="Order.cancel")
        previous = self.status
        self.status = OrderStatus.CANCELLED
        self._touch()
        return previous

    def validate(self) -> None:
        """
        Check the order is complete enough to be paid.

        Raises:
            ValidationError: Naming the first missing field.
        """
        if not self.customer_id:
            raise ValidationError("customer ID is required", field="customer_id", op="Order.validate")
        if not self.items:
            raise ValidationError("order must have at least one item", field="items", op="Order.validate")
        if self.type is OrderType.DINE_IN and not self.table_id:
            raise ValidationError(
                "table ID is required for dine-in orders", field="table_id", op="Order.validate"
            )
        if self.type is OrderType.DELIVERY and not self.delivery_address:
            raise ValidationError(
                "delivery address is required for delivery orders",
                field="delivery_address",
                op="Order.validate",
            )

    def is_active(self) -> bool:
        return self.can_cancel()

    def _touch(self) -> None:
        self.updated_at = utcnow()
