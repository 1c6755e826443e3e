"""
Order Service - order lifecycle and sales reporting.

Publishes:
    order.created         on create_order
    order.updated         on item mutations
    order.paid            on a move to PAID
    order.cancelled       on cancellation
    order.completed       on a move to COMPLETED
    order.status.changed  on every other move
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from restaurant.domain.order import Order
from restaurant.domain.user import User
from restaurant.repositories.order import OrderFilters, OrderRepository
from restaurant.services.permissions import require_permission
from shared.config.constants import Actions, OrderStatus, OrderType, Resources
from shared.config.logging import order_logger
from shared.config.settings import settings
from shared.infrastructure.events import (
    ORDER_CANCELLED,
    ORDER_COMPLETED,
    ORDER_CREATED,
    ORDER_PAID,
    ORDER_STATUS_CHANGED,
    ORDER_UPDATED,
    EventPublisher,
)
from shared.infrastructure.events.payloads import (
    OrderCreatedData,
    OrderLineData,
    OrderStatusChangedData,
    OrderUpdatedData,
)
from shared.utils.clock import ensure_utc
from shared.utils.exceptions import ValidationError, parse_enum
from shared.utils.schemas import OrderItemInput, SalesSummary

from .base_service import BaseDomainService

# Event published for each target status; anything else is order.status.changed
_STATUS_EVENTS: dict[OrderStatus, str] = {
    OrderStatus.PAID: ORDER_PAID,
    OrderStatus.CANCELLED: ORDER_CANCELLED,
    OrderStatus.COMPLETED: ORDER_COMPLETED,
}


class OrderService(BaseDomainService):
    """Application service for the Order aggregate."""

    service_name = "order-service"

    def __init__(self, orders: OrderRepository, publisher: EventPublisher | None = None):
        super().__init__(publisher)
        self._orders = orders

    # =========================================================================
    # Creation
    # =========================================================================

    @require_permission(Resources.ORDER, Actions.CREATE)
    async def create_order(
        self,
        customer_id: str,
        order_type: OrderType | str,
        items: Iterable[OrderItemInput] = (),
        table_id: str | None = None,
        delivery_address: str | None = None,
        notes: str | None = None,
        *,
        actor: User | None = None,
    ) -> Order:
        """
        Create and persist a new order, then publish order.created.

        Raises:
            ValidationError: Bad customer, type or item fields.
            InvalidOrderTypeError: table_id on a non dine-in order, or an
                address on a non-delivery order.
        """
        order = Order.create(customer_id, order_type)
        if table_id:
            order.set_table_id(table_id)
        if delivery_address:
            order.set_delivery_address(delivery_address)
        if notes:
            order.add_notes(notes)
        for line in items:
            order.add_item(
                line.menu_item_id,
                line.name,
                line.quantity,
                line.unit_price,
                line.modifications,
                line.notes,
            )

        await self._run(self._orders.create, order)
        order_logger.info(
            "Order created",
            order_id=order.id,
            customer_id=order.customer_id,
            order_type=order.type.value,
            item_count=len(order.items),
        )

        await self._publish(
            ORDER_CREATED,
            order.id,
            OrderCreatedData(
                order_id=order.id,
                customer_id=order.customer_id,
                table_id=order.table_id,
                order_type=order.type.value,
                total_amount=order.total_amount,
                status=order.status.value,
                items=[
                    OrderLineData(
                        menu_item_id=item.menu_item_id,
                        name=item.name,
                        quantity=item.quantity,
                        unit_price=item.unit_price,
                        modifications=item.modifications,
                        notes=item.notes,
                    )
                    for item in order.items
                ],
            ),
            customer_id=order.customer_id,
        )
        return order

    async def get_order(self, order_id: str) -> Order:
        return await self._run(self._orders.get_by_id, order_id)

    # =========================================================================
    # Items
    # =========================================================================

    async def _publish_updated(self, order: Order) -> None:
        await self._publish(
            ORDER_UPDATED,
            order.id,
            OrderUpdatedData(
                order_id=order.id,
                item_count=len(order.items),
                total_amount=order.total_amount,
            ),
            customer_id=order.customer_id,
        )

    @require_permission(Resources.ORDER, Actions.UPDATE)
    async def add_item(self, order_id: str, item: OrderItemInput, *, actor: User | None = None) -> Order:
        order = await self._run(self._orders.get_by_id, order_id)
        order.add_item(
            item.menu_item_id,
            item.name,
            item.quantity,
            item.unit_price,
            item.modifications,
            item.notes,
        )
        await self._run(self._orders.update, order)
        await self._publish_updated(order)
        return order

    @require_permission(Resources.ORDER, Actions.UPDATE)
    async def remove_item(self, order_id: str, item_id: str, *, actor: User | None = None) -> Order:
        order = await self._run(self._orders.get_by_id, order_id)
        order.remove_item(item_id)
        await self._run(self._orders.update, order)
        await self._publish_updated(order)
        return order

    @require_permission(Resources.ORDER, Actions.UPDATE)
    async def update_item_quantity(
        self, order_id: str, item_id: str, quantity: int, *, actor: User | None = None
    ) -> Order:
        order = await self._run(self._orders.get_by_id, order_id)
        order.update_item_quantity(item_id, quantity)
        await self._run(self._orders.update, order)
        await self._publish_updated(order)
        return order

    # =========================================================================
    # Status
    # =========================================================================

    @require_permission(Resources.ORDER, Actions.UPDATE)
    async def update_status(
        self,
        order_id: str,
        status: OrderStatus | str,
        updated_by: str = "",
        *,
        actor: User | None = None,
    ) -> Order:
        """
        Move the order to status and publish the matching event.

        CANCELLED goes through Order.cancel so the not-cancellable rule
        applies.
        """
        status = parse_enum(OrderStatus, status, "status", op="OrderService.update_status")
        updated_by = updated_by or (actor.id if actor else "")
        order = await self._run(self._orders.get_by_id, order_id)

        if status is OrderStatus.CANCELLED:
            previous = order.cancel()
        else:
            previous = order.update_status(status)
        await self._run(self._orders.update, order)

        order_logger.info(
            "Order status changed",
            order_id=order.id,
            old_status=previous.value,
            new_status=order.status.value,
            updated_by=updated_by,
        )

        await self._publish(
            _STATUS_EVENTS.get(order.status, ORDER_STATUS_CHANGED),
            order.id,
            OrderStatusChangedData(
                order_id=order.id,
                old_status=previous.value,
                new_status=order.status.value,
                updated_by=updated_by,
            ),
            customer_id=order.customer_id,
        )
        return order

    async def pay_order(self, order_id: str, updated_by: str = "", *, actor: User | None = None) -> Order:
        return await self.update_status(order_id, OrderStatus.PAID, updated_by, actor=actor)

    async def cancel_order(self, order_id: str, updated_by: str = "", *, actor: User | None = None) -> Order:
        return await self.update_status(order_id, OrderStatus.CANCELLED, updated_by, actor=actor)

    # =========================================================================
    # Queries
    # =========================================================================

    async def list_orders(self, filters: OrderFilters | None = None) -> tuple[list[Order], int]:
        return await self._run(self._orders.list, filters)

    async def get_orders_by_customer(self, customer_id: str) -> list[Order]:
        return await self._run(self._orders.find_by_customer, customer_id)

    async def get_active_orders(self) -> list[Order]:
        return await self._run(self._orders.find_active)

    @require_permission(Resources.REPORT, Actions.VIEW)
    async def get_sales_summary(
        self, start: datetime, end: datetime, *, actor: User | None = None
    ) -> SalesSummary:
        """
        Revenue over [start, end]. Only paid-or-later orders count.

        The total is tax-inclusive; subtotal and tax are split back out at
        the configured rate.
        """
        start, end = ensure_utc(start), ensure_utc(end)
        if end < start:
            raise ValidationError(
                "end date must not be before start date", field="end", op="OrderService.get_sales_summary"
            )

        count, total = await self._run(self._orders.total_sales, start, end)
        subtotal = total / (1 + settings.order_tax_rate)
        return SalesSummary(
            start=start,
            end=end,
            order_count=count,
            subtotal=subtotal,
            tax=total - subtotal,
            total=total,
            average_order_value=total / count if count else 0.0,
        )
