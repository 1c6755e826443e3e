"""
Order consumer: keeps orders in step with their kitchen tickets.

    kitchen PREPARING            → order PREPARING
    kitchen READY / COMPLETED    → order READY (through PREPARING when still PAID)
    kitchen CANCELLED            → order cancelled
"""

from __future__ import annotations

from restaurant.services.domain.order_service import OrderService
from shared.config.constants import KitchenOrderStatus, OrderStatus
from shared.config.logging import order_logger
from shared.infrastructure.events import (
    KITCHEN_ORDER_COMPLETED,
    KITCHEN_ORDER_STATUS_CHANGED,
    DomainEvent,
)
from shared.infrastructure.events.payloads import KitchenOrderStatusChangedData
from shared.infrastructure.events.publisher import EventHandler

from .base import BaseEventConsumer

KITCHEN_UPDATER = "kitchen-service"

_TARGET_BY_KITCHEN_STATUS: dict[str, OrderStatus] = {
    KitchenOrderStatus.PREPARING.value: OrderStatus.PREPARING,
    KitchenOrderStatus.READY.value: OrderStatus.READY,
    KitchenOrderStatus.COMPLETED.value: OrderStatus.READY,
    KitchenOrderStatus.CANCELLED.value: OrderStatus.CANCELLED,
}


class OrderEventHandler(BaseEventConsumer):
    name = "order-consumer"

    def __init__(self, orders: OrderService):
        self._orders = orders

    def subscriptions(self) -> dict[str, EventHandler]:
        return {
            KITCHEN_ORDER_STATUS_CHANGED: self.on_kitchen_status_changed,
            KITCHEN_ORDER_COMPLETED: self.on_kitchen_completed,
        }

    async def on_kitchen_status_changed(self, event: DomainEvent) -> None:
        with self._handling(event):
            data = self._decode(event, KitchenOrderStatusChangedData)
            target = _TARGET_BY_KITCHEN_STATUS.get(data.new_status)
            if target is None:
                return
            await self._move_order(data.order_id, target)

    async def on_kitchen_completed(self, event: DomainEvent) -> None:
        with self._handling(event):
            data = self._decode(event, KitchenOrderStatusChangedData)
            await self._move_order(data.order_id, OrderStatus.READY)

    async def _move_order(self, order_id: str, target: OrderStatus) -> None:
        order = await self._orders.get_order(order_id)
        if order.status is target:
            return

        if target is OrderStatus.CANCELLED:
            await self._orders.cancel_order(order_id, KITCHEN_UPDATER)
            order_logger.info("Order cancelled by kitchen", order_id=order_id)
            return

        # READY is only reachable from PREPARING
        if target is OrderStatus.READY and order.status is OrderStatus.PAID:
            await self._orders.update_status(order_id, OrderStatus.PREPARING, KITCHEN_UPDATER)

        await self._orders.update_status(order_id, target, KITCHEN_UPDATER)
        order_logger.info("Order advanced by kitchen", order_id=order_id, status=target.value)
