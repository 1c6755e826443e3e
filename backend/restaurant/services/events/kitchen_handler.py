"""
Kitchen consumer: opens, starts and cancels tickets as orders move.

    order.created    → ticket created from the order lines (once per order)
    order.paid       → ticket PREPARING
    order.cancelled  → ticket cancelled
"""

from __future__ import annotations

from restaurant.services.domain.kitchen_service import KitchenService
from shared.config.constants import KitchenOrderStatus
from shared.config.logging import kitchen_logger
from shared.infrastructure.events import ORDER_CANCELLED, ORDER_CREATED, ORDER_PAID, DomainEvent
from shared.infrastructure.events.payloads import OrderCreatedData, OrderStatusChangedData
from shared.infrastructure.events.publisher import EventHandler
from shared.utils.exceptions import NotFoundError
from shared.utils.schemas import KitchenItemInput

from .base import BaseEventConsumer

ORDER_UPDATER = "order-service"


class KitchenEventHandler(BaseEventConsumer):
    name = "kitchen-consumer"

    def __init__(self, kitchen: KitchenService):
        self._kitchen = kitchen

    def subscriptions(self) -> dict[str, EventHandler]:
        return {
            ORDER_CREATED: self.on_order_created,
            ORDER_PAID: self.on_order_paid,
            ORDER_CANCELLED: self.on_order_cancelled,
        }

    async def on_order_created(self, event: DomainEvent) -> None:
        with self._handling(event):
            data = self._decode(event, OrderCreatedData)
            try:
                existing = await self._kitchen.get_by_order_id(data.order_id)
            except NotFoundError:
                existing = None
            if existing is not None:
                kitchen_logger.debug("Kitchen order already exists", order_id=data.order_id)
                return

            items = [
                KitchenItemInput(
                    menu_item_id=line.menu_item_id,
                    name=line.name,
                    quantity=line.quantity,
                    modifications=line.modifications,
                    notes=line.notes,
                )
                for line in data.items
            ]
            await self._kitchen.create_kitchen_order(data.order_id, data.table_id, items)

    async def on_order_paid(self, event: DomainEvent) -> None:
        with self._handling(event):
            data = self._decode(event, OrderStatusChangedData)
            ko = await self._kitchen.get_by_order_id(data.order_id)
            if ko.status is KitchenOrderStatus.PREPARING:
                return
            await self._kitchen.update_order_status(ko.id, KitchenOrderStatus.PREPARING, ORDER_UPDATER)

    async def on_order_cancelled(self, event: DomainEvent) -> None:
        with self._handling(event):
            data = self._decode(event, OrderStatusChangedData)
            ko = await self._kitchen.get_by_order_id(data.order_id)
            if ko.status is KitchenOrderStatus.CANCELLED:
                return
            await self._kitchen.cancel_kitchen_order(ko.id, ORDER_UPDATER)
