"""
Kitchen Service - kitchen tickets and their lines.

A ticket's status is driven two ways: explicitly through
update_order_status, and implicitly when a line status change rolls up
into the ticket. Both publish kitchen.order.status.changed.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import timedelta

from restaurant.domain.kitchen import KitchenOrder
from restaurant.domain.user import User
from restaurant.repositories.kitchen import KitchenOrderFilters, KitchenOrderRepository
from restaurant.services.permissions import require_permission
from shared.config.constants import (
    Actions,
    KitchenItemStatus,
    KitchenOrderStatus,
    KitchenPriority,
    Resources,
)
from shared.config.logging import kitchen_logger
from shared.infrastructure.events import (
    KITCHEN_ITEM_STATUS_CHANGED,
    KITCHEN_ORDER_CANCELLED,
    KITCHEN_ORDER_COMPLETED,
    KITCHEN_ORDER_CREATED,
    KITCHEN_ORDER_STATUS_CHANGED,
    EventPublisher,
)
from shared.infrastructure.events.payloads import (
    KitchenItemStatusChangedData,
    KitchenOrderCreatedData,
    KitchenOrderStatusChangedData,
)
from shared.utils.exceptions import parse_enum
from shared.utils.schemas import KitchenItemInput

from .base_service import BaseDomainService


class KitchenService(BaseDomainService):
    """Application service for the KitchenOrder aggregate."""

    service_name = "kitchen-service"

    def __init__(self, kitchen_orders: KitchenOrderRepository, publisher: EventPublisher | None = None):
        super().__init__(publisher)
        self._kitchen_orders = kitchen_orders

    async def _publish_status_changed(
        self,
        ko: KitchenOrder,
        previous: KitchenOrderStatus,
        updated_by: str = "",
        event_type: str = KITCHEN_ORDER_STATUS_CHANGED,
    ) -> None:
        await self._publish(
            event_type,
            ko.id,
            KitchenOrderStatusChangedData(
                kitchen_order_id=ko.id,
                order_id=ko.order_id,
                old_status=previous.value,
                new_status=ko.status.value,
                updated_by=updated_by,
            ),
            order_id=ko.order_id,
        )

    # =========================================================================
    # Tickets
    # =========================================================================

    @require_permission(Resources.KITCHEN, Actions.CREATE)
    async def create_kitchen_order(
        self,
        order_id: str,
        table_id: str = "",
        items: Iterable[KitchenItemInput] = (),
        priority: KitchenPriority | str = KitchenPriority.NORMAL,
        *,
        actor: User | None = None,
    ) -> KitchenOrder:
        ko = KitchenOrder.create(order_id, table_id)
        for line in items:
            ko.add_item(
                line.menu_item_id,
                line.name,
                line.quantity,
                timedelta(seconds=line.prep_time),
                line.modifications,
                line.notes,
            )
        ko.set_priority(priority)

        await self._run(self._kitchen_orders.create, ko)
        kitchen_logger.info(
            "Kitchen order created",
            kitchen_order_id=ko.id,
            order_id=ko.order_id,
            item_count=len(ko.items),
            priority=ko.priority.value,
        )

        await self._publish(
            KITCHEN_ORDER_CREATED,
            ko.id,
            KitchenOrderCreatedData(
                kitchen_order_id=ko.id,
                order_id=ko.order_id,
                table_id=ko.table_id,
                status=ko.status.value,
                priority=ko.priority.value,
                estimated_time=int(ko.estimated_time.total_seconds()),
            ),
            order_id=ko.order_id,
        )
        return ko

    @require_permission(Resources.KITCHEN, Actions.UPDATE)
    async def add_item(
        self, kitchen_order_id: str, item: KitchenItemInput, *, actor: User | None = None
    ) -> KitchenOrder:
        ko = await self._run(self._kitchen_orders.get_by_id, kitchen_order_id)
        ko.add_item(
            item.menu_item_id,
            item.name,
            item.quantity,
            timedelta(seconds=item.prep_time),
            item.modifications,
            item.notes,
        )
        await self._run(self._kitchen_orders.update, ko)
        return ko

    @require_permission(Resources.KITCHEN, Actions.UPDATE)
    async def update_item_status(
        self,
        kitchen_order_id: str,
        item_id: str,
        status: KitchenItemStatus | str,
        updated_by: str = "",
        *,
        actor: User | None = None,
    ) -> KitchenOrder:
        """
        Move one line and publish kitchen.item.status.changed. If the line
        change moved the ticket, kitchen.order.status.changed follows.
        """
        updated_by = updated_by or (actor.id if actor else "")
        ko = await self._run(self._kitchen_orders.get_by_id, kitchen_order_id)
        ticket_before = ko.status
        previous = ko.update_item_status(item_id, status)
        await self._run(self._kitchen_orders.update, ko)

        item = ko.get_item(item_id)
        kitchen_logger.info(
            "Kitchen item status changed",
            kitchen_order_id=ko.id,
            item_id=item.id,
            old_status=previous.value,
            new_status=item.status.value,
        )

        await self._publish(
            KITCHEN_ITEM_STATUS_CHANGED,
            ko.id,
            KitchenItemStatusChangedData(
                kitchen_order_id=ko.id,
                item_id=item.id,
                menu_item_id=item.menu_item_id,
                item_name=item.name,
                old_status=previous.value,
                new_status=item.status.value,
                updated_by=updated_by,
            ),
            order_id=ko.order_id,
        )
        if ko.status is not ticket_before:
            await self._publish_status_changed(ko, ticket_before, updated_by)
        return ko

    @require_permission(Resources.KITCHEN, Actions.UPDATE)
    async def update_order_status(
        self,
        kitchen_order_id: str,
        status: KitchenOrderStatus | str,
        updated_by: str = "",
        *,
        actor: User | None = None,
    ) -> KitchenOrder:
        """
        Move the ticket to status and publish kitchen.order.status.changed.

        CANCELLED goes through cancel_kitchen_order so the open lines are
        cancelled with the ticket.
        """
        status = parse_enum(KitchenOrderStatus, status, "status", op="KitchenService.update_order_status")
        if status is KitchenOrderStatus.CANCELLED:
            return await self.cancel_kitchen_order(kitchen_order_id, updated_by, actor=actor)

        updated_by = updated_by or (actor.id if actor else "")
        ko = await self._run(self._kitchen_orders.get_by_id, kitchen_order_id)
        previous = ko.update_status(status)
        await self._run(self._kitchen_orders.update, ko)

        kitchen_logger.info(
            "Kitchen order status changed",
            kitchen_order_id=ko.id,
            order_id=ko.order_id,
            old_status=previous.value,
            new_status=ko.status.value,
        )

        await self._publish_status_changed(ko, previous, updated_by)
        if ko.status is KitchenOrderStatus.COMPLETED:
            await self._publish_status_changed(ko, previous, updated_by, KITCHEN_ORDER_COMPLETED)
        return ko

    async def complete_kitchen_order(
        self, kitchen_order_id: str, updated_by: str = "", *, actor: User | None = None
    ) -> KitchenOrder:
        return await self.update_order_status(
            kitchen_order_id, KitchenOrderStatus.COMPLETED, updated_by, actor=actor
        )

    @require_permission(Resources.KITCHEN, Actions.UPDATE)
    async def cancel_kitchen_order(
        self, kitchen_order_id: str, updated_by: str = "", *, actor: User | None = None
    ) -> KitchenOrder:
        updated_by = updated_by or (actor.id if actor else "")
        ko = await self._run(self._kitchen_orders.get_by_id, kitchen_order_id)
        previous = ko.cancel()
        await self._run(self._kitchen_orders.update, ko)

        kitchen_logger.info(
            "Kitchen order cancelled",
            kitchen_order_id=ko.id,
            order_id=ko.order_id,
            old_status=previous.value,
        )

        await self._publish_status_changed(ko, previous, updated_by)
        await self._publish_status_changed(ko, previous, updated_by, KITCHEN_ORDER_CANCELLED)
        return ko

    @require_permission(Resources.KITCHEN, Actions.UPDATE)
    async def assign_to_station(
        self, kitchen_order_id: str, station_id: str, *, actor: User | None = None
    ) -> KitchenOrder:
        ko = await self._run(self._kitchen_orders.get_by_id, kitchen_order_id)
        ko.assign_to_station(station_id)
        await self._run(self._kitchen_orders.update, ko)
        kitchen_logger.info("Kitchen order assigned", kitchen_order_id=ko.id, station=station_id)
        return ko

    @require_permission(Resources.KITCHEN, Actions.UPDATE)
    async def set_priority(
        self, kitchen_order_id: str, priority: KitchenPriority | str, *, actor: User | None = None
    ) -> KitchenOrder:
        ko = await self._run(self._kitchen_orders.get_by_id, kitchen_order_id)
        ko.set_priority(priority)
        await self._run(self._kitchen_orders.update, ko)
        return ko

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_kitchen_order(self, kitchen_order_id: str) -> KitchenOrder:
        return await self._run(self._kitchen_orders.get_by_id, kitchen_order_id)

    async def get_by_order_id(self, order_id: str) -> KitchenOrder:
        return await self._run(self._kitchen_orders.get_by_order_id, order_id)

    async def get_active(self) -> list[KitchenOrder]:
        return await self._run(self._kitchen_orders.find_active)

    async def get_by_status(self, status: KitchenOrderStatus | str) -> list[KitchenOrder]:
        status = parse_enum(KitchenOrderStatus, status, "status", op="KitchenService.get_by_status")
        return await self._run(self._kitchen_orders.find_by_status, status)

    async def get_by_station(self, station_id: str) -> list[KitchenOrder]:
        return await self._run(self._kitchen_orders.find_by_station, station_id)

    async def list(self, filters: KitchenOrderFilters | None = None) -> list[KitchenOrder]:
        return await self._run(self._kitchen_orders.list, filters)
