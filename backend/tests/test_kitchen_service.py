"""
Tests for KitchenService.

Tests verify:
- Ticket creation and kitchen.order.created
- Line changes publish item events, and ticket events when the rollup moves
- Explicit completion and cancellation events
"""

from datetime import timedelta

import pytest

from shared.config.constants import KitchenItemStatus, KitchenOrderStatus, Roles
from shared.infrastructure.events import (
    KITCHEN_ITEM_STATUS_CHANGED,
    KITCHEN_ORDER_CANCELLED,
    KITCHEN_ORDER_COMPLETED,
    KITCHEN_ORDER_CREATED,
    KITCHEN_ORDER_STATUS_CHANGED,
)
from shared.utils.exceptions import (
    BusinessRuleError,
    DuplicateEntityError,
    ForbiddenError,
    InvalidTransitionError,
    ValidationError,
)
from shared.utils.schemas import KitchenItemInput

LINES = [
    KitchenItemInput(menu_item_id="m1", name="Soup", prep_time=600),
    KitchenItemInput(menu_item_id="m2", name="Steak", quantity=2, prep_time=1200),
]


async def _ticket(kitchen_service, order_id="ord_1"):
    return await kitchen_service.create_kitchen_order(order_id, "t4", LINES, priority="HIGH")


class TestCreateTicket:
    @pytest.mark.asyncio
    async def test_create(self, kitchen_service, kitchen_repo, event_bus):
        ko = await _ticket(kitchen_service)

        stored = kitchen_repo.get_by_order_id("ord_1")
        assert stored.id == ko.id
        assert stored.estimated_time == timedelta(minutes=20)

        [event] = event_bus.events_of_type(KITCHEN_ORDER_CREATED)
        assert event.data["estimated_time"] == 1200
        assert event.data["priority"] == "HIGH"
        assert event.metadata["order_id"] == "ord_1"

    @pytest.mark.asyncio
    async def test_second_ticket_for_order_is_conflict(self, kitchen_service):
        await _ticket(kitchen_service)
        with pytest.raises(DuplicateEntityError):
            await _ticket(kitchen_service)

    @pytest.mark.asyncio
    async def test_waitstaff_cannot_create_tickets(self, kitchen_service, make_user):
        with pytest.raises(ForbiddenError):
            await kitchen_service.create_kitchen_order("ord_1", actor=make_user(Roles.WAITSTAFF))

    @pytest.mark.asyncio
    async def test_kitchen_staff_can_create_tickets(self, kitchen_service, make_user):
        ko = await kitchen_service.create_kitchen_order("ord_1", actor=make_user(Roles.KITCHEN_STAFF))
        assert ko.status is KitchenOrderStatus.NEW


class TestItemStatus:
    @pytest.mark.asyncio
    async def test_rollup_publishes_ticket_events(self, kitchen_service, kitchen_repo, event_bus):
        ko = await _ticket(kitchen_service)
        soup, steak = (item.id for item in ko.items)
        event_bus.clear()

        await kitchen_service.update_item_status(ko.id, soup, KitchenItemStatus.PREPARING, "chef")
        await kitchen_service.update_item_status(ko.id, soup, KitchenItemStatus.READY, "chef")
        await kitchen_service.update_item_status(ko.id, steak, KitchenItemStatus.PREPARING, "chef")
        await kitchen_service.update_item_status(ko.id, steak, KitchenItemStatus.READY, "chef")

        assert len(event_bus.events_of_type(KITCHEN_ITEM_STATUS_CHANGED)) == 4
        ticket_moves = [
            (e.data["old_status"], e.data["new_status"])
            for e in event_bus.events_of_type(KITCHEN_ORDER_STATUS_CHANGED)
        ]
        assert ticket_moves == [("NEW", "PREPARING"), ("PREPARING", "READY")]
        assert kitchen_repo.get_by_id(ko.id).status is KitchenOrderStatus.READY

    @pytest.mark.asyncio
    async def test_item_event_payload(self, kitchen_service, event_bus):
        ko = await _ticket(kitchen_service)
        soup = ko.items[0]

        await kitchen_service.update_item_status(ko.id, soup.id, "PREPARING", "chef")

        [event] = event_bus.events_of_type(KITCHEN_ITEM_STATUS_CHANGED)
        assert event.data == {
            "kitchen_order_id": ko.id,
            "item_id": soup.id,
            "menu_item_id": "m1",
            "item_name": "Soup",
            "old_status": "NEW",
            "new_status": "PREPARING",
            "updated_by": "chef",
        }

    @pytest.mark.asyncio
    async def test_invalid_item_transition(self, kitchen_service, event_bus):
        ko = await _ticket(kitchen_service)
        event_bus.clear()
        with pytest.raises(InvalidTransitionError):
            await kitchen_service.update_item_status(ko.id, ko.items[0].id, KitchenItemStatus.READY)
        assert event_bus.events == []

    @pytest.mark.asyncio
    async def test_add_item(self, kitchen_service, kitchen_repo):
        ko = await _ticket(kitchen_service)
        await kitchen_service.add_item(ko.id, KitchenItemInput(menu_item_id="m3", name="Cake", prep_time=1800))
        assert kitchen_repo.get_by_id(ko.id).estimated_time == timedelta(minutes=30)


class TestTicketStatus:
    @pytest.mark.asyncio
    async def test_complete_publishes_completed(self, kitchen_service, event_bus):
        ko = await _ticket(kitchen_service)
        await kitchen_service.update_order_status(ko.id, KitchenOrderStatus.PREPARING)
        await kitchen_service.update_order_status(ko.id, KitchenOrderStatus.READY)
        await kitchen_service.complete_kitchen_order(ko.id, "expo")

        [completed] = event_bus.events_of_type(KITCHEN_ORDER_COMPLETED)
        assert completed.data["old_status"] == "READY"
        assert completed.data["updated_by"] == "expo"
        assert event_bus.event_types()[-2:] == [KITCHEN_ORDER_STATUS_CHANGED, KITCHEN_ORDER_COMPLETED]

    @pytest.mark.asyncio
    async def test_cancel(self, kitchen_service, kitchen_repo, event_bus):
        ko = await _ticket(kitchen_service)
        await kitchen_service.cancel_kitchen_order(ko.id)

        stored = kitchen_repo.get_by_id(ko.id)
        assert stored.status is KitchenOrderStatus.CANCELLED
        assert all(item.status is KitchenItemStatus.CANCELLED for item in stored.items)
        assert len(event_bus.events_of_type(KITCHEN_ORDER_CANCELLED)) == 1

    @pytest.mark.asyncio
    async def test_status_cancelled_cancels_open_lines(self, kitchen_service, kitchen_repo, event_bus):
        ko = await _ticket(kitchen_service)
        soup = ko.items[0].id
        await kitchen_service.update_item_status(ko.id, soup, KitchenItemStatus.PREPARING)

        await kitchen_service.update_order_status(ko.id, "CANCELLED", "expo")

        stored = kitchen_repo.get_by_id(ko.id)
        assert stored.status is KitchenOrderStatus.CANCELLED
        assert all(item.status is KitchenItemStatus.CANCELLED for item in stored.items)
        assert stored.estimated_time == timedelta(0)
        [cancelled] = event_bus.events_of_type(KITCHEN_ORDER_CANCELLED)
        assert cancelled.data["updated_by"] == "expo"

    @pytest.mark.asyncio
    async def test_cancel_completed_fails(self, kitchen_service):
        ko = await _ticket(kitchen_service)
        for status in (KitchenOrderStatus.PREPARING, KitchenOrderStatus.READY, KitchenOrderStatus.COMPLETED):
            await kitchen_service.update_order_status(ko.id, status)
        with pytest.raises(BusinessRuleError):
            await kitchen_service.cancel_kitchen_order(ko.id)

    @pytest.mark.asyncio
    async def test_station_and_queries(self, kitchen_service):
        first = await _ticket(kitchen_service, "ord_1")
        await _ticket(kitchen_service, "ord_2")

        await kitchen_service.assign_to_station(first.id, "grill")
        await kitchen_service.set_priority(first.id, "URGENT")

        assert [k.id for k in await kitchen_service.get_by_station("grill")] == [first.id]
        assert len(await kitchen_service.get_active()) == 2
        assert len(await kitchen_service.get_by_status("NEW")) == 2
        assert (await kitchen_service.get_kitchen_order(first.id)).priority.value == "URGENT"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("call", [
        lambda service, ko_id: service.set_priority(ko_id, "CRITICAL"),
        lambda service, ko_id: service.update_order_status(ko_id, "PLATED"),
        lambda service, ko_id: service.get_by_status("PLATED"),
    ])
    async def test_unknown_enum_values_are_validation_errors(self, kitchen_service, kitchen_repo, call):
        ko = await _ticket(kitchen_service)
        with pytest.raises(ValidationError):
            await call(kitchen_service, ko.id)
        stored = kitchen_repo.get_by_id(ko.id)
        assert stored.priority.value == "HIGH"
        assert stored.status is KitchenOrderStatus.NEW
