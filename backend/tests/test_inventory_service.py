"""
Tests for InventoryService.

Tests verify:
- Movements are persisted with the item and published
- Alerts fire only when a threshold is crossed
- Reservation by SKU and the insufficient-stock paths
"""

import pytest

from shared.config.constants import AlertType, MovementType, Roles
from shared.infrastructure.events import (
    INVENTORY_ITEM_CREATED,
    LOW_STOCK_ALERT,
    OUT_OF_STOCK_ALERT,
    STOCK_RECEIVED,
    STOCK_RESERVED,
    STOCK_USED,
    SUPPLIER_CREATED,
)
from shared.utils.exceptions import (
    BusinessRuleError,
    ConflictError,
    ErrorCode,
    ForbiddenError,
)


async def _tomatoes(inventory_service, stock=10.0):
    item = await inventory_service.create_item("TOM-1", "Tomato", stock, "KG", 2.5)
    await inventory_service.update_thresholds(item.id, 1.0, 50.0, 4.0)
    return item


class TestStockMovementsService:
    @pytest.mark.asyncio
    async def test_create_publishes(self, inventory_service, event_bus):
        item = await _tomatoes(inventory_service)
        [event] = event_bus.events_of_type(INVENTORY_ITEM_CREATED)
        assert event.data["sku"] == "TOM-1"
        assert event.data["unit"] == "KG"
        assert event.metadata["sku"] == "TOM-1"
        assert event.aggregate_id == item.id

    @pytest.mark.asyncio
    async def test_add_stock(self, inventory_service, event_bus):
        item = await _tomatoes(inventory_service)
        await inventory_service.add_stock(item.id, 5, reference="PO-7", performed_by="receiver")

        assert await inventory_service.get_stock_level("TOM-1") == 15
        [event] = event_bus.events_of_type(STOCK_RECEIVED)
        assert event.data["movement_type"] == MovementType.RECEIVED.value
        assert (event.data["previous_stock"], event.data["new_stock"]) == (10, 15)

        history = await inventory_service.get_movements(item.id)
        assert [m.reference for m in history] == ["PO-7"]

    @pytest.mark.asyncio
    async def test_use_beyond_stock(self, inventory_service, event_bus):
        item = await _tomatoes(inventory_service)
        with pytest.raises(ConflictError) as exc_info:
            await inventory_service.use_stock(item.id, 11)
        assert exc_info.value.code == ErrorCode.INSUFFICIENT_STOCK
        assert await inventory_service.get_stock_level("TOM-1") == 10
        assert event_bus.events_of_type(STOCK_USED) == []


class TestStockAlerts:
    @pytest.mark.asyncio
    async def test_low_stock_fires_once_on_crossing(self, inventory_service, event_bus):
        item = await _tomatoes(inventory_service)

        await inventory_service.use_stock(item.id, 5)  # 10 -> 5, above reorder point
        assert event_bus.events_of_type(LOW_STOCK_ALERT) == []

        await inventory_service.use_stock(item.id, 1)  # 5 -> 4, crosses
        await inventory_service.use_stock(item.id, 1)  # 4 -> 3, already low

        [alert] = event_bus.events_of_type(LOW_STOCK_ALERT)
        assert alert.data["alert_type"] == AlertType.LOW_STOCK
        assert alert.data["threshold"] == 4.0
        assert alert.metadata["alert_level"] == "WARNING"

    @pytest.mark.asyncio
    async def test_out_of_stock_wins(self, inventory_service, event_bus):
        item = await _tomatoes(inventory_service)

        await inventory_service.use_stock(item.id, 10)

        assert event_bus.events_of_type(LOW_STOCK_ALERT) == []
        [alert] = event_bus.events_of_type(OUT_OF_STOCK_ALERT)
        assert alert.data["current_stock"] == 0
        assert alert.metadata["alert_level"] == "CRITICAL"
        assert [i.sku for i in await inventory_service.get_out_of_stock_items()] == ["TOM-1"]


class TestReserveStock:
    @pytest.mark.asyncio
    async def test_reserve(self, inventory_service, event_bus):
        await _tomatoes(inventory_service)

        movement = await inventory_service.reserve_stock("TOM-1", 3, reference="ord_9")

        assert movement.type is MovementType.USED
        assert await inventory_service.get_stock_level("TOM-1") == 7
        [event] = event_bus.events_of_type(STOCK_RESERVED)
        assert event.data["movement_type"] == "RESERVED"
        assert event.metadata["order_reference"] == "ord_9"

    @pytest.mark.asyncio
    async def test_reserve_too_much_alerts_then_raises(self, inventory_service, event_bus):
        await _tomatoes(inventory_service)

        with pytest.raises(BusinessRuleError) as exc_info:
            await inventory_service.reserve_stock("TOM-1", 12)

        assert exc_info.value.code == ErrorCode.INSUFFICIENT_STOCK
        [alert] = event_bus.events_of_type(OUT_OF_STOCK_ALERT)
        assert alert.data["threshold"] == 12
        assert await inventory_service.get_stock_level("TOM-1") == 10

    @pytest.mark.asyncio
    async def test_check_availability(self, inventory_service):
        await _tomatoes(inventory_service)
        assert await inventory_service.check_availability("TOM-1", 10)
        assert not await inventory_service.check_availability("TOM-1", 10.5)


class TestSuppliersAndPermissions:
    @pytest.mark.asyncio
    async def test_create_supplier(self, inventory_service, event_bus):
        supplier = await inventory_service.create_supplier("Green Farms")
        assert [s.id for s in await inventory_service.get_active_suppliers()] == [supplier.id]
        assert event_bus.events_of_type(SUPPLIER_CREATED)[0].data["name"] == "Green Farms"

    @pytest.mark.asyncio
    async def test_kitchen_staff_reads_only(self, inventory_service, make_user):
        item = await _tomatoes(inventory_service)
        with pytest.raises(ForbiddenError):
            await inventory_service.use_stock(item.id, 1, actor=make_user(Roles.KITCHEN_STAFF))
        await inventory_service.use_stock(item.id, 1, actor=make_user(Roles.MANAGER))
