"""
Inventory Service - stock levels, movements, alerts and suppliers.

Alerts fire on threshold crossings only:
    out of stock   stock reached zero from above zero (CRITICAL)
    low stock      stock reached the reorder point from above it (WARNING)
Out of stock wins when both are crossed by the same movement.
"""

from __future__ import annotations

from restaurant.domain.inventory import InventoryItem, StockMovement, Supplier
from restaurant.domain.user import User
from restaurant.repositories.inventory import (
    InventoryFilters,
    InventoryItemRepository,
    StockMovementRepository,
    SupplierRepository,
)
from restaurant.services.permissions import require_permission
from shared.config.constants import Actions, AlertType, MovementType, Resources, UnitType
from shared.config.logging import inventory_logger
from shared.infrastructure.events import (
    INVENTORY_ITEM_CREATED,
    LOW_STOCK_ALERT,
    OUT_OF_STOCK_ALERT,
    STOCK_RECEIVED,
    STOCK_RESERVED,
    STOCK_USED,
    SUPPLIER_CREATED,
    EventPublisher,
)
from shared.infrastructure.events.payloads import (
    InventoryItemCreatedData,
    StockAlertData,
    StockMovementData,
    SupplierEventData,
)
from shared.utils.exceptions import BusinessRuleError, ErrorCode

from .base_service import BaseDomainService

# Movement type reported on inventory.stock.reserved
RESERVED_MOVEMENT = "RESERVED"


class InventoryService(BaseDomainService):
    """Application service for inventory items and suppliers."""

    service_name = "inventory-service"

    def __init__(
        self,
        items: InventoryItemRepository,
        movements: StockMovementRepository,
        suppliers: SupplierRepository,
        publisher: EventPublisher | None = None,
    ):
        super().__init__(publisher)
        self._items = items
        self._movements = movements
        self._suppliers = suppliers

    # =========================================================================
    # Items
    # =========================================================================

    @require_permission(Resources.INVENTORY, Actions.CREATE)
    async def create_item(
        self,
        sku: str,
        name: str,
        initial_stock: float,
        unit: UnitType | str,
        cost: float,
        *,
        actor: User | None = None,
    ) -> InventoryItem:
        item = InventoryItem.create(sku, name, initial_stock, unit, cost)
        await self._run(self._items.create, item)
        inventory_logger.info("Inventory item created", item_id=item.id, sku=item.sku)

        await self._publish(
            INVENTORY_ITEM_CREATED,
            item.id,
            InventoryItemCreatedData(
                item_id=item.id,
                sku=item.sku,
                name=item.name,
                category=item.category,
                current_stock=item.current_stock,
                unit=item.unit.value,
                cost=item.cost,
            ),
            sku=item.sku,
        )
        return item

    async def get_item(self, item_id: str) -> InventoryItem:
        return await self._run(self._items.get_by_id, item_id)

    async def get_item_by_sku(self, sku: str) -> InventoryItem:
        return await self._run(self._items.get_by_sku, sku)

    async def list_items(self, filters: InventoryFilters | None = None) -> list[InventoryItem]:
        return await self._run(self._items.list_items, filters)

    async def get_movements(self, item_id: str, limit: int | None = None) -> list[StockMovement]:
        return await self._run(self._movements.get_movements_by_item, item_id, limit)

    # =========================================================================
    # Stock movements
    # =========================================================================

    async def _save_movement(self, item: InventoryItem, movement: StockMovement) -> None:
        await self._run(self._items.update, item)
        await self._run(self._movements.create, movement)

    async def _publish_movement(
        self,
        event_type: str,
        item: InventoryItem,
        movement: StockMovement,
        movement_type: str | None = None,
        **metadata: str,
    ) -> None:
        await self._publish(
            event_type,
            item.id,
            StockMovementData(
                item_id=item.id,
                sku=item.sku,
                item_name=item.name,
                movement_type=movement_type or movement.type.value,
                quantity=movement.quantity,
                previous_stock=movement.previous_stock,
                new_stock=movement.new_stock,
                reference=movement.reference,
                performed_by=movement.performed_by,
            ),
            sku=item.sku,
            **metadata,
        )

    @require_permission(Resources.INVENTORY, Actions.UPDATE)
    async def add_stock(
        self,
        item_id: str,
        quantity: float,
        notes: str = "",
        reference: str = "",
        performed_by: str = "",
        *,
        actor: User | None = None,
    ) -> StockMovement:
        item = await self._run(self._items.get_by_id, item_id)
        movement = item.add_movement(MovementType.RECEIVED, quantity, notes, reference, performed_by)
        await self._save_movement(item, movement)
        inventory_logger.info(
            "Stock received",
            item_id=item.id,
            quantity=quantity,
            new_stock=item.current_stock,
        )

        await self._publish_movement(STOCK_RECEIVED, item, movement)
        return movement

    @require_permission(Resources.INVENTORY, Actions.UPDATE)
    async def use_stock(
        self,
        item_id: str,
        quantity: float,
        notes: str = "",
        reference: str = "",
        performed_by: str = "",
        *,
        actor: User | None = None,
    ) -> StockMovement:
        """
        Take stock out and publish inventory.stock.used, then any alert.

        Raises:
            ConflictError: INSUFFICIENT_STOCK if quantity exceeds the stock.
        """
        item = await self._run(self._items.get_by_id, item_id)
        previous_stock = item.current_stock
        movement = item.add_movement(MovementType.USED, quantity, notes, reference, performed_by)
        await self._save_movement(item, movement)
        inventory_logger.info(
            "Stock used",
            item_id=item.id,
            quantity=quantity,
            new_stock=item.current_stock,
        )

        await self._publish_movement(STOCK_USED, item, movement)
        await self._publish_alerts(item, previous_stock)
        return movement

    @require_permission(Resources.INVENTORY, Actions.UPDATE)
    async def reserve_stock(
        self,
        sku: str,
        quantity: float,
        reference: str = "",
        performed_by: str = "",
        *,
        actor: User | None = None,
    ) -> StockMovement:
        """
        Reserve stock for an order by SKU.

        Raises:
            BusinessRuleError: INSUFFICIENT_STOCK, after publishing an
                out-of-stock alert carrying the requested quantity.
        """
        item = await self._run(self._items.get_by_sku, sku)
        if not item.can_fulfill(quantity):
            await self._publish_out_of_stock(item, threshold=quantity)
            raise BusinessRuleError(
                ErrorCode.INSUFFICIENT_STOCK,
                "insufficient stock to reserve",
                op="InventoryService.reserve_stock",
                sku=sku,
                current_stock=item.current_stock,
                requested=quantity,
            )

        movement = item.reserve_stock(quantity, reference, performed_by)
        await self._save_movement(item, movement)
        inventory_logger.info("Stock reserved", item_id=item.id, quantity=quantity, reference=reference)

        await self._publish_movement(
            STOCK_RESERVED, item, movement, RESERVED_MOVEMENT, order_reference=reference
        )
        return movement

    # =========================================================================
    # Alerts
    # =========================================================================

    async def _publish_alerts(self, item: InventoryItem, previous_stock: float) -> None:
        if item.is_out_of_stock() and previous_stock > 0:
            await self._publish_out_of_stock(item, threshold=0.0)
        elif item.is_low_stock() and previous_stock > item.reorder_point:
            await self._publish_low_stock(item)

    async def _publish_low_stock(self, item: InventoryItem) -> None:
        inventory_logger.warning(
            "Low stock", item_id=item.id, sku=item.sku, current_stock=item.current_stock
        )
        await self._publish(
            LOW_STOCK_ALERT,
            item.id,
            StockAlertData(
                item_id=item.id,
                sku=item.sku,
                item_name=item.name,
                current_stock=item.current_stock,
                threshold=item.reorder_point,
                alert_type=AlertType.LOW_STOCK,
            ),
            sku=item.sku,
            alert_level="WARNING",
        )

    async def _publish_out_of_stock(self, item: InventoryItem, threshold: float) -> None:
        inventory_logger.warning(
            "Out of stock", item_id=item.id, sku=item.sku, current_stock=item.current_stock
        )
        await self._publish(
            OUT_OF_STOCK_ALERT,
            item.id,
            StockAlertData(
                item_id=item.id,
                sku=item.sku,
                item_name=item.name,
                current_stock=item.current_stock,
                threshold=threshold,
                alert_type=AlertType.OUT_OF_STOCK,
            ),
            sku=item.sku,
            alert_level="CRITICAL",
        )

    # =========================================================================
    # Levels
    # =========================================================================

    async def check_availability(self, sku: str, quantity: float) -> bool:
        item = await self._run(self._items.get_by_sku, sku)
        return item.can_fulfill(quantity)

    async def get_stock_level(self, sku: str) -> float:
        item = await self._run(self._items.get_by_sku, sku)
        return item.current_stock

    @require_permission(Resources.INVENTORY, Actions.UPDATE)
    async def update_thresholds(
        self,
        item_id: str,
        minimum: float,
        maximum: float,
        reorder_point: float,
        *,
        actor: User | None = None,
    ) -> InventoryItem:
        item = await self._run(self._items.get_by_id, item_id)
        item.update_thresholds(minimum, maximum, reorder_point)
        await self._run(self._items.update, item)
        return item

    async def get_low_stock_items(self) -> list[InventoryItem]:
        return await self._run(self._items.get_low_stock_items)

    async def get_out_of_stock_items(self) -> list[InventoryItem]:
        return await self._run(self._items.get_out_of_stock_items)

    # =========================================================================
    # Suppliers
    # =========================================================================

    @require_permission(Resources.INVENTORY, Actions.CREATE)
    async def create_supplier(self, name: str, *, actor: User | None = None) -> Supplier:
        supplier = Supplier.create(name)
        await self._run(self._suppliers.create, supplier)
        inventory_logger.info("Supplier created", supplier_id=supplier.id, name=supplier.name)

        await self._publish(
            SUPPLIER_CREATED,
            supplier.id,
            SupplierEventData(
                supplier_id=supplier.id,
                name=supplier.name,
                contact_name=supplier.contact_name,
                email=supplier.email,
                phone=supplier.phone,
                is_active=supplier.is_active,
            ),
        )
        return supplier

    async def get_active_suppliers(self) -> list[Supplier]:
        return await self._run(self._suppliers.get_active_suppliers)
