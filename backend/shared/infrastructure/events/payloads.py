"""
Typed event payloads.

One model per event type, keyed by the type string in PAYLOAD_TYPES.
Unknown fields are ignored so producers can add fields without breaking
older consumers.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from . import event_types as et
from .event_schema import DomainEvent


class EventPayload(BaseModel):
    """Base payload: snake_case keys, extra fields ignored."""

    model_config = ConfigDict(extra="ignore")


# =============================================================================
# Order
# =============================================================================


class OrderLineData(EventPayload):
    menu_item_id: str
    name: str = ""
    quantity: int = 1
    unit_price: float = 0.0
    modifications: list[str] = Field(default_factory=list)
    notes: str = ""


class OrderCreatedData(EventPayload):
    order_id: str
    customer_id: str
    table_id: str = ""
    order_type: str
    total_amount: float = 0.0
    status: str
    items: list[OrderLineData] = Field(default_factory=list)


class OrderStatusChangedData(EventPayload):
    order_id: str
    old_status: str = ""
    new_status: str
    updated_by: str = ""


class OrderUpdatedData(EventPayload):
    order_id: str
    item_count: int = 0
    total_amount: float = 0.0


# =============================================================================
# Kitchen
# =============================================================================


class KitchenOrderCreatedData(EventPayload):
    kitchen_order_id: str
    order_id: str
    table_id: str = ""
    status: str
    priority: str
    estimated_time: int = 0  # seconds


class KitchenOrderStatusChangedData(EventPayload):
    kitchen_order_id: str
    order_id: str
    old_status: str = ""
    new_status: str
    updated_by: str = ""


class KitchenItemStatusChangedData(EventPayload):
    kitchen_order_id: str
    item_id: str
    menu_item_id: str = ""
    item_name: str = ""
    old_status: str = ""
    new_status: str
    updated_by: str = ""


# =============================================================================
# Reservation
# =============================================================================


class ReservationCreatedData(EventPayload):
    reservation_id: str
    customer_id: str
    table_id: str
    party_size: int
    date_time: str
    status: str


class ReservationStatusChangedData(EventPayload):
    reservation_id: str
    customer_id: str = ""
    table_id: str = ""
    party_size: int = 0
    date_time: str = ""
    old_status: str = ""
    new_status: str


# =============================================================================
# Menu
# =============================================================================


class MenuCreatedData(EventPayload):
    menu_id: str
    name: str
    version: int = 1
    is_active: bool = True


class MenuActivatedData(EventPayload):
    menu_id: str
    name: str = ""
    version: int = 1


class ItemAvailabilityChangedData(EventPayload):
    menu_id: str
    item_id: str
    item_name: str = ""
    is_available: bool
    category_id: str = ""


# =============================================================================
# Inventory
# =============================================================================


class InventoryItemCreatedData(EventPayload):
    item_id: str
    sku: str
    name: str
    category: str = ""
    current_stock: float = 0.0
    unit: str = ""
    cost: float = 0.0


class StockMovementData(EventPayload):
    item_id: str
    sku: str = ""
    item_name: str = ""
    movement_type: str
    quantity: float
    previous_stock: float = 0.0
    new_stock: float = 0.0
    reference: str = ""
    performed_by: str = ""


class StockAlertData(EventPayload):
    item_id: str
    sku: str = ""
    item_name: str = ""
    current_stock: float = 0.0
    threshold: float = 0.0
    alert_type: str


class SupplierEventData(EventPayload):
    supplier_id: str
    name: str
    contact_name: str = ""
    email: str = ""
    phone: str = ""
    is_active: bool = True


# =============================================================================
# Registry
# =============================================================================

PAYLOAD_TYPES: dict[str, type[EventPayload]] = {
    et.ORDER_CREATED: OrderCreatedData,
    et.ORDER_UPDATED: OrderUpdatedData,
    et.ORDER_PAID: OrderStatusChangedData,
    et.ORDER_STATUS_CHANGED: OrderStatusChangedData,
    et.ORDER_COMPLETED: OrderStatusChangedData,
    et.ORDER_CANCELLED: OrderStatusChangedData,
    et.KITCHEN_ORDER_CREATED: KitchenOrderCreatedData,
    et.KITCHEN_ORDER_STATUS_CHANGED: KitchenOrderStatusChangedData,
    et.KITCHEN_ORDER_COMPLETED: KitchenOrderStatusChangedData,
    et.KITCHEN_ORDER_CANCELLED: KitchenOrderStatusChangedData,
    et.KITCHEN_ITEM_STATUS_CHANGED: KitchenItemStatusChangedData,
    et.RESERVATION_CREATED: ReservationCreatedData,
    et.RESERVATION_CONFIRMED: ReservationStatusChangedData,
    et.RESERVATION_CANCELLED: ReservationStatusChangedData,
    et.RESERVATION_COMPLETED: ReservationStatusChangedData,
    et.RESERVATION_NO_SHOW: ReservationStatusChangedData,
    et.RESERVATION_UPDATED: ReservationStatusChangedData,
    et.MENU_CREATED: MenuCreatedData,
    et.MENU_ACTIVATED: MenuActivatedData,
    et.MENU_DEACTIVATED: MenuActivatedData,
    et.MENU_ITEM_AVAILABILITY_CHANGED: ItemAvailabilityChangedData,
    et.INVENTORY_ITEM_CREATED: InventoryItemCreatedData,
    et.STOCK_RECEIVED: StockMovementData,
    et.STOCK_USED: StockMovementData,
    et.STOCK_RESERVED: StockMovementData,
    et.LOW_STOCK_ALERT: StockAlertData,
    et.OUT_OF_STOCK_ALERT: StockAlertData,
    et.SUPPLIER_CREATED: SupplierEventData,
}


def decode_payload(event: DomainEvent) -> EventPayload:
    """
    Parse an event's data into its typed payload.

    Raises:
        ValueError: If the event type has no registered payload.
        pydantic.ValidationError: If required fields are missing.
    """
    payload_type = PAYLOAD_TYPES.get(event.type)
    if payload_type is None:
        raise ValueError(f"Unknown event type: {event.type}")
    return payload_type.model_validate(event.data)
