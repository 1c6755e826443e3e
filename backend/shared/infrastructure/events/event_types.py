"""
Event Type Constants.

Event type strings are part of the public contract: adding a payload field
is backward-compatible, renaming a type is not.
"""

from shared.config.settings import settings

# =============================================================================
# Order events
# Flow: CREATED → PAID → PREPARING → READY → COMPLETED
# =============================================================================

ORDER_CREATED = "order.created"
ORDER_UPDATED = "order.updated"  # Items added, removed or re-quantified
ORDER_PAID = "order.paid"
ORDER_STATUS_CHANGED = "order.status.changed"
ORDER_COMPLETED = "order.completed"
ORDER_CANCELLED = "order.cancelled"

# =============================================================================
# Kitchen events
# =============================================================================

KITCHEN_ORDER_CREATED = "kitchen.order.created"
KITCHEN_ORDER_STATUS_CHANGED = "kitchen.order.status.changed"
KITCHEN_ORDER_COMPLETED = "kitchen.order.completed"
KITCHEN_ORDER_CANCELLED = "kitchen.order.cancelled"
KITCHEN_ITEM_STATUS_CHANGED = "kitchen.item.status.changed"

# =============================================================================
# Reservation events
# =============================================================================

RESERVATION_CREATED = "reservation.created"
RESERVATION_CONFIRMED = "reservation.confirmed"
RESERVATION_CANCELLED = "reservation.cancelled"
RESERVATION_COMPLETED = "reservation.completed"
RESERVATION_NO_SHOW = "reservation.no_show"
RESERVATION_UPDATED = "reservation.updated"

# =============================================================================
# Menu events
# =============================================================================

MENU_CREATED = "menu.created"
MENU_ACTIVATED = "menu.activated"
MENU_DEACTIVATED = "menu.deactivated"
MENU_ITEM_AVAILABILITY_CHANGED = "menu.item.availability.changed"

# =============================================================================
# Inventory events
# =============================================================================

INVENTORY_ITEM_CREATED = "inventory.item.created"
STOCK_RECEIVED = "inventory.stock.received"
STOCK_USED = "inventory.stock.used"
STOCK_RESERVED = "inventory.stock.reserved"
LOW_STOCK_ALERT = "inventory.alert.low_stock"
OUT_OF_STOCK_ALERT = "inventory.alert.out_of_stock"
SUPPLIER_CREATED = "inventory.supplier.created"

ALL_EVENT_TYPES: frozenset[str] = frozenset({
    ORDER_CREATED,
    ORDER_UPDATED,
    ORDER_PAID,
    ORDER_STATUS_CHANGED,
    ORDER_COMPLETED,
    ORDER_CANCELLED,
    KITCHEN_ORDER_CREATED,
    KITCHEN_ORDER_STATUS_CHANGED,
    KITCHEN_ORDER_COMPLETED,
    KITCHEN_ORDER_CANCELLED,
    KITCHEN_ITEM_STATUS_CHANGED,
    RESERVATION_CREATED,
    RESERVATION_CONFIRMED,
    RESERVATION_CANCELLED,
    RESERVATION_COMPLETED,
    RESERVATION_NO_SHOW,
    RESERVATION_UPDATED,
    MENU_CREATED,
    MENU_ACTIVATED,
    MENU_DEACTIVATED,
    MENU_ITEM_AVAILABILITY_CHANGED,
    INVENTORY_ITEM_CREATED,
    STOCK_RECEIVED,
    STOCK_USED,
    STOCK_RESERVED,
    LOW_STOCK_ALERT,
    OUT_OF_STOCK_ALERT,
    SUPPLIER_CREATED,
})

# =============================================================================
# Size limits
# =============================================================================

# Events larger than this are rejected before they reach Redis
MAX_EVENT_SIZE = settings.event_max_size_bytes
