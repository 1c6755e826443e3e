"""
Centralized constants for the platform core.
Avoids magic strings for statuses, roles and permission vocabulary.

Usage:
    from shared.config.constants import OrderStatus, validate_order_transition

    if validate_order_transition(order.status, OrderStatus.PAID):
        ...
"""

from enum import Enum
from typing import Final


# =============================================================================
# Order
# =============================================================================


class OrderStatus(str, Enum):
    """Order lifecycle states."""

    CREATED = "CREATED"
    PAID = "PAID"
    PREPARING = "PREPARING"
    READY = "READY"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class OrderType(str, Enum):
    """How the order is fulfilled."""

    DINE_IN = "DINE_IN"
    TAKEOUT = "TAKEOUT"
    DELIVERY = "DELIVERY"


ACTIVE_ORDER_STATUSES: Final[frozenset[OrderStatus]] = frozenset({
    OrderStatus.CREATED,
    OrderStatus.PAID,
    OrderStatus.PREPARING,
    OrderStatus.READY,
})


# =============================================================================
# Kitchen
# =============================================================================


class KitchenOrderStatus(str, Enum):
    """Kitchen ticket states."""

    NEW = "NEW"
    PREPARING = "PREPARING"
    READY = "READY"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class KitchenItemStatus(str, Enum):
    """Kitchen ticket line states. READY and CANCELLED are terminal."""

    NEW = "NEW"
    PREPARING = "PREPARING"
    READY = "READY"
    CANCELLED = "CANCELLED"


class KitchenPriority(str, Enum):
    """Ticket priority, lowest first."""

    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


ACTIVE_KITCHEN_STATUSES: Final[frozenset[KitchenOrderStatus]] = frozenset({
    KitchenOrderStatus.NEW,
    KitchenOrderStatus.PREPARING,
    KitchenOrderStatus.READY,
})


# =============================================================================
# Reservation
# =============================================================================


class ReservationStatus(str, Enum):
    """Reservation lifecycle states."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


# Reservations in these states never block a table
NON_BLOCKING_RESERVATION_STATUSES: Final[frozenset[ReservationStatus]] = frozenset({
    ReservationStatus.CANCELLED,
    ReservationStatus.NO_SHOW,
})


# =============================================================================
# Inventory
# =============================================================================


class MovementType(str, Enum):
    """Kind of stock movement."""

    RECEIVED = "RECEIVED"
    USED = "USED"
    WASTED = "WASTED"
    ADJUSTED = "ADJUSTED"
    RETURNED = "RETURNED"


class UnitType(str, Enum):
    """Unit of measurement for an inventory item."""

    KILOGRAMS = "KG"
    GRAMS = "G"
    LITERS = "L"
    MILLILITERS = "ML"
    UNITS = "UNITS"


class AlertType:
    """Stock alert kinds carried in alert payloads."""

    LOW_STOCK: Final[str] = "LOW_STOCK"
    OUT_OF_STOCK: Final[str] = "OUT_OF_STOCK"


# =============================================================================
# Status Transitions
# =============================================================================

# Valid order status transitions (from -> [allowed to states])
# CREATED → PAID → PREPARING → READY → COMPLETED, CANCELLED from any active state
ORDER_TRANSITIONS: Final[dict[OrderStatus, list[OrderStatus]]] = {
    OrderStatus.CREATED: [OrderStatus.PAID, OrderStatus.CANCELLED],
    OrderStatus.PAID: [OrderStatus.PREPARING, OrderStatus.CANCELLED],
    OrderStatus.PREPARING: [OrderStatus.READY, OrderStatus.CANCELLED],
    OrderStatus.READY: [OrderStatus.COMPLETED, OrderStatus.CANCELLED],
    OrderStatus.COMPLETED: [],  # Terminal state
    OrderStatus.CANCELLED: [],  # Terminal state
}

KITCHEN_ORDER_TRANSITIONS: Final[dict[KitchenOrderStatus, list[KitchenOrderStatus]]] = {
    KitchenOrderStatus.NEW: [KitchenOrderStatus.PREPARING, KitchenOrderStatus.CANCELLED],
    KitchenOrderStatus.PREPARING: [KitchenOrderStatus.READY, KitchenOrderStatus.CANCELLED],
    KitchenOrderStatus.READY: [KitchenOrderStatus.COMPLETED, KitchenOrderStatus.CANCELLED],
    KitchenOrderStatus.COMPLETED: [],
    KitchenOrderStatus.CANCELLED: [],
}

KITCHEN_ITEM_TRANSITIONS: Final[dict[KitchenItemStatus, list[KitchenItemStatus]]] = {
    KitchenItemStatus.NEW: [KitchenItemStatus.PREPARING, KitchenItemStatus.CANCELLED],
    KitchenItemStatus.PREPARING: [KitchenItemStatus.READY, KitchenItemStatus.CANCELLED],
    KitchenItemStatus.READY: [],
    KitchenItemStatus.CANCELLED: [],
}

RESERVATION_TRANSITIONS: Final[dict[ReservationStatus, list[ReservationStatus]]] = {
    ReservationStatus.PENDING: [
        ReservationStatus.CONFIRMED,
        ReservationStatus.CANCELLED,
        ReservationStatus.NO_SHOW,
    ],
    ReservationStatus.CONFIRMED: [
        ReservationStatus.COMPLETED,
        ReservationStatus.CANCELLED,
        ReservationStatus.NO_SHOW,
    ],
    ReservationStatus.COMPLETED: [],
    ReservationStatus.CANCELLED: [],
    ReservationStatus.NO_SHOW: [],
}


def validate_order_transition(current_status: str, new_status: str) -> bool:
    """Return True if the order may move from current_status to new_status."""
    return new_status in ORDER_TRANSITIONS.get(current_status, [])


def validate_kitchen_order_transition(current_status: str, new_status: str) -> bool:
    """Return True if the kitchen ticket may move to new_status."""
    return new_status in KITCHEN_ORDER_TRANSITIONS.get(current_status, [])


def validate_kitchen_item_transition(current_status: str, new_status: str) -> bool:
    """Return True if the kitchen line may move to new_status."""
    return new_status in KITCHEN_ITEM_TRANSITIONS.get(current_status, [])


def validate_reservation_transition(current_status: str, new_status: str) -> bool:
    """Return True if the reservation may move to new_status."""
    return new_status in RESERVATION_TRANSITIONS.get(current_status, [])


# =============================================================================
# Roles and Permissions
# =============================================================================


class Roles:
    """Default staff role names."""

    ADMIN: Final[str] = "admin"
    MANAGER: Final[str] = "manager"
    KITCHEN_STAFF: Final[str] = "kitchen_staff"
    WAITSTAFF: Final[str] = "waitstaff"
    HOST: Final[str] = "host"
    CASHIER: Final[str] = "cashier"

    ALL: Final[list[str]] = [ADMIN, MANAGER, KITCHEN_STAFF, WAITSTAFF, HOST, CASHIER]


class Resources:
    """Protected resources."""

    MENU: Final[str] = "menu"
    ORDER: Final[str] = "order"
    KITCHEN: Final[str] = "kitchen"
    RESERVATION: Final[str] = "reservation"
    INVENTORY: Final[str] = "inventory"
    USER: Final[str] = "user"
    REPORT: Final[str] = "report"

    ALL: Final[list[str]] = [MENU, ORDER, KITCHEN, RESERVATION, INVENTORY, USER, REPORT]


class Actions:
    """Permission actions. MANAGE grants every action on its resource."""

    CREATE: Final[str] = "create"
    READ: Final[str] = "read"
    UPDATE: Final[str] = "update"
    DELETE: Final[str] = "delete"
    MANAGE: Final[str] = "manage"
    VIEW: Final[str] = "view"

    ALL: Final[list[str]] = [CREATE, READ, UPDATE, DELETE, MANAGE, VIEW]


class TokenType:
    """JWT token types."""

    ACCESS: Final[str] = "access"
    REFRESH: Final[str] = "refresh"


# =============================================================================
# Validation Constants
# =============================================================================


class Limits:
    """Validation limits."""

    # Pagination defaults
    DEFAULT_PAGE_SIZE: Final[int] = 50
    MAX_PAGE_SIZE: Final[int] = 200
    DEFAULT_OFFSET: Final[int] = 0

    # String lengths
    MAX_NAME_LENGTH: Final[int] = 200
    MAX_EMAIL_LENGTH: Final[int] = 255
    MAX_SEARCH_TERM_LENGTH: Final[int] = 100

    # Float comparisons on money
    AMOUNT_TOLERANCE: Final[float] = 1e-6


# Passwords rejected regardless of their character mix (compared lowercase)
COMMON_PASSWORDS: Final[frozenset[str]] = frozenset({
    "password", "password1", "password123", "123456", "12345678", "123456789",
    "qwerty", "qwerty123", "abc123", "letmein", "admin", "admin123",
    "administrator", "root", "guest", "user", "welcome", "welcome1", "login",
    "restaurant", "kitchen", "waiter", "manager", "chef", "changeme",
})
