"""
Typed identifiers.

Every aggregate and child entity has its own NewType over str, so a type
checker rejects an OrderID where a KitchenOrderID is expected. The textual
format is stable: ``<prefix>_<unix-nanos>_<counter>``.

Usage:
    order_id = new_order_id()          # "ord_1718000000000000000_42"
    parse_id("ord_abc", OrderID)       # OrderID("ord_abc")
"""

import itertools
import threading
import time
from typing import Callable, Final, NewType, TypeVar

from shared.utils.exceptions import ValidationError

# =============================================================================
# ID Types
# =============================================================================

OrderID = NewType("OrderID", str)
OrderItemID = NewType("OrderItemID", str)
KitchenOrderID = NewType("KitchenOrderID", str)
KitchenItemID = NewType("KitchenItemID", str)
ReservationID = NewType("ReservationID", str)
MenuID = NewType("MenuID", str)
CategoryID = NewType("CategoryID", str)
MenuItemID = NewType("MenuItemID", str)
InventoryItemID = NewType("InventoryItemID", str)
MovementID = NewType("MovementID", str)
SupplierID = NewType("SupplierID", str)
UserID = NewType("UserID", str)
RoleID = NewType("RoleID", str)
PermissionID = NewType("PermissionID", str)
SessionID = NewType("SessionID", str)


class IDPrefix:
    """Entity tags used as id prefixes."""

    ORDER: Final[str] = "ord"
    ORDER_ITEM: Final[str] = "item"
    KITCHEN_ORDER: Final[str] = "ko"
    KITCHEN_ITEM: Final[str] = "ki"
    RESERVATION: Final[str] = "res"
    MENU: Final[str] = "menu"
    CATEGORY: Final[str] = "cat"
    MENU_ITEM: Final[str] = "item"
    INVENTORY_ITEM: Final[str] = "inv"
    MOVEMENT: Final[str] = "mov"
    SUPPLIER: Final[str] = "sup"
    USER: Final[str] = "user"
    ROLE: Final[str] = "role"
    PERMISSION: Final[str] = "perm"
    SESSION: Final[str] = "session"


# =============================================================================
# Generation
# =============================================================================

_counter = itertools.count(1)
_counter_lock = threading.Lock()


def generate_id(prefix: str) -> str:
    """
    Generate a unique id for the given entity prefix.

    Nanosecond timestamps alone collide on coarse clocks, so a process-wide
    counter is appended.
    """
    with _counter_lock:
        sequence = next(_counter)
    return f"{prefix}_{time.time_ns()}_{sequence}"


def new_order_id() -> OrderID:
    return OrderID(generate_id(IDPrefix.ORDER))


def new_order_item_id() -> OrderItemID:
    return OrderItemID(generate_id(IDPrefix.ORDER_ITEM))


def new_kitchen_order_id() -> KitchenOrderID:
    return KitchenOrderID(generate_id(IDPrefix.KITCHEN_ORDER))


def new_kitchen_item_id() -> KitchenItemID:
    return KitchenItemID(generate_id(IDPrefix.KITCHEN_ITEM))


def new_reservation_id() -> ReservationID:
    return ReservationID(generate_id(IDPrefix.RESERVATION))


def new_menu_id() -> MenuID:
    return MenuID(generate_id(IDPrefix.MENU))


def new_category_id() -> CategoryID:
    return CategoryID(generate_id(IDPrefix.CATEGORY))


def new_menu_item_id() -> MenuItemID:
    return MenuItemID(generate_id(IDPrefix.MENU_ITEM))


def new_inventory_item_id() -> InventoryItemID:
    return InventoryItemID(generate_id(IDPrefix.INVENTORY_ITEM))


def new_movement_id() -> MovementID:
    return MovementID(generate_id(IDPrefix.MOVEMENT))


def new_supplier_id() -> SupplierID:
    return SupplierID(generate_id(IDPrefix.SUPPLIER))


def new_user_id() -> UserID:
    return UserID(generate_id(IDPrefix.USER))


def new_role_id() -> RoleID:
    return RoleID(generate_id(IDPrefix.ROLE))


def new_permission_id() -> PermissionID:
    return PermissionID(generate_id(IDPrefix.PERMISSION))


def new_session_id() -> SessionID:
    return SessionID(generate_id(IDPrefix.SESSION))


# =============================================================================
# Inspection
# =============================================================================

IDT = TypeVar("IDT", bound=str)


def is_empty(value: str | None) -> bool:
    """True for None, empty or blank ids."""
    return value is None or not value.strip()


def is_valid(value: str | None) -> bool:
    """A valid id is non-empty and contains no whitespace."""
    if is_empty(value):
        return False
    return not any(ch.isspace() for ch in value)  # type: ignore[union-attr]


def parse_id(value: str | None, id_type: Callable[[str], IDT]) -> IDT:
    """
    Parse raw input into a typed id.

    Raises:
        ValidationError: If the value is empty or contains whitespace.
    """
    if not is_valid(value):
        raise ValidationError("invalid ID format", field="id", value=value)
    return id_type(value)  # type: ignore[arg-type]


def id_prefix(value: str) -> str:
    """Return the entity tag of an id ("ord" for "ord_123_1")."""
    prefix, _, _ = value.partition("_")
    return prefix
