"""
Domain layer: aggregates and their state machines.

Aggregates are plain dataclasses mutated only through their methods. They
know nothing about persistence or events.
"""

from .order import Order, OrderItem
from .kitchen import KitchenItem, KitchenOrder
from .reservation import Reservation, default_occupancy, windows_overlap
from .menu import Menu, MenuCategory, MenuItem
from .inventory import InventoryItem, StockMovement, Supplier
from .user import Permission, Role, User, UserSession, default_roles

__all__ = [
    "Order",
    "OrderItem",
    "KitchenItem",
    "KitchenOrder",
    "Reservation",
    "default_occupancy",
    "windows_overlap",
    "Menu",
    "MenuCategory",
    "MenuItem",
    "InventoryItem",
    "StockMovement",
    "Supplier",
    "Permission",
    "Role",
    "User",
    "UserSession",
    "default_roles",
]
