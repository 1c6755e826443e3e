"""
Application services.

Each service orchestrates one aggregate: load, mutate, persist, publish.
"""

from .base_service import BaseDomainService
from .order_service import OrderService
from .kitchen_service import KitchenService
from .reservation_service import ReservationService
from .menu_service import MenuService
from .inventory_service import InventoryService
from .auth_service import AuthService

__all__ = [
    "BaseDomainService",
    "OrderService",
    "KitchenService",
    "ReservationService",
    "MenuService",
    "InventoryService",
    "AuthService",
]
