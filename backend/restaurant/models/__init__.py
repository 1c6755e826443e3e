"""
SQLAlchemy ORM Models Package.

One module per bounded context:
- base: Base class, timestamp and version mixins
- order: OrderModel
- kitchen: KitchenOrderModel
- reservation: ReservationModel
- menu: MenuModel
- inventory: InventoryItemModel, StockMovementModel, SupplierModel
- user: UserModel, RoleModel, UserSessionModel
"""

from .base import Base, TimestampMixin, VersionedMixin
from .order import OrderModel
from .kitchen import KitchenOrderModel
from .reservation import ReservationModel
from .menu import MenuModel
from .inventory import InventoryItemModel, StockMovementModel, SupplierModel
from .user import RoleModel, UserModel, UserSessionModel

__all__ = [
    "Base",
    "TimestampMixin",
    "VersionedMixin",
    "OrderModel",
    "KitchenOrderModel",
    "ReservationModel",
    "MenuModel",
    "InventoryItemModel",
    "StockMovementModel",
    "SupplierModel",
    "RoleModel",
    "UserModel",
    "UserSessionModel",
]
