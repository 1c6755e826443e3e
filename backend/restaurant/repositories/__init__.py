"""
Repository Pattern implementation.

Each aggregate has an abstract contract and a SQLAlchemy implementation.
Repositories are the only layer that knows about rows and JSON columns.

Usage:
    from restaurant.repositories import SQLOrderRepository, OrderFilters

    repo = SQLOrderRepository(db)
    orders, total = repo.list(OrderFilters(status=OrderStatus.PAID, limit=20))
"""

from .base import RepositoryFilters, SQLRepository
from .order import OrderFilters, OrderRepository, SQLOrderRepository, get_order_repository
from .kitchen import (
    KitchenOrderFilters,
    KitchenOrderRepository,
    SQLKitchenOrderRepository,
    get_kitchen_order_repository,
)
from .reservation import (
    ReservationFilters,
    ReservationRepository,
    SQLReservationRepository,
    get_reservation_repository,
)
from .menu import MenuFilters, MenuRepository, SQLMenuRepository, get_menu_repository
from .inventory import (
    InventoryFilters,
    InventoryItemRepository,
    SQLInventoryItemRepository,
    SQLStockMovementRepository,
    SQLSupplierRepository,
    StockMovementRepository,
    SupplierRepository,
    get_inventory_repositories,
)
from .user import (
    RoleRepository,
    SessionRepository,
    SQLRoleRepository,
    SQLSessionRepository,
    SQLUserRepository,
    UserRepository,
    get_user_repositories,
)

__all__ = [
    # Base
    "RepositoryFilters",
    "SQLRepository",
    # Order
    "OrderFilters",
    "OrderRepository",
    "SQLOrderRepository",
    "get_order_repository",
    # Kitchen
    "KitchenOrderFilters",
    "KitchenOrderRepository",
    "SQLKitchenOrderRepository",
    "get_kitchen_order_repository",
    # Reservation
    "ReservationFilters",
    "ReservationRepository",
    "SQLReservationRepository",
    "get_reservation_repository",
    # Menu
    "MenuFilters",
    "MenuRepository",
    "SQLMenuRepository",
    "get_menu_repository",
    # Inventory
    "InventoryFilters",
    "InventoryItemRepository",
    "StockMovementRepository",
    "SupplierRepository",
    "SQLInventoryItemRepository",
    "SQLStockMovementRepository",
    "SQLSupplierRepository",
    "get_inventory_repositories",
    # Users
    "UserRepository",
    "RoleRepository",
    "SessionRepository",
    "SQLUserRepository",
    "SQLRoleRepository",
    "SQLSessionRepository",
    "get_user_repositories",
]
