"""
Inventory Repositories - stock items, the movement log, and suppliers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Select, or_, select
from sqlalchemy.orm import Session

from restaurant.domain.inventory import InventoryItem, StockMovement, Supplier
from restaurant.models import InventoryItemModel, StockMovementModel, SupplierModel
from shared.config.constants import Limits, MovementType, UnitType
from shared.utils.exceptions import NotFoundError
from shared.utils.ids import InventoryItemID, MovementID, SupplierID

from .base import RepositoryFilters, SQLRepository, row_datetime


@dataclass
class InventoryFilters(RepositoryFilters):
    """Filters specific to inventory items."""

    category: str | None = None
    supplier_id: str | None = None
    location: str | None = None
    low_stock_only: bool = False


class InventoryItemRepository(ABC):
    @abstractmethod
    def create(self, item: InventoryItem) -> None: ...

    @abstractmethod
    def get_by_id(self, item_id: str) -> InventoryItem: ...

    @abstractmethod
    def get_by_sku(self, sku: str) -> InventoryItem: ...

    @abstractmethod
    def update(self, item: InventoryItem) -> None: ...

    @abstractmethod
    def delete(self, item_id: str) -> None: ...

    @abstractmethod
    def list_items(self, filters: InventoryFilters | None = None) -> list[InventoryItem]: ...

    @abstractmethod
    def get_low_stock_items(self) -> list[InventoryItem]: ...

    @abstractmethod
    def get_out_of_stock_items(self) -> list[InventoryItem]: ...

    @abstractmethod
    def search_items(self, term: str) -> list[InventoryItem]: ...

    @abstractmethod
    def check_stock_availability(self, item_id: str, quantity: float) -> bool: ...


class StockMovementRepository(ABC):
    @abstractmethod
    def create(self, movement: StockMovement) -> None: ...

    @abstractmethod
    def get_movements_by_item(self, item_id: str, limit: int | None = None) -> list[StockMovement]: ...


class SupplierRepository(ABC):
    @abstractmethod
    def create(self, supplier: Supplier) -> None: ...

    @abstractmethod
    def get_by_id(self, supplier_id: str) -> Supplier: ...

    @abstractmethod
    def update(self, supplier: Supplier) -> None: ...

    @abstractmethod
    def delete(self, supplier_id: str) -> None: ...

    @abstractmethod
    def list(self, filters: RepositoryFilters | None = None) -> list[Supplier]: ...

    @abstractmethod
    def get_active_suppliers(self) -> list[Supplier]: ...


# =============================================================================
# Marshalling
# =============================================================================


def item_to_values(item: InventoryItem) -> dict[str, Any]:
    return {
        "sku": item.sku,
        "name": item.name,
        "description": item.description,
        "current_stock": item.current_stock,
        "unit": item.unit.value,
        "min_threshold": item.min_threshold,
        "max_threshold": item.max_threshold,
        "reorder_point": item.reorder_point,
        "cost": item.cost,
        "category": item.category,
        "location": item.location,
        "supplier_id": item.supplier_id,
        "last_ordered": item.last_ordered,
        "expiry_date": item.expiry_date,
        "created_at": item.created_at,
        "updated_at": item.updated_at,
    }


def item_from_row(row: InventoryItemModel) -> InventoryItem:
    # Movements are loaded separately through StockMovementRepository
    return InventoryItem(
        id=InventoryItemID(row.id),
        sku=row.sku,
        name=row.name,
        current_stock=row.current_stock,
        unit=UnitType(row.unit),
        cost=row.cost,
        description=row.description,
        min_threshold=row.min_threshold,
        max_threshold=row.max_threshold,
        reorder_point=row.reorder_point,
        category=row.category,
        location=row.location,
        supplier_id=row.supplier_id,
        last_ordered=row_datetime(row.last_ordered),
        expiry_date=row_datetime(row.expiry_date),
        created_at=row_datetime(row.created_at),
        updated_at=row_datetime(row.updated_at),
        row_version=row.row_version,
    )


def movement_from_row(row: StockMovementModel) -> StockMovement:
    return StockMovement(
        id=MovementID(row.id),
        inventory_item_id=InventoryItemID(row.inventory_item_id),
        type=MovementType(row.type),
        quantity=row.quantity,
        previous_stock=row.previous_stock,
        new_stock=row.new_stock,
        notes=row.notes,
        reference=row.reference,
        performed_by=row.performed_by,
        created_at=row_datetime(row.created_at),
    )


def supplier_to_values(supplier: Supplier) -> dict[str, Any]:
    return {
        "name": supplier.name,
        "contact_name": supplier.contact_name,
        "email": supplier.email,
        "phone": supplier.phone,
        "address": supplier.address,
        "website": supplier.website,
        "notes": supplier.notes,
        "is_active": supplier.is_active,
        "created_at": supplier.created_at,
        "updated_at": supplier.updated_at,
    }


def supplier_from_row(row: SupplierModel) -> Supplier:
    return Supplier(
        id=SupplierID(row.id),
        name=row.name,
        contact_name=row.contact_name,
        email=row.email,
        phone=row.phone,
        address=row.address,
        website=row.website,
        notes=row.notes,
        is_active=row.is_active,
        created_at=row_datetime(row.created_at),
        updated_at=row_datetime(row.updated_at),
    )


# =============================================================================
# SQLAlchemy implementations
# =============================================================================


class SQLInventoryItemRepository(SQLRepository[InventoryItemModel], InventoryItemRepository):
    model = InventoryItemModel
    entity_name = "Inventory item"

    def create(self, item: InventoryItem) -> None:
        self._insert(
            InventoryItemModel(id=item.id, row_version=1, **item_to_values(item)),
            "InventoryItemRepository.create",
        )
        item.row_version = 1

    def get_by_id(self, item_id: str) -> InventoryItem:
        with self._errors("InventoryItemRepository.get_by_id"):
            return item_from_row(self._get_row(item_id))

    def get_by_sku(self, sku: str) -> InventoryItem:
        rows = self._scalars(
            select(InventoryItemModel).where(InventoryItemModel.sku == sku),
            "InventoryItemRepository.get_by_sku",
        )
        if not rows:
            raise NotFoundError(self.entity_name, sku=sku)
        return item_from_row(rows[0])

    def update(self, item: InventoryItem) -> None:
        item.row_version = self._versioned_update(
            item.id, item.row_version, item_to_values(item), "InventoryItemRepository.update"
        )

    def delete(self, item_id: str) -> None:
        self._delete(item_id, "InventoryItemRepository.delete")

    def _query(self) -> Select:
        return select(InventoryItemModel).order_by(InventoryItemModel.name.asc())

    def _find(self, query: Select, operation: str) -> list[InventoryItem]:
        return [item_from_row(row) for row in self._scalars(query, operation)]

    def list_items(self, filters: InventoryFilters | None = None) -> list[InventoryItem]:
        filters = filters or InventoryFilters()
        query = self._query()
        if filters.category:
            query = query.where(InventoryItemModel.category == filters.category)
        if filters.supplier_id:
            query = query.where(InventoryItemModel.supplier_id == filters.supplier_id)
        if filters.location:
            query = query.where(InventoryItemModel.location == filters.location)
        if filters.low_stock_only:
            query = query.where(InventoryItemModel.current_stock <= InventoryItemModel.reorder_point)
        query = query.offset(filters.offset).limit(filters.limit)
        return self._find(query, "InventoryItemRepository.list_items")

    def get_low_stock_items(self) -> list[InventoryItem]:
        return self._find(
            self._query().where(InventoryItemModel.current_stock <= InventoryItemModel.reorder_point),
            "InventoryItemRepository.get_low_stock_items",
        )

    def get_out_of_stock_items(self) -> list[InventoryItem]:
        return self._find(
            self._query().where(InventoryItemModel.current_stock <= 0),
            "InventoryItemRepository.get_out_of_stock_items",
        )

    def search_items(self, term: str) -> list[InventoryItem]:
        """Case-insensitive substring match on name and SKU."""
        term = term.strip()[: Limits.MAX_SEARCH_TERM_LENGTH]
        if not term:
            return []
        pattern = f"%{term}%"
        return self._find(
            self._query().where(
                or_(InventoryItemModel.name.ilike(pattern), InventoryItemModel.sku.ilike(pattern))
            ),
            "InventoryItemRepository.search_items",
        )

    def check_stock_availability(self, item_id: str, quantity: float) -> bool:
        return self.get_by_id(item_id).can_fulfill(quantity)


class SQLStockMovementRepository(SQLRepository[StockMovementModel], StockMovementRepository):
    model = StockMovementModel
    entity_name = "Stock movement"

    def create(self, movement: StockMovement) -> None:
        row = StockMovementModel(
            id=movement.id,
            inventory_item_id=movement.inventory_item_id,
            type=movement.type.value,
            quantity=movement.quantity,
            previous_stock=movement.previous_stock,
            new_stock=movement.new_stock,
            notes=movement.notes,
            reference=movement.reference,
            performed_by=movement.performed_by,
            created_at=movement.created_at,
        )
        self._insert(row, "StockMovementRepository.create")

    def get_movements_by_item(self, item_id: str, limit: int | None = None) -> list[StockMovement]:
        """Newest first."""
        query = (
            select(StockMovementModel)
            .where(StockMovementModel.inventory_item_id == item_id)
            .order_by(StockMovementModel.created_at.desc())
        )
        if limit:
            query = query.limit(limit)
        return [
            movement_from_row(row)
            for row in self._scalars(query, "StockMovementRepository.get_movements_by_item")
        ]


class SQLSupplierRepository(SQLRepository[SupplierModel], SupplierRepository):
    model = SupplierModel
    entity_name = "Supplier"

    def create(self, supplier: Supplier) -> None:
        self._insert(SupplierModel(id=supplier.id, **supplier_to_values(supplier)), "SupplierRepository.create")

    def get_by_id(self, supplier_id: str) -> Supplier:
        with self._errors("SupplierRepository.get_by_id"):
            return supplier_from_row(self._get_row(supplier_id))

    def update(self, supplier: Supplier) -> None:
        self._plain_update(supplier.id, supplier_to_values(supplier), "SupplierRepository.update")

    def delete(self, supplier_id: str) -> None:
        self._delete(supplier_id, "SupplierRepository.delete")

    def list(self, filters: RepositoryFilters | None = None) -> list[Supplier]:
        filters = filters or RepositoryFilters()
        query = (
            select(SupplierModel)
            .order_by(SupplierModel.name.asc())
            .offset(filters.offset)
            .limit(filters.limit)
        )
        return [supplier_from_row(row) for row in self._scalars(query, "SupplierRepository.list")]

    def get_active_suppliers(self) -> list[Supplier]:
        query = select(SupplierModel).where(SupplierModel.is_active.is_(True)).order_by(SupplierModel.name.asc())
        return [
            supplier_from_row(row)
            for row in self._scalars(query, "SupplierRepository.get_active_suppliers")
        ]


def get_inventory_repositories(
    db: Session,
) -> tuple[SQLInventoryItemRepository, SQLStockMovementRepository, SQLSupplierRepository]:
    """Factory function for dependency injection."""
    return SQLInventoryItemRepository(db), SQLStockMovementRepository(db), SQLSupplierRepository(db)
