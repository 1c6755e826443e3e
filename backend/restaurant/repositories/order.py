"""
Order Repository - persistence for the Order aggregate.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from restaurant.domain.order import Order, OrderItem
from restaurant.models import OrderModel
from shared.config.constants import ACTIVE_ORDER_STATUSES, OrderStatus, OrderType
from shared.utils.exceptions import parse_enum
from shared.utils.ids import OrderID, OrderItemID

from .base import RepositoryFilters, SQLRepository, row_datetime

# Statuses that count as revenue
SALES_STATUSES = (
    OrderStatus.PAID,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.COMPLETED,
)


@dataclass
class OrderFilters(RepositoryFilters):
    """Filters specific to orders."""

    customer_id: str | None = None
    status: OrderStatus | None = None
    type: OrderType | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    table_id: str | None = None
    min_amount: float | None = None
    max_amount: float | None = None


class OrderRepository(ABC):
    """Contract for Order persistence."""

    @abstractmethod
    def create(self, order: Order) -> None: ...

    @abstractmethod
    def get_by_id(self, order_id: str) -> Order: ...

    @abstractmethod
    def update(self, order: Order) -> None: ...

    @abstractmethod
    def delete(self, order_id: str) -> None: ...

    @abstractmethod
    def list(self, filters: OrderFilters | None = None) -> tuple[list[Order], int]: ...

    @abstractmethod
    def find_by_customer(self, customer_id: str) -> list[Order]: ...

    @abstractmethod
    def find_by_status(self, status: OrderStatus) -> list[Order]: ...

    @abstractmethod
    def find_by_table(self, table_id: str) -> list[Order]: ...

    @abstractmethod
    def find_by_type(self, order_type: OrderType) -> list[Order]: ...

    @abstractmethod
    def find_by_date_range(self, start: datetime, end: datetime) -> list[Order]: ...

    @abstractmethod
    def find_active(self) -> list[Order]: ...

    @abstractmethod
    def total_sales(self, start: datetime, end: datetime) -> tuple[int, float]: ...


# =============================================================================
# Marshalling
# =============================================================================


def _item_to_json(item: OrderItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "menu_item_id": item.menu_item_id,
        "name": item.name,
        "quantity": item.quantity,
        "unit_price": item.unit_price,
        "modifications": list(item.modifications),
        "notes": item.notes,
    }


def _item_from_json(data: dict[str, Any]) -> OrderItem:
    return OrderItem(
        id=OrderItemID(data["id"]),
        menu_item_id=data["menu_item_id"],
        name=data.get("name", ""),
        quantity=int(data["quantity"]),
        unit_price=float(data["unit_price"]),
        modifications=list(data.get("modifications") or []),
        notes=data.get("notes", ""),
    )


def order_to_values(order: Order) -> dict[str, Any]:
    return {
        "customer_id": order.customer_id,
        "type": order.type.value,
        "status": order.status.value,
        "table_id": order.table_id,
        "delivery_address": order.delivery_address,
        "notes": order.notes,
        "total_amount": order.total_amount,
        "tax_amount": order.tax_amount,
        "items": [_item_to_json(item) for item in order.items],
        "created_at": order.created_at,
        "updated_at": order.updated_at,
    }


def order_from_row(row: OrderModel) -> Order:
    return Order(
        id=OrderID(row.id),
        customer_id=row.customer_id,
        type=OrderType(row.type),
        status=OrderStatus(row.status),
        items=[_item_from_json(data) for data in row.items or []],
        total_amount=row.total_amount,
        tax_amount=row.tax_amount,
        table_id=row.table_id,
        delivery_address=row.delivery_address,
        notes=row.notes,
        created_at=row_datetime(row.created_at),
        updated_at=row_datetime(row.updated_at),
        row_version=row.row_version,
    )


# =============================================================================
# SQLAlchemy implementation
# =============================================================================


class SQLOrderRepository(SQLRepository[OrderModel], OrderRepository):
    model = OrderModel
    entity_name = "Order"

    def create(self, order: Order) -> None:
        self._insert(OrderModel(id=order.id, row_version=1, **order_to_values(order)), "OrderRepository.create")
        order.row_version = 1

    def get_by_id(self, order_id: str) -> Order:
        with self._errors("OrderRepository.get_by_id"):
            return order_from_row(self._get_row(order_id))

    def update(self, order: Order) -> None:
        order.row_version = self._versioned_update(
            order.id, order.row_version, order_to_values(order), "OrderRepository.update"
        )

    def delete(self, order_id: str) -> None:
        self._delete(order_id, "OrderRepository.delete")

    def _query(self) -> Select:
        return select(OrderModel).order_by(OrderModel.created_at.desc())

    def _find(self, query: Select, operation: str) -> list[Order]:
        return [order_from_row(row) for row in self._scalars(query, operation)]

    def _apply_filters(self, query: Select, filters: OrderFilters) -> Select:
        if filters.customer_id:
            query = query.where(OrderModel.customer_id == filters.customer_id)
        if filters.status:
            status = parse_enum(OrderStatus, filters.status, "status")
            query = query.where(OrderModel.status == status.value)
        if filters.type:
            order_type = parse_enum(OrderType, filters.type, "order_type")
            query = query.where(OrderModel.type == order_type.value)
        if filters.start_date:
            query = query.where(OrderModel.created_at >= filters.start_date)
        if filters.end_date:
            query = query.where(OrderModel.created_at <= filters.end_date)
        if filters.table_id:
            query = query.where(OrderModel.table_id == filters.table_id)
        if filters.min_amount is not None:
            query = query.where(OrderModel.total_amount >= filters.min_amount)
        if filters.max_amount is not None:
            query = query.where(OrderModel.total_amount <= filters.max_amount)
        return query

    def list(self, filters: OrderFilters | None = None) -> tuple[list[Order], int]:
        """Page of orders, newest first, plus the total matching count."""
        filters = filters or OrderFilters()
        query = self._apply_filters(self._query(), filters)
        total = self._count(query, "OrderRepository.list")
        page = query.offset(filters.offset).limit(filters.limit)
        return self._find(page, "OrderRepository.list"), total

    def find_by_customer(self, customer_id: str) -> list[Order]:
        return self._find(
            self._query().where(OrderModel.customer_id == customer_id),
            "OrderRepository.find_by_customer",
        )

    def find_by_status(self, status: OrderStatus) -> list[Order]:
        status = parse_enum(OrderStatus, status, "status")
        return self._find(
            self._query().where(OrderModel.status == status.value),
            "OrderRepository.find_by_status",
        )

    def find_by_table(self, table_id: str) -> list[Order]:
        return self._find(
            self._query().where(OrderModel.table_id == table_id),
            "OrderRepository.find_by_table",
        )

    def find_by_type(self, order_type: OrderType) -> list[Order]:
        order_type = parse_enum(OrderType, order_type, "order_type")
        return self._find(
            self._query().where(OrderModel.type == order_type.value),
            "OrderRepository.find_by_type",
        )

    def find_by_date_range(self, start: datetime, end: datetime) -> list[Order]:
        return self._find(
            self._query().where(OrderModel.created_at >= start, OrderModel.created_at <= end),
            "OrderRepository.find_by_date_range",
        )

    def find_active(self) -> list[Order]:
        statuses = [s.value for s in ACTIVE_ORDER_STATUSES]
        return self._find(
            self._query().where(OrderModel.status.in_(statuses)),
            "OrderRepository.find_active",
        )

    def total_sales(self, start: datetime, end: datetime) -> tuple[int, float]:
        """Order count and summed total of paid-or-later orders created in [start, end]."""
        query = select(func.count(), func.coalesce(func.sum(OrderModel.total_amount), 0.0)).where(
            OrderModel.status.in_([s.value for s in SALES_STATUSES]),
            OrderModel.created_at >= start,
            OrderModel.created_at <= end,
        )
        with self._errors("OrderRepository.total_sales"):
            count, total = self._db.execute(query).one()
        return int(count), float(total)


def get_order_repository(db: Session) -> SQLOrderRepository:
    """Factory function for dependency injection."""
    return SQLOrderRepository(db)
