"""
Kitchen Order Repository - persistence for kitchen tickets.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from restaurant.domain.kitchen import KitchenItem, KitchenOrder
from restaurant.models import KitchenOrderModel
from shared.config.constants import (
    ACTIVE_KITCHEN_STATUSES,
    KitchenItemStatus,
    KitchenOrderStatus,
    KitchenPriority,
)
from shared.utils.exceptions import NotFoundError, parse_enum
from shared.utils.ids import KitchenItemID, KitchenOrderID

from .base import (
    RepositoryFilters,
    SQLRepository,
    compact,
    dump_datetime,
    dump_duration,
    load_datetime,
    load_duration,
    row_datetime,
)


@dataclass
class KitchenOrderFilters(RepositoryFilters):
    """Filters specific to kitchen tickets."""

    status: KitchenOrderStatus | None = None
    priority: KitchenPriority | None = None
    station: str | None = None
    order_id: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None


class KitchenOrderRepository(ABC):
    """Contract for KitchenOrder persistence."""

    @abstractmethod
    def create(self, kitchen_order: KitchenOrder) -> None: ...

    @abstractmethod
    def get_by_id(self, kitchen_order_id: str) -> KitchenOrder: ...

    @abstractmethod
    def get_by_order_id(self, order_id: str) -> KitchenOrder: ...

    @abstractmethod
    def update(self, kitchen_order: KitchenOrder) -> None: ...

    @abstractmethod
    def delete(self, kitchen_order_id: str) -> None: ...

    @abstractmethod
    def list(self, filters: KitchenOrderFilters | None = None) -> list[KitchenOrder]: ...

    @abstractmethod
    def count(self, filters: KitchenOrderFilters | None = None) -> int: ...

    @abstractmethod
    def find_by_status(self, status: KitchenOrderStatus) -> list[KitchenOrder]: ...

    @abstractmethod
    def find_by_station(self, station_id: str) -> list[KitchenOrder]: ...

    @abstractmethod
    def find_active(self) -> list[KitchenOrder]: ...


# =============================================================================
# Marshalling
# =============================================================================


def _item_to_json(item: KitchenItem) -> dict[str, Any]:
    return compact({
        "id": item.id,
        "menu_item_id": item.menu_item_id,
        "name": item.name,
        "quantity": item.quantity,
        "status": item.status.value,
        "prep_time": dump_duration(item.prep_time),
        "started_at": dump_datetime(item.started_at),
        "completed_at": dump_datetime(item.completed_at),
        "assigned_station": item.assigned_station,
        "notes": item.notes,
        "modifications": list(item.modifications),
    })


def _item_from_json(data: dict[str, Any]) -> KitchenItem:
    return KitchenItem(
        id=KitchenItemID(data["id"]),
        menu_item_id=data["menu_item_id"],
        name=data.get("name", ""),
        quantity=int(data["quantity"]),
        status=KitchenItemStatus(data.get("status", KitchenItemStatus.NEW)),
        prep_time=load_duration(data.get("prep_time")),
        started_at=load_datetime(data.get("started_at")),
        completed_at=load_datetime(data.get("completed_at")),
        assigned_station=data.get("assigned_station", ""),
        notes=data.get("notes", ""),
        modifications=list(data.get("modifications") or []),
    )


def kitchen_order_to_values(ko: KitchenOrder) -> dict[str, Any]:
    return {
        "order_id": ko.order_id,
        "table_id": ko.table_id,
        "status": ko.status.value,
        "priority": ko.priority.value,
        "assigned_station": ko.assigned_station,
        "estimated_time": dump_duration(ko.estimated_time),
        "started_at": ko.started_at,
        "completed_at": ko.completed_at,
        "notes": ko.notes,
        "items": [_item_to_json(item) for item in ko.items],
        "created_at": ko.created_at,
        "updated_at": ko.updated_at,
    }


def kitchen_order_from_row(row: KitchenOrderModel) -> KitchenOrder:
    return KitchenOrder(
        id=KitchenOrderID(row.id),
        order_id=row.order_id,
        table_id=row.table_id,
        status=KitchenOrderStatus(row.status),
        items=[_item_from_json(data) for data in row.items or []],
        priority=KitchenPriority(row.priority),
        assigned_station=row.assigned_station,
        estimated_time=load_duration(row.estimated_time),
        started_at=row_datetime(row.started_at),
        completed_at=row_datetime(row.completed_at),
        notes=row.notes,
        created_at=row_datetime(row.created_at),
        updated_at=row_datetime(row.updated_at),
        row_version=row.row_version,
    )


# =============================================================================
# SQLAlchemy implementation
# =============================================================================


class SQLKitchenOrderRepository(SQLRepository[KitchenOrderModel], KitchenOrderRepository):
    model = KitchenOrderModel
    entity_name = "Kitchen order"

    def create(self, kitchen_order: KitchenOrder) -> None:
        row = KitchenOrderModel(id=kitchen_order.id, row_version=1, **kitchen_order_to_values(kitchen_order))
        self._insert(row, "KitchenOrderRepository.create")
        kitchen_order.row_version = 1

    def get_by_id(self, kitchen_order_id: str) -> KitchenOrder:
        with self._errors("KitchenOrderRepository.get_by_id"):
            return kitchen_order_from_row(self._get_row(kitchen_order_id))

    def get_by_order_id(self, order_id: str) -> KitchenOrder:
        rows = self._scalars(
            select(KitchenOrderModel).where(KitchenOrderModel.order_id == order_id),
            "KitchenOrderRepository.get_by_order_id",
        )
        if not rows:
            raise NotFoundError(self.entity_name, code=None, order_id=order_id)
        return kitchen_order_from_row(rows[0])

    def update(self, kitchen_order: KitchenOrder) -> None:
        kitchen_order.row_version = self._versioned_update(
            kitchen_order.id,
            kitchen_order.row_version,
            kitchen_order_to_values(kitchen_order),
            "KitchenOrderRepository.update",
        )

    def delete(self, kitchen_order_id: str) -> None:
        self._delete(kitchen_order_id, "KitchenOrderRepository.delete")

    def _query(self) -> Select:
        # Oldest first: the kitchen works the queue in arrival order
        return select(KitchenOrderModel).order_by(KitchenOrderModel.created_at.asc())

    def _find(self, query: Select, operation: str) -> list[KitchenOrder]:
        return [kitchen_order_from_row(row) for row in self._scalars(query, operation)]

    def _apply_filters(self, query: Select, filters: KitchenOrderFilters) -> Select:
        if filters.status:
            status = parse_enum(KitchenOrderStatus, filters.status, "status")
            query = query.where(KitchenOrderModel.status == status.value)
        if filters.priority:
            priority = parse_enum(KitchenPriority, filters.priority, "priority")
            query = query.where(KitchenOrderModel.priority == priority.value)
        if filters.station:
            query = query.where(KitchenOrderModel.assigned_station == filters.station)
        if filters.order_id:
            query = query.where(KitchenOrderModel.order_id == filters.order_id)
        if filters.date_from:
            query = query.where(KitchenOrderModel.created_at >= filters.date_from)
        if filters.date_to:
            query = query.where(KitchenOrderModel.created_at <= filters.date_to)
        return query

    def list(self, filters: KitchenOrderFilters | None = None) -> list[KitchenOrder]:
        filters = filters or KitchenOrderFilters()
        query = self._apply_filters(self._query(), filters).offset(filters.offset).limit(filters.limit)
        return self._find(query, "KitchenOrderRepository.list")

    def count(self, filters: KitchenOrderFilters | None = None) -> int:
        filters = filters or KitchenOrderFilters()
        return self._count(self._apply_filters(self._query(), filters), "KitchenOrderRepository.count")

    def find_by_status(self, status: KitchenOrderStatus) -> list[KitchenOrder]:
        status = parse_enum(KitchenOrderStatus, status, "status")
        return self._find(
            self._query().where(KitchenOrderModel.status == status.value),
            "KitchenOrderRepository.find_by_status",
        )

    def find_by_station(self, station_id: str) -> list[KitchenOrder]:
        return self._find(
            self._query().where(KitchenOrderModel.assigned_station == station_id),
            "KitchenOrderRepository.find_by_station",
        )

    def find_active(self) -> list[KitchenOrder]:
        statuses = [s.value for s in ACTIVE_KITCHEN_STATUSES]
        return self._find(
            self._query().where(KitchenOrderModel.status.in_(statuses)),
            "KitchenOrderRepository.find_active",
        )


def get_kitchen_order_repository(db: Session) -> SQLKitchenOrderRepository:
    """Factory function for dependency injection."""
    return SQLKitchenOrderRepository(db)
