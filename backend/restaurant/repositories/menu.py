"""
Menu Repository - persistence for the Menu aggregate.

Categories and their items are stored together in one JSON column.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from restaurant.domain.menu import Menu, MenuCategory, MenuItem
from restaurant.models import MenuModel
from shared.utils.exceptions import ItemNotFoundError, NotFoundError
from shared.utils.ids import CategoryID, MenuID, MenuItemID

from .base import (
    RepositoryFilters,
    SQLRepository,
    dump_datetime,
    dump_duration,
    load_datetime,
    load_duration,
    row_datetime,
)


@dataclass
class MenuFilters(RepositoryFilters):
    is_active: bool | None = None


class MenuRepository(ABC):
    """Contract for Menu persistence."""

    @abstractmethod
    def create(self, menu: Menu) -> None: ...

    @abstractmethod
    def get_by_id(self, menu_id: str) -> Menu: ...

    @abstractmethod
    def get_active(self) -> Menu: ...

    @abstractmethod
    def update(self, menu: Menu) -> None: ...

    @abstractmethod
    def delete(self, menu_id: str) -> None: ...

    @abstractmethod
    def list(self, filters: MenuFilters | None = None) -> list[Menu]: ...

    @abstractmethod
    def get_menu_item(self, item_id: str) -> tuple[Menu, MenuItem]: ...

    @abstractmethod
    def get_available_items(self, menu_id: str) -> list[MenuItem]: ...

    @abstractmethod
    def find_items_by_ingredient(self, ingredient: str) -> list[tuple[Menu, MenuItem]]: ...


# =============================================================================
# Marshalling
# =============================================================================


def _item_to_json(item: MenuItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "category_id": item.category_id,
        "name": item.name,
        "description": item.description,
        "price": item.price,
        "is_available": item.is_available,
        "preparation_time": dump_duration(item.preparation_time),
        "ingredients": list(item.ingredients),
        "allergens": list(item.allergens),
        "nutritional_info": item.nutritional_info,
        "image_url": item.image_url,
        "display_order": item.display_order,
        "created_at": dump_datetime(item.created_at),
        "updated_at": dump_datetime(item.updated_at),
    }


def _item_from_json(data: dict[str, Any]) -> MenuItem:
    return MenuItem(
        id=MenuItemID(data["id"]),
        category_id=CategoryID(data["category_id"]),
        name=data["name"],
        price=float(data["price"]),
        description=data.get("description", ""),
        is_available=bool(data.get("is_available", True)),
        preparation_time=load_duration(data.get("preparation_time")),
        ingredients=list(data.get("ingredients") or []),
        allergens=list(data.get("allergens") or []),
        nutritional_info=data.get("nutritional_info", ""),
        image_url=data.get("image_url", ""),
        display_order=int(data.get("display_order", 0)),
        created_at=load_datetime(data.get("created_at")),
        updated_at=load_datetime(data.get("updated_at")),
    )


def _category_to_json(category: MenuCategory) -> dict[str, Any]:
    return {
        "id": category.id,
        "name": category.name,
        "description": category.description,
        "display_order": category.display_order,
        "items": [_item_to_json(item) for item in category.items],
        "created_at": dump_datetime(category.created_at),
        "updated_at": dump_datetime(category.updated_at),
    }


def _category_from_json(data: dict[str, Any]) -> MenuCategory:
    return MenuCategory(
        id=CategoryID(data["id"]),
        name=data["name"],
        description=data.get("description", ""),
        display_order=int(data.get("display_order", 0)),
        items=[_item_from_json(item) for item in data.get("items") or []],
        created_at=load_datetime(data.get("created_at")),
        updated_at=load_datetime(data.get("updated_at")),
    )


def menu_to_values(menu: Menu) -> dict[str, Any]:
    return {
        "name": menu.name,
        "version": menu.version,
        "is_active": menu.is_active,
        "start_date": menu.start_date,
        "end_date": menu.end_date,
        "categories": [_category_to_json(c) for c in menu.categories],
        "created_at": menu.created_at,
        "updated_at": menu.updated_at,
    }


def menu_from_row(row: MenuModel) -> Menu:
    return Menu(
        id=MenuID(row.id),
        name=row.name,
        version=row.version,
        categories=[_category_from_json(c) for c in row.categories or []],
        is_active=row.is_active,
        start_date=row_datetime(row.start_date),
        end_date=row_datetime(row.end_date),
        created_at=row_datetime(row.created_at),
        updated_at=row_datetime(row.updated_at),
        row_version=row.row_version,
    )


# =============================================================================
# SQLAlchemy implementation
# =============================================================================


class SQLMenuRepository(SQLRepository[MenuModel], MenuRepository):
    model = MenuModel
    entity_name = "Menu"

    def create(self, menu: Menu) -> None:
        self._insert(MenuModel(id=menu.id, row_version=1, **menu_to_values(menu)), "MenuRepository.create")
        menu.row_version = 1

    def get_by_id(self, menu_id: str) -> Menu:
        with self._errors("MenuRepository.get_by_id"):
            return menu_from_row(self._get_row(menu_id))

    def get_active(self) -> Menu:
        """The most recently started active menu."""
        rows = self._scalars(
            select(MenuModel)
            .where(MenuModel.is_active.is_(True))
            .order_by(MenuModel.start_date.desc())
            .limit(1),
            "MenuRepository.get_active",
        )
        if not rows:
            raise NotFoundError("Active menu")
        return menu_from_row(rows[0])

    def update(self, menu: Menu) -> None:
        menu.row_version = self._versioned_update(
            menu.id, menu.row_version, menu_to_values(menu), "MenuRepository.update"
        )

    def delete(self, menu_id: str) -> None:
        self._delete(menu_id, "MenuRepository.delete")

    def _query(self) -> Select:
        return select(MenuModel).order_by(MenuModel.created_at.desc())

    def list(self, filters: MenuFilters | None = None) -> list[Menu]:
        filters = filters or MenuFilters()
        query = self._query()
        if filters.is_active is not None:
            query = query.where(MenuModel.is_active.is_(filters.is_active))
        query = query.offset(filters.offset).limit(filters.limit)
        return [menu_from_row(row) for row in self._scalars(query, "MenuRepository.list")]

    def _active_menus(self, operation: str) -> list[Menu]:
        query = self._query().where(MenuModel.is_active.is_(True))
        return [menu_from_row(row) for row in self._scalars(query, operation)]

    def get_menu_item(self, item_id: str) -> tuple[Menu, MenuItem]:
        """Locate an item across all menus. Returns the owning menu and the item."""
        for row in self._scalars(self._query(), "MenuRepository.get_menu_item"):
            menu = menu_from_row(row)
            for item in menu.all_items():
                if item.id == item_id:
                    return menu, item
        raise ItemNotFoundError("Menu item", item_id)

    def get_available_items(self, menu_id: str) -> list[MenuItem]:
        return self.get_by_id(menu_id).available_items()

    def find_items_by_ingredient(self, ingredient: str) -> list[tuple[Menu, MenuItem]]:
        """Items on active menus that list the ingredient (case-insensitive)."""
        return [
            (menu, item)
            for menu in self._active_menus("MenuRepository.find_items_by_ingredient")
            for item in menu.items_with_ingredient(ingredient)
        ]


def get_menu_repository(db: Session) -> SQLMenuRepository:
    """Factory function for dependency injection."""
    return SQLMenuRepository(db)
