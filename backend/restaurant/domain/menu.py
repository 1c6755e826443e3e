"""
Menu aggregate: Menu → MenuCategory → MenuItem.

Category names are unique within a menu, item names unique within their
category. A cloned menu gets the next version number and starts inactive.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from shared.utils.clock import utcnow
from shared.utils.exceptions import (
    BusinessRuleError,
    DuplicateEntityError,
    ErrorCode,
    ItemNotFoundError,
    NotFoundError,
    ValidationError,
)
from shared.utils.ids import (
    CategoryID,
    MenuID,
    MenuItemID,
    new_category_id,
    new_menu_id,
    new_menu_item_id,
)


@dataclass
class MenuItem:
    id: MenuItemID
    category_id: CategoryID
    name: str
    price: float
    description: str = ""
    is_available: bool = True
    preparation_time: timedelta = timedelta(0)
    ingredients: list[str] = field(default_factory=list)
    allergens: list[str] = field(default_factory=list)
    nutritional_info: str = ""
    image_url: str = ""
    display_order: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def uses_ingredient(self, ingredient: str) -> bool:
        """Case-insensitive match against the ingredient list."""
        needle = ingredient.strip().lower()
        return any(i.strip().lower() == needle for i in self.ingredients)


@dataclass
class MenuCategory:
    id: CategoryID
    name: str
    description: str = ""
    items: list[MenuItem] = field(default_factory=list)
    display_order: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


def _validate_item_fields(name: str, price: float, op: str) -> None:
    if not name:
        raise ValidationError("menu item name is required", field="name", op=op)
    if price < 0:
        raise ValidationError("price cannot be negative", field="price", op=op)


@dataclass
class Menu:
    """Menu aggregate root."""

    id: MenuID
    name: str
    version: int = 1
    categories: list[MenuCategory] = field(default_factory=list)
    is_active: bool = True
    start_date: datetime = field(default_factory=utcnow)
    end_date: datetime | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    # Maintained by repositories for optimistic concurrency
    row_version: int = 0

    @classmethod
    def create(cls, name: str) -> "Menu":
        if not name:
            raise ValidationError("menu name is required", field="name", op="Menu.create")
        now = utcnow()
        return cls(id=new_menu_id(), name=name, start_date=now, created_at=now, updated_at=now)

    # =========================================================================
    # Categories
    # =========================================================================

    def add_category(self, name: str, description: str = "", display_order: int = 0) -> MenuCategory:
        if not name:
            raise ValidationError("category name is required", field="name", op="Menu.add_category")
        if any(c.name == name for c in self.categories):
            raise DuplicateEntityError("Category", name, op="Menu.add_category", menu_id=self.id)

        now = utcnow()
        category = MenuCategory(
            id=new_category_id(),
            name=name,
            description=description,
            display_order=display_order,
            created_at=now,
            updated_at=now,
        )
        self.categories.append(category)
        self.updated_at = now
        return category

    def get_category(self, category_id: str) -> MenuCategory:
        for category in self.categories:
            if category.id == category_id:
                return category
        raise NotFoundError("Category", category_id, menu_id=self.id)

    def update_category(
        self, category_id: str, name: str, description: str = "", display_order: int = 0
    ) -> None:
        if not name:
            raise ValidationError("category name is required", field="name", op="Menu.update_category")
        category = self.get_category(category_id)
        if any(c.id != category_id and c.name == name for c in self.categories):
            raise DuplicateEntityError("Category", name, op="Menu.update_category", menu_id=self.id)

        category.name = name
        category.description = description
        category.display_order = display_order
        category.updated_at = utcnow()
        self.updated_at = category.updated_at

    def remove_category(self, category_id: str) -> None:
        category = self.get_category(category_id)
        if category.items:
            raise BusinessRuleError(
                ErrorCode.CATEGORY_NOT_EMPTY,
                "cannot remove a category that still has items",
                op="Menu.remove_category",
                category_id=category_id,
            )
        self.categories.remove(category)
        self.updated_at = utcnow()

    # =========================================================================
    # Items
    # =========================================================================

    def add_menu_item(
        self,
        category_id: str,
        name: str,
        price: float,
        description: str = "",
        preparation_time: timedelta = timedelta(0),
        ingredients: list[str] | None = None,
        allergens: list[str] | None = None,
        nutritional_info: str = "",
        image_url: str = "",
        display_order: int = 0,
    ) -> MenuItem:
        _validate_item_fields(name, price, "Menu.add_menu_item")
        category = self.get_category(category_id)
        if any(i.name == name for i in category.items):
            raise DuplicateEntityError("Menu item", name, op="Menu.add_menu_item", category_id=category_id)

        now = utcnow()
        item = MenuItem(
            id=new_menu_item_id(),
            category_id=category.id,
            name=name,
            price=price,
            description=description,
            preparation_time=preparation_time,
            ingredients=list(ingredients or []),
            allergens=list(allergens or []),
            nutritional_info=nutritional_info,
            image_url=image_url,
            display_order=display_order,
            created_at=now,
            updated_at=now,
        )
        category.items.append(item)
        category.updated_at = now
        self.updated_at = now
        return item

    def _locate(self, item_id: str) -> tuple[MenuCategory, MenuItem]:
        for category in self.categories:
            for item in category.items:
                if item.id == item_id:
                    return category, item
        raise ItemNotFoundError("Menu item", item_id, menu_id=self.id)

    def update_menu_item(
        self,
        item_id: str,
        name: str,
        price: float,
        description: str = "",
        preparation_time: timedelta = timedelta(0),
        ingredients: list[str] | None = None,
        allergens: list[str] | None = None,
        nutritional_info: str = "",
        image_url: str = "",
        display_order: int = 0,
        is_available: bool = True,
    ) -> MenuItem:
        _validate_item_fields(name, price, "Menu.update_menu_item")
        category, item = self._locate(item_id)
        if any(i.id != item_id and i.name == name for i in category.items):
            raise DuplicateEntityError(
                "Menu item", name, op="Menu.update_menu_item", category_id=category.id
            )

        item.name = name
        item.price = price
        item.description = description
        item.preparation_time = preparation_time
        item.ingredients = list(ingredients or [])
        item.allergens = list(allergens or [])
        item.nutritional_info = nutritional_info
        item.image_url = image_url
        item.display_order = display_order
        item.is_available = is_available
        self._touch_item(category, item)
        return item

    def remove_menu_item(self, item_id: str) -> None:
        category, item = self._locate(item_id)
        category.items.remove(item)
        category.updated_at = utcnow()
        self.updated_at = category.updated_at

    def set_item_availability(self, item_id: str, is_available: bool) -> MenuItem:
        category, item = self._locate(item_id)
        item.is_available = is_available
        self._touch_item(category, item)
        return item

    def find_item(self, item_id: str) -> MenuItem:
        return self._locate(item_id)[1]

    def all_items(self) -> list[MenuItem]:
        return [item for category in self.categories for item in category.items]

    def available_items(self) -> list[MenuItem]:
        return [item for item in self.all_items() if item.is_available]

    def items_with_ingredient(self, ingredient: str) -> list[MenuItem]:
        return [item for item in self.all_items() if item.uses_ingredient(ingredient)]

    def _touch_item(self, category: MenuCategory, item: MenuItem) -> None:
        now = utcnow()
        item.updated_at = now
        category.updated_at = now
        self.updated_at = now

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def activate(self) -> None:
        self.is_active = True
        self.end_date = None
        self.updated_at = utcnow()

    def deactivate(self) -> None:
        now = utcnow()
        self.is_active = False
        self.end_date = now
        self.updated_at = now

    def clone(self, new_name: str = "") -> "Menu":
        """Copy into a new inactive menu with the next version and fresh ids."""
        now = utcnow()
        copy = Menu(
            id=new_menu_id(),
            name=new_name or f"{self.name} (Copy)",
            version=self.version + 1,
            is_active=False,
            start_date=now,
            created_at=now,
            updated_at=now,
        )
        for category in self.categories:
            new_category = copy.add_category(category.name, category.description, category.display_order)
            for item in category.items:
                copy.add_menu_item(
                    new_category.id,
                    item.name,
                    item.price,
                    description=item.description,
                    preparation_time=item.preparation_time,
                    ingredients=item.ingredients,
                    allergens=item.allergens,
                    nutritional_info=item.nutritional_info,
                    image_url=item.image_url,
                    display_order=item.display_order,
                )
        return copy
