"""
Menu Service - menus, categories and item availability.
"""

from __future__ import annotations

from datetime import timedelta

from restaurant.domain.menu import Menu, MenuCategory, MenuItem
from restaurant.domain.user import User
from restaurant.repositories.menu import MenuFilters, MenuRepository
from restaurant.services.permissions import require_permission
from shared.config.constants import Actions, Resources
from shared.config.logging import menu_logger
from shared.infrastructure.events import (
    MENU_ACTIVATED,
    MENU_CREATED,
    MENU_DEACTIVATED,
    MENU_ITEM_AVAILABILITY_CHANGED,
    EventPublisher,
)
from shared.infrastructure.events.payloads import (
    ItemAvailabilityChangedData,
    MenuActivatedData,
    MenuCreatedData,
)

from .base_service import BaseDomainService


class MenuService(BaseDomainService):
    """Application service for the Menu aggregate."""

    service_name = "menu-service"

    def __init__(self, menus: MenuRepository, publisher: EventPublisher | None = None):
        super().__init__(publisher)
        self._menus = menus

    @require_permission(Resources.MENU, Actions.CREATE)
    async def create_menu(self, name: str, *, actor: User | None = None) -> Menu:
        menu = Menu.create(name)
        await self._run(self._menus.create, menu)
        menu_logger.info("Menu created", menu_id=menu.id, name=menu.name)

        await self._publish(
            MENU_CREATED,
            menu.id,
            MenuCreatedData(menu_id=menu.id, name=menu.name, version=menu.version, is_active=menu.is_active),
        )
        return menu

    async def get_menu(self, menu_id: str) -> Menu:
        return await self._run(self._menus.get_by_id, menu_id)

    async def get_active_menu(self) -> Menu:
        return await self._run(self._menus.get_active)

    async def list_menus(self, filters: MenuFilters | None = None) -> list[Menu]:
        return await self._run(self._menus.list, filters)

    # =========================================================================
    # Contents
    # =========================================================================

    @require_permission(Resources.MENU, Actions.UPDATE)
    async def add_category(
        self,
        menu_id: str,
        name: str,
        description: str = "",
        display_order: int = 0,
        *,
        actor: User | None = None,
    ) -> MenuCategory:
        menu = await self._run(self._menus.get_by_id, menu_id)
        category = menu.add_category(name, description, display_order)
        await self._run(self._menus.update, menu)
        return category

    @require_permission(Resources.MENU, Actions.UPDATE)
    async def add_item(
        self,
        menu_id: str,
        category_id: str,
        name: str,
        price: float,
        description: str = "",
        preparation_time: timedelta = timedelta(0),
        ingredients: list[str] | None = None,
        allergens: list[str] | None = None,
        *,
        actor: User | None = None,
    ) -> MenuItem:
        menu = await self._run(self._menus.get_by_id, menu_id)
        item = menu.add_menu_item(
            category_id,
            name,
            price,
            description=description,
            preparation_time=preparation_time,
            ingredients=ingredients,
            allergens=allergens,
        )
        await self._run(self._menus.update, menu)
        menu_logger.info("Menu item added", menu_id=menu.id, item_id=item.id, name=item.name)
        return item

    @require_permission(Resources.MENU, Actions.UPDATE)
    async def set_item_availability(
        self, menu_id: str, item_id: str, is_available: bool, *, actor: User | None = None
    ) -> MenuItem:
        menu = await self._run(self._menus.get_by_id, menu_id)
        item = menu.set_item_availability(item_id, is_available)
        await self._run(self._menus.update, menu)
        menu_logger.info(
            "Menu item availability changed",
            menu_id=menu.id,
            item_id=item.id,
            is_available=is_available,
        )

        await self._publish(
            MENU_ITEM_AVAILABILITY_CHANGED,
            menu.id,
            ItemAvailabilityChangedData(
                menu_id=menu.id,
                item_id=item.id,
                item_name=item.name,
                is_available=item.is_available,
                category_id=item.category_id,
            ),
        )
        return item

    async def get_available_items(self, menu_id: str) -> list[MenuItem]:
        return await self._run(self._menus.get_available_items, menu_id)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @require_permission(Resources.MENU, Actions.MANAGE)
    async def activate_menu(self, menu_id: str, *, actor: User | None = None) -> Menu:
        menu = await self._run(self._menus.get_by_id, menu_id)
        menu.activate()
        await self._run(self._menus.update, menu)
        menu_logger.info("Menu activated", menu_id=menu.id, version=menu.version)

        await self._publish(
            MENU_ACTIVATED,
            menu.id,
            MenuActivatedData(menu_id=menu.id, name=menu.name, version=menu.version),
        )
        return menu

    @require_permission(Resources.MENU, Actions.MANAGE)
    async def deactivate_menu(self, menu_id: str, *, actor: User | None = None) -> Menu:
        menu = await self._run(self._menus.get_by_id, menu_id)
        menu.deactivate()
        await self._run(self._menus.update, menu)
        menu_logger.info("Menu deactivated", menu_id=menu.id)

        await self._publish(
            MENU_DEACTIVATED,
            menu.id,
            MenuActivatedData(menu_id=menu.id, name=menu.name, version=menu.version),
        )
        return menu

    @require_permission(Resources.MENU, Actions.CREATE)
    async def clone_menu(self, menu_id: str, new_name: str = "", *, actor: User | None = None) -> Menu:
        """Copy a menu into a new inactive version. No event is published."""
        source = await self._run(self._menus.get_by_id, menu_id)
        menu = source.clone(new_name)
        await self._run(self._menus.create, menu)
        menu_logger.info("Menu cloned", source_menu_id=source.id, menu_id=menu.id, version=menu.version)
        return menu
