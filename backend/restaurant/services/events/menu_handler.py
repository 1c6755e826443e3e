"""
Menu consumer: follows ingredient stock on the active menus.

Items are matched by ingredient name (case-insensitive) against the
inventory item name.
"""

from __future__ import annotations

from restaurant.repositories.menu import MenuRepository
from restaurant.services.domain.base_service import run_blocking
from restaurant.services.domain.menu_service import MenuService
from shared.config.logging import menu_logger
from shared.infrastructure.events import (
    LOW_STOCK_ALERT,
    OUT_OF_STOCK_ALERT,
    STOCK_RECEIVED,
    DomainEvent,
)
from shared.infrastructure.events.payloads import StockAlertData, StockMovementData
from shared.infrastructure.events.publisher import EventHandler

from .base import BaseEventConsumer


class MenuEventHandler(BaseEventConsumer):
    name = "menu-consumer"

    def __init__(self, menu_service: MenuService, menus: MenuRepository):
        self._menu_service = menu_service
        self._menus = menus

    def subscriptions(self) -> dict[str, EventHandler]:
        return {
            OUT_OF_STOCK_ALERT: self.on_out_of_stock,
            LOW_STOCK_ALERT: self.on_low_stock,
            STOCK_RECEIVED: self.on_stock_received,
        }

    async def _set_availability(self, ingredient: str, is_available: bool) -> int:
        """Flip every active-menu item using the ingredient. Returns how many changed."""
        changed = 0
        matches = await run_blocking(self._menus.find_items_by_ingredient, ingredient)
        for menu, item in matches:
            if item.is_available is is_available:
                continue
            await self._menu_service.set_item_availability(menu.id, item.id, is_available)
            changed += 1
        return changed

    async def on_out_of_stock(self, event: DomainEvent) -> None:
        with self._handling(event):
            data = self._decode(event, StockAlertData)
            if not data.item_name:
                return
            changed = await self._set_availability(data.item_name, False)
            menu_logger.warning(
                "Menu items disabled by stock outage",
                ingredient=data.item_name,
                sku=data.sku,
                items=changed,
            )

    async def on_low_stock(self, event: DomainEvent) -> None:
        with self._handling(event):
            data = self._decode(event, StockAlertData)
            menu_logger.info(
                "Low stock on menu ingredient",
                ingredient=data.item_name,
                sku=data.sku,
                current_stock=data.current_stock,
                threshold=data.threshold,
            )

    async def on_stock_received(self, event: DomainEvent) -> None:
        with self._handling(event):
            data = self._decode(event, StockMovementData)
            if data.new_stock <= 0 or not data.item_name:
                return
            changed = await self._set_availability(data.item_name, True)
            if changed:
                menu_logger.info("Menu items restored by stock receipt", ingredient=data.item_name, items=changed)
