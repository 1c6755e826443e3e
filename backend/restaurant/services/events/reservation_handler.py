"""
Reservation consumer: menu changes are informational for bookings.
"""

from __future__ import annotations

from restaurant.services.domain.reservation_service import ReservationService
from shared.config.logging import reservation_logger
from shared.infrastructure.events import MENU_ACTIVATED, MENU_ITEM_AVAILABILITY_CHANGED, DomainEvent
from shared.infrastructure.events.payloads import ItemAvailabilityChangedData, MenuActivatedData
from shared.infrastructure.events.publisher import EventHandler

from .base import BaseEventConsumer


class ReservationEventHandler(BaseEventConsumer):
    name = "reservation-consumer"

    def __init__(self, reservations: ReservationService):
        self._reservations = reservations

    def subscriptions(self) -> dict[str, EventHandler]:
        return {
            MENU_ACTIVATED: self.on_menu_activated,
            MENU_ITEM_AVAILABILITY_CHANGED: self.on_item_availability_changed,
        }

    async def on_menu_activated(self, event: DomainEvent) -> None:
        with self._handling(event):
            data = self._decode(event, MenuActivatedData)
            upcoming = await self._reservations.get_upcoming()
            reservation_logger.info(
                "Menu activated",
                menu_id=data.menu_id,
                version=data.version,
                upcoming_reservations=len(upcoming),
            )

    async def on_item_availability_changed(self, event: DomainEvent) -> None:
        with self._handling(event):
            data = self._decode(event, ItemAvailabilityChangedData)
            upcoming = await self._reservations.get_upcoming()
            reservation_logger.info(
                "Menu item availability changed",
                item_id=data.item_id,
                item_name=data.item_name,
                is_available=data.is_available,
                upcoming_reservations=len(upcoming),
            )
