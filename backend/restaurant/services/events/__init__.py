"""
Cross-context event consumers.

Each consumer turns events from another bounded context into state changes
on its own aggregates, through that context's application service.
"""

from .base import BaseEventConsumer
from .order_handler import OrderEventHandler
from .kitchen_handler import KitchenEventHandler
from .reservation_handler import ReservationEventHandler
from .menu_handler import MenuEventHandler
from .registry import register_event_handlers

__all__ = [
    "BaseEventConsumer",
    "OrderEventHandler",
    "KitchenEventHandler",
    "ReservationEventHandler",
    "MenuEventHandler",
    "register_event_handlers",
]
