"""
Wiring of consumers to a dispatcher.
"""

from __future__ import annotations

from shared.config.logging import get_logger
from shared.infrastructure.events import EventDispatcher

from .base import BaseEventConsumer

logger = get_logger(__name__)


def register_event_handlers(dispatcher: EventDispatcher, *consumers: BaseEventConsumer | None) -> EventDispatcher:
    """
    Register every subscription of each consumer. None entries are skipped,
    so a deployment can pass only the consumers it runs.

    Usage:
        dispatcher = register_event_handlers(
            EventDispatcher(),
            OrderEventHandler(order_service),
            KitchenEventHandler(kitchen_service),
        )
        dispatcher.attach(bus)
    """
    for consumer in consumers:
        if consumer is None:
            continue
        for event_type, handler in consumer.subscriptions().items():
            dispatcher.register(event_type, handler)
        logger.info(
            "Event consumer registered",
            consumer=consumer.name,
            event_types=sorted(consumer.subscriptions()),
        )
    return dispatcher
