"""
Base Service Classes for the application layer.

Architecture:
    Caller → Service (orchestration) → Domain aggregate (rules)
                                     → Repository (persistence)
                                     → EventPublisher (notification)

Every mutating operation follows the same order: load the aggregate,
mutate it, persist it, then publish. Publication is best-effort: the
aggregate is already committed when the event goes out, so a publisher
failure is logged and never reaches the caller.

Repositories and bcrypt block, so services call them through _run, which
hands the call to a worker thread and keeps the event loop free.

Usage:
    class OrderService(BaseDomainService):
        service_name = "order-service"

        async def pay_order(self, order_id: str) -> Order:
            order = await self._run(self._orders.get_by_id, order_id)
            previous = order.update_status(OrderStatus.PAID)
            await self._run(self._orders.update, order)
            await self._publish(ORDER_PAID, order.id, OrderStatusChangedData(...))
            return order
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any, TypeVar

from pydantic import BaseModel

from shared.config.logging import get_logger
from shared.infrastructure.events import DomainEvent, EventPublisher, publish_best_effort

logger = get_logger(__name__)

T = TypeVar("T")


async def run_blocking(fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """
    Run a blocking call in a worker thread.

    A cancelled caller stops waiting immediately. The call itself still
    finishes in its thread, and each repository write is a single commit.
    """
    return await asyncio.to_thread(fn, *args, **kwargs)


class BaseDomainService:
    """
    Common infrastructure for services that publish domain events.

    The publisher is optional: a service built without one persists
    normally and publishes nothing.
    """

    service_name: str = "restaurant-service"

    _run = staticmethod(run_blocking)

    def __init__(self, publisher: EventPublisher | None = None):
        self._publisher = publisher

    @property
    def publisher(self) -> EventPublisher | None:
        """Event publisher, if any."""
        return self._publisher

    async def _publish(
        self,
        event_type: str,
        aggregate_id: str,
        payload: BaseModel,
        **metadata: Any,
    ) -> bool:
        """
        Build the event and hand it to the publisher.

        Returns:
            True if the publisher accepted the event.
        """
        event = DomainEvent.create(
            event_type,
            aggregate_id,
            payload,
            service=self.service_name,
            **metadata,
        )
        return await publish_best_effort(self._publisher, event)
