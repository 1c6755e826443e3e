"""
Process wiring for the restaurant core.

lifespan() opens one database session and the shared Redis client, builds
the repositories, services and event consumers on top of them, and tears
everything down in reverse order on exit.

Usage:
    async with lifespan() as core:
        order = await core.orders.create_order(...)
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import redis.asyncio as redis
from sqlalchemy.orm import Session

from restaurant.models import Base
from restaurant.repositories import (
    get_inventory_repositories,
    get_kitchen_order_repository,
    get_menu_repository,
    get_order_repository,
    get_reservation_repository,
    get_user_repositories,
)
from restaurant.services.domain import (
    AuthService,
    InventoryService,
    KitchenService,
    MenuService,
    OrderService,
    ReservationService,
)
from restaurant.services.events import (
    KitchenEventHandler,
    MenuEventHandler,
    OrderEventHandler,
    ReservationEventHandler,
    register_event_handlers,
)
from shared.config.logging import core_logger as logger
from shared.config.logging import setup_logging
from shared.config.settings import settings
from shared.infrastructure.db import get_db_context, get_engine
from shared.infrastructure.events import (
    ALL_STREAMS,
    EventDispatcher,
    RedisStreamConsumer,
    RedisStreamPublisher,
    close_redis_pool,
    get_redis_pool,
)


@dataclass
class RestaurantCore:
    """Services and event plumbing sharing one session and one Redis client."""

    db: Session
    publisher: RedisStreamPublisher
    dispatcher: EventDispatcher
    consumer: RedisStreamConsumer
    orders: OrderService
    kitchen: KitchenService
    reservations: ReservationService
    menus: MenuService
    inventory: InventoryService
    auth: AuthService


def build_core(db: Session, client: redis.Redis) -> RestaurantCore:
    """Wire repositories, services and stream consumers. Nothing is started."""
    publisher = RedisStreamPublisher(client)
    menu_repo = get_menu_repository(db)

    orders = OrderService(get_order_repository(db), publisher)
    kitchen = KitchenService(get_kitchen_order_repository(db), publisher)
    reservations = ReservationService(get_reservation_repository(db), publisher)
    menus = MenuService(menu_repo, publisher)
    inventory = InventoryService(*get_inventory_repositories(db), publisher=publisher)
    auth = AuthService(*get_user_repositories(db))

    dispatcher = register_event_handlers(
        EventDispatcher(),
        OrderEventHandler(orders),
        KitchenEventHandler(kitchen),
        ReservationEventHandler(reservations),
        MenuEventHandler(menus, menu_repo),
    )
    consumer = RedisStreamConsumer(client, ALL_STREAMS, settings.event_consumer_group, dispatcher)

    return RestaurantCore(
        db=db,
        publisher=publisher,
        dispatcher=dispatcher,
        consumer=consumer,
        orders=orders,
        kitchen=kitchen,
        reservations=reservations,
        menus=menus,
        inventory=inventory,
        auth=auth,
    )


@asynccontextmanager
async def lifespan(start_consumer: bool = True) -> AsyncIterator[RestaurantCore]:
    """
    Start the restaurant core and stop it on exit.

    With start_consumer the stream consumer runs as a background task;
    without it callers drive core.consumer.poll_once() themselves.

    Raises:
        RuntimeError: Production settings fail the secrets check.
    """
    setup_logging()

    secret_errors = settings.validate_production_secrets()
    if secret_errors:
        for error in secret_errors:
            logger.error("Configuration error: %s", error)
        if settings.environment == "production":
            raise RuntimeError(
                f"Production configuration errors: {'; '.join(secret_errors)}. "
                "Refusing to start with insecure configuration."
            )
        logger.warning("Running with insecure defaults (acceptable for development only)")

    logger.info("Starting restaurant core", env=settings.environment)

    Base.metadata.create_all(bind=get_engine())
    logger.info("Database tables created/verified")

    client = await get_redis_pool()
    try:
        with get_db_context() as db:
            core = build_core(db, client)
            consumer_task: asyncio.Task | None = None
            if start_consumer:
                await core.consumer.ensure_groups()
                consumer_task = asyncio.create_task(core.consumer.run())
                logger.info("Stream consumer started", group=settings.event_consumer_group)
            try:
                yield core
            finally:
                if consumer_task is not None:
                    core.consumer.stop()
                    consumer_task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await consumer_task
    finally:
        await close_redis_pool()
        logger.info("Restaurant core stopped")
