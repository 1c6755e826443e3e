"""
Domain event consumption.

EventDispatcher maps event types to async handlers. RedisStreamConsumer reads
the streams with a consumer group and feeds the dispatcher:

1. Ensures the consumer group exists (XGROUP CREATE ... MKSTREAM).
2. Reads new entries (>) via XREADGROUP.
3. Dispatches each decoded event under a correlation id.
4. Acknowledges (XACK). Handler failures are logged by the dispatcher, so
   every entry that reached it is acknowledged; malformed entries are
   logged and acknowledged too.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Iterable
from typing import Protocol

import redis.asyncio as redis
from redis.exceptions import ResponseError

from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.infrastructure.correlation import correlation_scope
from .event_schema import DomainEvent
from .publisher import EventHandler, decode_stream_fields

logger = get_logger(__name__)

ERROR_BASE_DELAY = 1.0  # seconds
ERROR_MAX_DELAY = 30.0
ERROR_JITTER_FACTOR = 0.3


def _calculate_error_backoff(error_count: int) -> float:
    """Exponential delay for consecutive loop errors, with up to 30% jitter."""
    delay = min(ERROR_BASE_DELAY * (2 ** (error_count - 1)), ERROR_MAX_DELAY)
    return delay + delay * ERROR_JITTER_FACTOR * random.random()


# =============================================================================
# Dispatcher
# =============================================================================


class EventDispatcher:
    """
    Registry of handlers by event type.

        dispatcher = EventDispatcher()
        dispatcher.register(KITCHEN_ORDER_STATUS_CHANGED, handler.on_kitchen_status_changed)
        await dispatcher.dispatch(event)
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}

    def register(self, event_type: str, handler: EventHandler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)

    def handlers_for(self, event_type: str) -> list[EventHandler]:
        return list(self._handlers.get(event_type, ()))

    @property
    def event_types(self) -> list[str]:
        return sorted(self._handlers)

    async def dispatch(self, event: DomainEvent) -> int:
        """
        Run every handler registered for the event type.

        Handler errors are logged and swallowed; cancellation propagates.

        Returns:
            Number of handlers that completed without error.
        """
        handled = 0
        with correlation_scope(event.id):
            for handler in self.handlers_for(event.type):
                try:
                    await handler(event)
                    handled += 1
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.error(
                        "Event handler failed",
                        event_type=event.type,
                        aggregate_id=event.aggregate_id,
                        handler=getattr(handler, "__qualname__", repr(handler)),
                        error=str(e),
                    )
        return handled

    def attach(self, bus: "SubscribableBus") -> None:
        """Subscribe this dispatcher to every registered type on an in-process bus."""
        for event_type in self.event_types:
            bus.subscribe(event_type, self.dispatch)


class SubscribableBus(Protocol):
    """Buses exposing subscribe(event_type, handler)."""

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        ...


# =============================================================================
# Redis Streams consumer
# =============================================================================


class RedisStreamConsumer:
    """
    Consumer-group reader over one or more streams.

    Use run() as a long-lived task; stop() ends the loop after the current
    batch. poll_once() processes a single batch (tests, cron-style workers).
    """

    def __init__(
        self,
        client: redis.Redis,
        streams: Iterable[str],
        group: str,
        dispatcher: EventDispatcher,
        consumer_name: str | None = None,
        batch_size: int | None = None,
        block_ms: int | None = None,
    ):
        self._client = client
        self._streams = list(streams)
        self._group = group
        self._dispatcher = dispatcher
        self._consumer_name = consumer_name or settings.event_consumer_name
        self._batch_size = batch_size or settings.event_consumer_batch_size
        self._block_ms = block_ms if block_ms is not None else settings.event_consumer_block_ms
        self._running = False
        self._groups_ready = False
        self._error_count = 0

    @property
    def running(self) -> bool:
        return self._running

    async def ensure_groups(self) -> None:
        """Create the consumer group on every stream, ignoring BUSYGROUP."""
        for stream in self._streams:
            try:
                await self._client.xgroup_create(
                    name=stream, groupname=self._group, id="$", mkstream=True
                )
                logger.info("Created consumer group", stream=stream, group=self._group)
            except ResponseError as e:
                if "BUSYGROUP" not in str(e):
                    logger.error("Error creating consumer group", stream=stream, error=str(e))
                    raise
                logger.debug("Consumer group already exists", stream=stream, group=self._group)
        self._groups_ready = True

    async def poll_once(self) -> int:
        """
        Read and process one batch.

        Returns:
            Number of entries acknowledged.
        """
        if not self._groups_ready:
            await self.ensure_groups()

        entries = await self._client.xreadgroup(
            groupname=self._group,
            consumername=self._consumer_name,
            streams={stream: ">" for stream in self._streams},
            count=self._batch_size,
            block=self._block_ms,
        )
        if not entries:
            return 0

        acked = 0
        # entries is [[stream_name, [[id, fields], ...]], ...]
        for stream_name, messages in entries:
            for message_id, fields in messages:
                await self._process(stream_name, message_id, fields)
                acked += 1
        return acked

    async def _process(self, stream: str, message_id: str, fields: dict) -> None:
        try:
            event = decode_stream_fields(fields)
        except ValueError as e:
            logger.error(
                "Malformed stream entry, skipping",
                stream=stream,
                msg_id=message_id,
                error=str(e),
            )
        else:
            await self._dispatcher.dispatch(event)

        await self._client.xack(stream, self._group, message_id)

    async def run(self) -> None:
        """Loop until cancelled or stop() is called."""
        self._running = True
        logger.info(
            "Starting stream consumer",
            streams=self._streams,
            group=self._group,
            consumer=self._consumer_name,
        )
        try:
            while self._running:
                try:
                    await self.poll_once()
                    self._error_count = 0
                except ResponseError as e:
                    if "NOGROUP" in str(e):
                        logger.warning("Consumer group missing, recreating", group=self._group)
                        self._groups_ready = False
                        continue
                    await self._backoff(e)
                except redis.RedisError as e:
                    await self._backoff(e)
        except asyncio.CancelledError:
            logger.info("Stream consumer cancelled")
            raise
        finally:
            self._running = False

    async def _backoff(self, error: Exception) -> None:
        self._error_count += 1
        delay = _calculate_error_backoff(self._error_count)
        logger.error(
            "Redis error in stream consumer loop",
            error=str(error),
            error_count=self._error_count,
            delay_seconds=round(delay, 2),
        )
        await asyncio.sleep(delay)

    def stop(self) -> None:
        self._running = False
