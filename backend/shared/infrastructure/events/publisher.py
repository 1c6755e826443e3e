"""
Event publication.

Two publishers satisfy the EventPublisher protocol:
- RedisStreamPublisher appends to Redis streams with retry, jitter and a
  circuit breaker.
- InMemoryEventBus records events and fans them out in-process (tests and
  single-process deployments).

Services never call publish() directly; they go through publish_best_effort,
which logs failures instead of raising them.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Protocol, runtime_checkable

import redis.asyncio as redis

from shared.config.logging import get_logger
from shared.config.settings import settings
from .channels import stream_for_event_type
from .circuit_breaker import (
    EventCircuitBreaker,
    calculate_retry_delay_with_jitter,
    get_event_circuit_breaker,
)
from .event_schema import DomainEvent, format_timestamp
from .event_types import MAX_EVENT_SIZE

logger = get_logger(__name__)

EventHandler = Callable[[DomainEvent], Awaitable[None]]


class EventPublishError(Exception):
    """Raised by publishers when an event could not be delivered."""


class EventTooLargeError(EventPublishError):
    """Serialized event exceeds the configured size limit."""


@runtime_checkable
class EventPublisher(Protocol):
    """Anything that can publish domain events."""

    async def publish(self, event: DomainEvent) -> None:
        ...

    async def close(self) -> None:
        ...


# =============================================================================
# Redis Streams
# =============================================================================


def encode_stream_fields(event: DomainEvent) -> dict[str, str]:
    """Flatten an event into XADD field/value pairs."""
    return {
        "event_id": event.id,
        "event_type": event.type,
        "aggregate_id": event.aggregate_id,
        "data": json.dumps(event.data, ensure_ascii=False),
        "metadata": json.dumps(event.metadata, ensure_ascii=False),
        "occurred_at": format_timestamp(event.occurred_at),
        "version": str(event.version),
    }


def decode_stream_fields(fields: dict[str, str]) -> DomainEvent:
    """
    Inverse of encode_stream_fields.

    Raises:
        ValueError: If the entry is not a well-formed event.
    """
    try:
        return DomainEvent.from_dict({
            "id": fields.get("event_id"),
            "type": fields.get("event_type"),
            "aggregate_id": fields.get("aggregate_id"),
            "data": json.loads(fields.get("data") or "{}"),
            "metadata": json.loads(fields.get("metadata") or "{}"),
            "occurred_at": fields.get("occurred_at"),
            "version": fields.get("version") or 1,
        })
    except json.JSONDecodeError as e:
        raise ValueError(f"Malformed stream entry: {e}") from e


def _validate_event_size(fields: dict[str, str], event_type: str) -> None:
    size = sum(len(k.encode("utf-8")) + len(v.encode("utf-8")) for k, v in fields.items())
    if size > MAX_EVENT_SIZE:
        raise EventTooLargeError(
            f"Event {event_type} exceeds max size: {size} > {MAX_EVENT_SIZE} bytes"
        )


class RedisStreamPublisher:
    """
    Publishes events with XADD to the stream routed from the event type.

    Safe for concurrent use: the redis client pools connections and the
    breaker is lock-protected.
    """

    def __init__(
        self,
        client: redis.Redis,
        circuit_breaker: EventCircuitBreaker | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
        maxlen: int | None = 10000,
    ):
        self._client = client
        self._breaker = circuit_breaker or get_event_circuit_breaker()
        self._max_retries = max(1, max_retries or settings.redis_publish_max_retries)
        self._retry_delay = retry_delay if retry_delay is not None else settings.redis_publish_retry_delay
        self._maxlen = maxlen

    async def publish(self, event: DomainEvent) -> None:
        """
        Append the event to its stream.

        Raises:
            EventTooLargeError: If the event exceeds the size limit.
            EventPublishError: If the circuit is open or all retries fail.
        """
        stream = stream_for_event_type(event.type)
        fields = encode_stream_fields(event)
        _validate_event_size(fields, event.type)

        if not self._breaker.allow_request():
            raise EventPublishError(f"Circuit open, event {event.type} not published")

        last_error: Exception | None = None
        for attempt in range(self._max_retries):
            try:
                await self._client.xadd(
                    stream, fields, maxlen=self._maxlen, approximate=True
                )
                self._breaker.record_success()
                return
            except redis.RedisError as e:
                last_error = e
                if attempt < self._max_retries - 1:
                    delay = calculate_retry_delay_with_jitter(attempt, self._retry_delay)
                    logger.warning(
                        "Redis publish failed, retrying",
                        stream=stream,
                        event_type=event.type,
                        attempt=attempt + 1,
                        max_retries=self._max_retries,
                        delay_seconds=round(delay, 3),
                        error=str(e),
                    )
                    await asyncio.sleep(delay)

        self._breaker.record_failure()
        raise EventPublishError(
            f"Failed to publish {event.type} after {self._max_retries} attempts"
        ) from last_error

    async def close(self) -> None:
        await self._client.aclose()


# =============================================================================
# In-memory bus
# =============================================================================


class InMemoryEventBus:
    """
    In-process publisher.

    Every published event is recorded in `events` and delivered to the
    subscribers of its type. Subscriber failures are logged and swallowed.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._events: list[DomainEvent] = []
        self._subscribers: dict[str, list[EventHandler]] = {}
        self._closed = False

    @property
    def events(self) -> list[DomainEvent]:
        return list(self._events)

    def events_of_type(self, event_type: str) -> list[DomainEvent]:
        return [e for e in self._events if e.type == event_type]

    def event_types(self) -> list[str]:
        return [e.type for e in self._events]

    def clear(self) -> None:
        self._events.clear()

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        self._subscribers.setdefault(event_type, []).append(handler)

    async def publish(self, event: DomainEvent) -> None:
        if self._closed:
            raise EventPublishError("Event bus is closed")

        async with self._lock:
            self._events.append(event)
            handlers = list(self._subscribers.get(event.type, ()))

        # Delivered outside the lock so handlers may publish follow-up events
        for handler in handlers:
            try:
                await handler(event)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(
                    "Event subscriber failed",
                    event_type=event.type,
                    aggregate_id=event.aggregate_id,
                    error=str(e),
                )

    async def close(self) -> None:
        self._closed = True


# =============================================================================
# Best-effort publication
# =============================================================================


async def publish_best_effort(publisher: EventPublisher | None, event: DomainEvent) -> bool:
    """
    Publish without letting a failure reach the caller.

    The aggregate is already persisted when this runs, so a lost event is
    logged rather than surfaced. Cancellation still propagates.

    Returns:
        True if the publisher accepted the event.
    """
    if publisher is None:
        return False

    try:
        await publisher.publish(event)
        return True
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.warning(
            "Failed to publish domain event",
            event_type=event.type,
            aggregate_id=event.aggregate_id,
            error=str(e),
        )
        return False
