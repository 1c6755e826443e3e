"""
Domain event bus over Redis Streams.

This package provides:
- circuit_breaker.py: Circuit breaker and retry jitter for publication
- event_types.py: Event type constants (public contract)
- event_schema.py: DomainEvent envelope with validation and canonical JSON
- payloads.py: Typed payload per event type
- channels.py: Stream naming and routing
- redis_pool.py: Shared async Redis client
- publisher.py: EventPublisher protocol, Redis and in-memory publishers,
  publish_best_effort
- consumer.py: EventDispatcher and RedisStreamConsumer
"""

# =============================================================================
# Circuit Breaker
# =============================================================================

from .circuit_breaker import (
    CircuitState,
    EventCircuitBreaker,
    get_event_circuit_breaker,
    calculate_retry_delay_with_jitter,
)

# =============================================================================
# Event Types
# =============================================================================

from .event_types import (
    # Order
    ORDER_CREATED,
    ORDER_UPDATED,
    ORDER_PAID,
    ORDER_STATUS_CHANGED,
    ORDER_COMPLETED,
    ORDER_CANCELLED,
    # Kitchen
    KITCHEN_ORDER_CREATED,
    KITCHEN_ORDER_STATUS_CHANGED,
    KITCHEN_ORDER_COMPLETED,
    KITCHEN_ORDER_CANCELLED,
    KITCHEN_ITEM_STATUS_CHANGED,
    # Reservation
    RESERVATION_CREATED,
    RESERVATION_CONFIRMED,
    RESERVATION_CANCELLED,
    RESERVATION_COMPLETED,
    RESERVATION_NO_SHOW,
    RESERVATION_UPDATED,
    # Menu
    MENU_CREATED,
    MENU_ACTIVATED,
    MENU_DEACTIVATED,
    MENU_ITEM_AVAILABILITY_CHANGED,
    # Inventory
    INVENTORY_ITEM_CREATED,
    STOCK_RECEIVED,
    STOCK_USED,
    STOCK_RESERVED,
    LOW_STOCK_ALERT,
    OUT_OF_STOCK_ALERT,
    SUPPLIER_CREATED,
    ALL_EVENT_TYPES,
    # Size limits
    MAX_EVENT_SIZE,
)

# =============================================================================
# Event Schema and Payloads
# =============================================================================

from .event_schema import DomainEvent
from .payloads import PAYLOAD_TYPES, EventPayload, decode_payload

# =============================================================================
# Streams
# =============================================================================

from .channels import (
    ORDER_STREAM,
    KITCHEN_STREAM,
    RESERVATION_STREAM,
    MENU_STREAM,
    INVENTORY_STREAM,
    ALL_STREAMS,
    stream_for_event_type,
)

# =============================================================================
# Redis Pool
# =============================================================================

from .redis_pool import get_redis_pool, close_redis_pool

# =============================================================================
# Publishing
# =============================================================================

from .publisher import (
    EventPublisher,
    EventPublishError,
    EventTooLargeError,
    RedisStreamPublisher,
    InMemoryEventBus,
    publish_best_effort,
)

# =============================================================================
# Consumption
# =============================================================================

from .consumer import EventDispatcher, RedisStreamConsumer

# =============================================================================
# __all__ for explicit exports
# =============================================================================

__all__ = [
    # Circuit Breaker
    "CircuitState",
    "EventCircuitBreaker",
    "get_event_circuit_breaker",
    "calculate_retry_delay_with_jitter",
    # Event Types
    "ORDER_CREATED",
    "ORDER_UPDATED",
    "ORDER_PAID",
    "ORDER_STATUS_CHANGED",
    "ORDER_COMPLETED",
    "ORDER_CANCELLED",
    "KITCHEN_ORDER_CREATED",
    "KITCHEN_ORDER_STATUS_CHANGED",
    "KITCHEN_ORDER_COMPLETED",
    "KITCHEN_ORDER_CANCELLED",
    "KITCHEN_ITEM_STATUS_CHANGED",
    "RESERVATION_CREATED",
    "RESERVATION_CONFIRMED",
    "RESERVATION_CANCELLED",
    "RESERVATION_COMPLETED",
    "RESERVATION_NO_SHOW",
    "RESERVATION_UPDATED",
    "MENU_CREATED",
    "MENU_ACTIVATED",
    "MENU_DEACTIVATED",
    "MENU_ITEM_AVAILABILITY_CHANGED",
    "INVENTORY_ITEM_CREATED",
    "STOCK_RECEIVED",
    "STOCK_USED",
    "STOCK_RESERVED",
    "LOW_STOCK_ALERT",
    "OUT_OF_STOCK_ALERT",
    "SUPPLIER_CREATED",
    "ALL_EVENT_TYPES",
    "MAX_EVENT_SIZE",
    # Event Schema and Payloads
    "DomainEvent",
    "PAYLOAD_TYPES",
    "EventPayload",
    "decode_payload",
    # Streams
    "ORDER_STREAM",
    "KITCHEN_STREAM",
    "RESERVATION_STREAM",
    "MENU_STREAM",
    "INVENTORY_STREAM",
    "ALL_STREAMS",
    "stream_for_event_type",
    # Redis Pool
    "get_redis_pool",
    "close_redis_pool",
    # Publishing
    "EventPublisher",
    "EventPublishError",
    "EventTooLargeError",
    "RedisStreamPublisher",
    "InMemoryEventBus",
    "publish_best_effort",
    # Consumption
    "EventDispatcher",
    "RedisStreamConsumer",
]
