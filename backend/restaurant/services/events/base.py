"""
Base class for cross-context event consumers.

A consumer maps each event it understands to a target state for one of its
own aggregates. Deliveries are at least once, so every handler is a no-op
when the aggregate is already in the target state.

Dropped without raising (logged at warning):
- payloads that do not parse
- events naming an aggregate that does not exist
- induced transitions the state machine forbids
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import TypeVar

import pydantic

from shared.config.logging import get_logger
from shared.infrastructure.events import DomainEvent, EventPayload
from shared.infrastructure.events.publisher import EventHandler
from shared.utils.exceptions import BusinessRuleError, NotFoundError

logger = get_logger(__name__)

PayloadT = TypeVar("PayloadT", bound=EventPayload)


class BaseEventConsumer:
    """Subclasses return their event type to handler mapping from subscriptions()."""

    name: str = "consumer"

    def subscriptions(self) -> dict[str, EventHandler]:
        raise NotImplementedError

    def _decode(self, event: DomainEvent, payload_type: type[PayloadT]) -> PayloadT:
        return payload_type.model_validate(event.data)

    @contextmanager
    def _handling(self, event: DomainEvent) -> Iterator[None]:
        """Log and drop events the consumer cannot apply."""
        try:
            yield
        except pydantic.ValidationError as e:
            logger.warning(
                "Dropping event with malformed payload",
                consumer=self.name,
                event_type=event.type,
                event_id=event.id,
                error=str(e),
            )
        except NotFoundError as e:
            logger.warning(
                "Dropping event for unknown aggregate",
                consumer=self.name,
                event_type=event.type,
                event_id=event.id,
                error=e.detail,
            )
        except BusinessRuleError as e:
            logger.warning(
                "Dropping event that violates a business rule",
                consumer=self.name,
                event_type=event.type,
                event_id=event.id,
                code=e.code,
                error=e.detail,
            )
