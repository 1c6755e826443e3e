"""
Event Schema.

DomainEvent is the envelope every bounded context publishes. It is
immutable once created; `with_metadata` returns a copy.

Canonical JSON shape:
    {"id": ..., "type": "order.paid", "aggregateId": "ord_...",
     "data": {...}, "metadata": {"service": "order-service"},
     "occurredAt": "2024-06-01T12:00:00Z", "version": 1}
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from pydantic import BaseModel

from shared.utils.clock import ensure_utc, utcnow
from shared.utils.ids import generate_id

EVENT_ID_PREFIX = "evt"
SCHEMA_VERSION = 1


def format_timestamp(value: datetime) -> str:
    """RFC3339 in UTC with a trailing Z."""
    return ensure_utc(value).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC3339 timestamp; naive values are treated as UTC."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(value))


@dataclass(frozen=True)
class DomainEvent:
    """
    Immutable record of something that happened to an aggregate.

    `data` holds the typed payload already dumped to JSON-compatible values;
    `metadata` is string to string (service name, customer id, ...).
    """

    id: str
    type: str
    aggregate_id: str
    data: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, str] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=utcnow)
    version: int = SCHEMA_VERSION

    def __post_init__(self) -> None:
        """Reject malformed envelopes before they reach the bus."""
        if not self.id or not isinstance(self.id, str):
            raise ValueError("Event id must be a non-empty string")

        if not self.type or not isinstance(self.type, str):
            raise ValueError("Event type must be a non-empty string")

        if not self.aggregate_id or not isinstance(self.aggregate_id, str):
            raise ValueError("Event aggregate_id must be a non-empty string")

        if not isinstance(self.data, dict):
            raise ValueError("Event data must be a dict")

        if not isinstance(self.metadata, dict):
            raise ValueError("Event metadata must be a dict")
        for key, value in self.metadata.items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise ValueError("Event metadata must map strings to strings")

        if not isinstance(self.occurred_at, datetime):
            raise ValueError("Event occurred_at must be a datetime")

        if not isinstance(self.version, int) or self.version < 1:
            raise ValueError("Event version must be a positive integer")

    @classmethod
    def create(
        cls,
        event_type: str,
        aggregate_id: str,
        payload: BaseModel | dict[str, Any] | None = None,
        **metadata: Any,
    ) -> "DomainEvent":
        """
        Build a new event stamped with a fresh id and the current time.

            DomainEvent.create(ORDER_PAID, order.id, OrderStatusChangedData(...),
                               service="order-service")

        Metadata values are stringified; None values are dropped.
        """
        if isinstance(payload, BaseModel):
            data = payload.model_dump(mode="json")
        else:
            data = dict(payload or {})

        return cls(
            id=generate_id(EVENT_ID_PREFIX),
            type=event_type,
            aggregate_id=aggregate_id,
            data=data,
            metadata={k: str(v) for k, v in metadata.items() if v is not None},
            occurred_at=utcnow(),
        )

    def with_metadata(self, **metadata: Any) -> "DomainEvent":
        """Copy of this event with extra metadata merged in."""
        merged = dict(self.metadata)
        merged.update({k: str(v) for k, v in metadata.items() if v is not None})
        return replace(self, metadata=merged)

    def to_dict(self) -> dict[str, Any]:
        """Canonical camelCase mapping."""
        return {
            "id": self.id,
            "type": self.type,
            "aggregateId": self.aggregate_id,
            "data": self.data,
            "metadata": self.metadata,
            "occurredAt": format_timestamp(self.occurred_at),
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "DomainEvent":
        """
        Inverse of to_dict. snake_case keys are accepted as well.

        Raises:
            ValueError: If required fields are missing or malformed.
        """
        aggregate_id = raw.get("aggregateId", raw.get("aggregate_id"))
        occurred_raw = raw.get("occurredAt", raw.get("occurred_at"))

        if occurred_raw is None:
            occurred_at = utcnow()
        elif isinstance(occurred_raw, datetime):
            occurred_at = ensure_utc(occurred_raw)
        else:
            occurred_at = parse_timestamp(str(occurred_raw))

        return cls(
            id=raw.get("id") or "",
            type=raw.get("type") or "",
            aggregate_id=aggregate_id or "",
            data=raw.get("data") or {},
            metadata={str(k): str(v) for k, v in (raw.get("metadata") or {}).items()},
            occurred_at=occurred_at,
            version=int(raw.get("version", SCHEMA_VERSION)),
        )

    def to_json(self) -> str:
        """Serialize event to JSON string."""
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_json(cls, json_str: str) -> "DomainEvent":
        """Deserialize event from JSON string. Validation runs in __post_init__."""
        return cls.from_dict(json.loads(json_str))
