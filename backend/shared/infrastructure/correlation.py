"""
Correlation IDs for log records.

A correlation id ties together every log line produced while handling one
unit of work: an incoming command or a consumed domain event.
"""

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

# Context variable for the current correlation id (task and thread safe)
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    """Get the current correlation id, or an empty string outside any scope."""
    return correlation_id_var.get()


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """
    Bind a correlation id for the duration of the block.

        with correlation_scope(event.id):
            await handler(event)

    A new UUID is generated when no id is given.
    """
    value = correlation_id or str(uuid.uuid4())
    token = correlation_id_var.set(value)
    try:
        yield value
    finally:
        correlation_id_var.reset(token)


class CorrelationIdFilter(logging.Filter):
    """
    Logging filter that adds correlation_id to log records.

        handler = logging.StreamHandler()
        handler.addFilter(CorrelationIdFilter())
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get() or "-"
        return True
