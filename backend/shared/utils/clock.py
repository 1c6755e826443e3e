"""
Clock abstraction.

Every timestamp the domain records and every "is it in the past" check goes
through utcnow(), so tests can install a FixedClock and control time.

Usage:
    from shared.utils.clock import utcnow

    created_at = utcnow()
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    """Source of the current time (timezone-aware, UTC)."""

    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """
    Deterministic clock for tests. Time only moves when told to.

        clock = FixedClock(datetime(2024, 6, 1, 12, tzinfo=timezone.utc))
        clock.advance(minutes=5)
    """

    def __init__(self, now: datetime | None = None):
        self._now = ensure_utc(now) if now else datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def set(self, now: datetime) -> None:
        with self._lock:
            self._now = ensure_utc(now)

    def advance(self, **kwargs: float) -> datetime:
        """Move time forward by timedelta(**kwargs) and return the new now."""
        with self._lock:
            self._now = self._now + timedelta(**kwargs)
            return self._now


_clock: Clock = SystemClock()


def get_clock() -> Clock:
    return _clock


def set_clock(clock: Clock) -> None:
    global _clock
    _clock = clock


@contextmanager
def use_clock(clock: Clock) -> Iterator[Clock]:
    """Install a clock for the duration of the block."""
    previous = get_clock()
    set_clock(clock)
    try:
        yield clock
    finally:
        set_clock(previous)


def utcnow() -> datetime:
    """Current time from the installed clock."""
    return _clock.now()


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
