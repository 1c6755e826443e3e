"""
Circuit Breaker for event publication.

When Redis is down every publish would otherwise wait out its retries;
an open circuit fails fast instead. Also hosts the retry delay helper.
"""

from __future__ import annotations

import random
import threading
import time
from collections.abc import Callable
from enum import Enum

from shared.config.logging import get_logger
from shared.config.settings import settings

logger = get_logger(__name__)


class CircuitState(Enum):
    """States of the circuit breaker."""
    CLOSED = "closed"  # Calls flow
    OPEN = "open"  # Calls rejected until the cool-down elapses
    HALF_OPEN = "half_open"  # A few trial calls allowed


class EventCircuitBreaker:
    """
    Counts consecutive publish failures and opens after `failure_threshold`.

    After `recovery_timeout` seconds the breaker lets up to
    `half_open_max_calls` trial calls through; one success closes it again and
    one failure re-opens it.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        half_open_max_calls: int = 1,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.half_open_max_calls = half_open_max_calls
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._opened_at = 0.0
        self._trial_calls_in_flight = 0
        self._rejected = 0
        self._lock = threading.Lock()

    @property
    def state(self) -> CircuitState:
        with self._lock:
            self._maybe_half_open()
            return self._state

    def _maybe_half_open(self) -> None:
        # Caller holds the lock
        if (
            self._state is CircuitState.OPEN
            and self._clock() - self._opened_at >= self.recovery_timeout
        ):
            self._state = CircuitState.HALF_OPEN
            self._trial_calls_in_flight = 0
            logger.info("Event circuit breaker half-open, probing")

    def allow_request(self) -> bool:
        """True if a publish attempt may proceed."""
        with self._lock:
            self._maybe_half_open()

            if self._state is CircuitState.CLOSED:
                return True

            if self._state is CircuitState.HALF_OPEN and (
                self._trial_calls_in_flight < self.half_open_max_calls
            ):
                self._trial_calls_in_flight += 1
                return True

            self._rejected += 1
            return False

    def record_success(self) -> None:
        with self._lock:
            if self._state is CircuitState.HALF_OPEN:
                logger.info("Event circuit breaker closed after successful trial call")
            self._state = CircuitState.CLOSED
            self._consecutive_failures = 0
            self._trial_calls_in_flight = 0

    def record_failure(self) -> None:
        with self._lock:
            self._consecutive_failures += 1

            if self._state is CircuitState.HALF_OPEN:
                self._trip()
            elif (
                self._state is CircuitState.CLOSED
                and self._consecutive_failures >= self.failure_threshold
            ):
                self._trip()

    def _trip(self) -> None:
        # Caller holds the lock
        self._state = CircuitState.OPEN
        self._opened_at = self._clock()
        self._trial_calls_in_flight = 0
        logger.error(
            "Event circuit breaker open",
            consecutive_failures=self._consecutive_failures,
            threshold=self.failure_threshold,
        )

    def reset(self) -> None:
        with self._lock:
            self._state = CircuitState.CLOSED
            self._consecutive_failures = 0
            self._trial_calls_in_flight = 0
            self._rejected = 0

    def snapshot(self) -> dict[str, object]:
        """Counters for diagnostics."""
        with self._lock:
            return {
                "state": self._state.value,
                "consecutive_failures": self._consecutive_failures,
                "rejected": self._rejected,
            }


_breaker: EventCircuitBreaker | None = None
_breaker_lock = threading.Lock()


def get_event_circuit_breaker() -> EventCircuitBreaker:
    """Process-wide breaker shared by every Redis publisher."""
    global _breaker
    if _breaker is None:
        with _breaker_lock:
            if _breaker is None:
                _breaker = EventCircuitBreaker(
                    failure_threshold=settings.redis_publish_max_retries + 2,
                )
    return _breaker


def calculate_retry_delay_with_jitter(
    attempt: int,
    base_delay: float = 0.1,
    max_delay: float = 5.0,
) -> float:
    """
    Exponential backoff with jitter for retry number `attempt` (0-indexed).

    The delay is drawn uniformly from [base_delay, min(max_delay, base * 2^attempt)]
    so concurrent publishers do not retry in lockstep.
    """
    ceiling = min(max_delay, base_delay * (2 ** attempt))
    return random.uniform(base_delay, max(base_delay, ceiling))
