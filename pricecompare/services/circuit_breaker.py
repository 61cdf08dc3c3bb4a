"""
CircuitBreaker - Stops querying a store that keeps failing.

States:
- CLOSED: Normal operation, quote requests pass through
- OPEN: Store is failing, quote requests are skipped
- HALF_OPEN: A single probe request tests whether the store recovered

Transitions:
- CLOSED → OPEN: When failure_threshold consecutive failures are recorded
- OPEN → HALF_OPEN: After reset_timeout has elapsed since opening
- HALF_OPEN → CLOSED: On a successful probe
- HALF_OPEN → OPEN: On a failed probe (open timer restarts)
"""

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable

from loguru import logger


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "CLOSED"  # Normal operation
    OPEN = "OPEN"  # Skipping requests
    HALF_OPEN = "HALF_OPEN"  # Probing recovery


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker."""

    failure_threshold: int = 5  # Consecutive failures before opening
    reset_timeout: timedelta = timedelta(seconds=30)  # Time before half-open
    half_open_max_requests: int = 1  # Probes admitted in half-open state


class CircuitBreaker:
    """
    Circuit breaker for a single store.

    Usage:
        cb = CircuitBreaker("steam")

        if not cb.is_available():
            raise CircuitOpenError("steam", cb.get_time_until_reset() or 0)

        try:
            quote = await fetcher.fetch(game_id, "steam")
            cb.record_success()
        except SourceUnavailableError:
            cb.record_failure()
    """

    def __init__(
        self,
        service_id: str,
        config: CircuitBreakerConfig | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.service_id = service_id
        self.config = config or CircuitBreakerConfig()
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: datetime | None = None
        self._opened_at: datetime | None = None
        self._half_open_requests = 0
        self._lock = threading.Lock()

    @property
    def state(self) -> CircuitState:
        """Get current state, checking for automatic transitions."""
        with self._lock:
            return self._current_state()

    @property
    def failure_count(self) -> int:
        return self._failure_count

    def _current_state(self) -> CircuitState:
        if self._state == CircuitState.OPEN:
            if self._opened_at and self._clock() > (
                self._opened_at + self.config.reset_timeout
            ):
                self._state = CircuitState.HALF_OPEN
                self._half_open_requests = 0
                logger.info(
                    f"Circuit breaker '{self.service_id}' transitioned to HALF_OPEN"
                )
        return self._state

    def is_available(self) -> bool:
        """Check whether a request may be sent; admits the half-open probe."""
        with self._lock:
            current_state = self._current_state()

            if current_state == CircuitState.CLOSED:
                return True

            if current_state == CircuitState.HALF_OPEN:
                if self._half_open_requests < self.config.half_open_max_requests:
                    self._half_open_requests += 1
                    logger.info(
                        f"Circuit breaker '{self.service_id}' admitting probe request"
                    )
                    return True

            return False

    def record_success(self) -> None:
        """Record a successful request."""
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._close()
            elif self._state == CircuitState.CLOSED:
                self._failure_count = 0

    def record_failure(self) -> None:
        """Record a failed request."""
        with self._lock:
            self._failure_count += 1
            self._last_failure_time = self._clock()

            if self._state == CircuitState.HALF_OPEN:
                self._open()
            elif self._state == CircuitState.CLOSED:
                if self._failure_count >= self.config.failure_threshold:
                    self._open()

    def _open(self) -> None:
        self._state = CircuitState.OPEN
        self._opened_at = self._clock()
        self._half_open_requests = 0
        logger.warning(
            f"Circuit breaker '{self.service_id}' OPENED after {self._failure_count} failures"
        )

    def _close(self) -> None:
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at = None
        self._half_open_requests = 0
        logger.info(f"Circuit breaker '{self.service_id}' CLOSED (recovered)")

    def release_half_open_slot(self) -> None:
        """Give back a half-open admission whose request never reported back."""
        with self._lock:
            if self._state == CircuitState.HALF_OPEN and self._half_open_requests > 0:
                self._half_open_requests -= 1
                logger.info(
                    f"Circuit breaker '{self.service_id}' released an abandoned "
                    "half-open slot"
                )

    def get_time_until_reset(self) -> float | None:
        """Get seconds until circuit transitions to half-open."""
        if self._state != CircuitState.OPEN or not self._opened_at:
            return None

        reset_at = self._opened_at + self.config.reset_timeout
        remaining = (reset_at - self._clock()).total_seconds()
        return max(0, remaining)

    def get_status(self) -> dict[str, Any]:
        """Get current status as dictionary."""
        return {
            "service_id": self.service_id,
            "state": self.state.value,
            "failure_count": self._failure_count,
            "last_failure": (
                self._last_failure_time.isoformat() if self._last_failure_time else None
            ),
            "opened_at": (self._opened_at.isoformat() if self._opened_at else None),
            "time_until_reset": self.get_time_until_reset(),
        }


class CircuitBreakerRegistry:
    """
    Registry holding one circuit breaker per store.

    Usage:
        registry = CircuitBreakerRegistry()
        cb = registry.get("steam")
    """

    def __init__(
        self,
        default_config: CircuitBreakerConfig | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._breakers: dict[str, CircuitBreaker] = {}
        self._default_config = default_config or CircuitBreakerConfig()
        self._clock = clock
        self._lock = threading.Lock()

    def get(
        self,
        service_id: str,
        config: CircuitBreakerConfig | None = None,
    ) -> CircuitBreaker:
        """Get or create a circuit breaker for a store."""
        with self._lock:
            if service_id not in self._breakers:
                self._breakers[service_id] = CircuitBreaker(
                    service_id,
                    config or self._default_config,
                    clock=self._clock,
                )
            return self._breakers[service_id]

    def get_all_status(self) -> dict[str, dict[str, Any]]:
        """Get status of all circuit breakers."""
        return {
            service_id: cb.get_status() for service_id, cb in self._breakers.items()
        }

    def get_open_circuits(self) -> list[str]:
        """Get list of stores with open circuits."""
        return [
            service_id
            for service_id, cb in self._breakers.items()
            if cb.state == CircuitState.OPEN
        ]
