"""Tests for the per-store circuit breaker and its registry."""

import threading
from datetime import timedelta

import pytest

from pricecompare.services.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerRegistry,
    CircuitState,
)
from pricecompare.services.errors import CircuitOpenError
from tests.conftest_utils import FakeClock


@pytest.fixture
def breaker(clock):
    return CircuitBreaker(
        "steam",
        CircuitBreakerConfig(failure_threshold=5, reset_timeout=timedelta(seconds=30)),
        clock=clock,
    )


def trip(cb: CircuitBreaker, times: int) -> None:
    for _ in range(times):
        cb.record_failure()


def test_starts_closed_and_available(breaker):
    assert breaker.state == CircuitState.CLOSED
    assert breaker.is_available()


def test_stays_closed_below_threshold(breaker):
    trip(breaker, 4)
    assert breaker.state == CircuitState.CLOSED
    assert breaker.failure_count == 4
    assert breaker.is_available()


def test_opens_after_exactly_threshold_failures(breaker):
    trip(breaker, 5)
    assert breaker.state == CircuitState.OPEN
    assert not breaker.is_available()


def test_success_resets_consecutive_count(breaker):
    trip(breaker, 4)
    breaker.record_success()
    trip(breaker, 4)
    assert breaker.state == CircuitState.CLOSED
    assert breaker.failure_count == 4


def test_stays_open_until_timeout_elapsed(breaker, clock):
    trip(breaker, 5)
    clock.advance(seconds=30)
    assert not breaker.is_available()
    assert breaker.get_time_until_reset() == 0

    clock.advance(seconds=1)
    assert breaker.state == CircuitState.HALF_OPEN


def test_time_until_reset_counts_down(breaker, clock):
    assert breaker.get_time_until_reset() is None
    trip(breaker, 5)
    clock.advance(seconds=10)
    assert breaker.get_time_until_reset() == pytest.approx(20)


def test_half_open_admits_exactly_one_probe(breaker, clock):
    trip(breaker, 5)
    clock.advance(seconds=31)

    assert breaker.is_available()
    assert not breaker.is_available()
    assert not breaker.is_available()


def test_successful_probe_closes(breaker, clock):
    trip(breaker, 5)
    clock.advance(seconds=31)
    assert breaker.is_available()

    breaker.record_success()

    assert breaker.state == CircuitState.CLOSED
    assert breaker.failure_count == 0
    assert breaker.is_available()


def test_failed_probe_reopens_and_restarts_timer(breaker, clock):
    trip(breaker, 5)
    clock.advance(seconds=31)
    assert breaker.is_available()

    breaker.record_failure()

    assert breaker.state == CircuitState.OPEN
    assert breaker.get_time_until_reset() == pytest.approx(30)
    clock.advance(seconds=20)
    assert not breaker.is_available()
    clock.advance(seconds=11)
    assert breaker.is_available()


def test_freed_slot_admits_next_trial_request(breaker, clock):
    trip(breaker, 5)
    clock.advance(seconds=31)
    assert breaker.is_available()
    assert not breaker.is_available()

    breaker.release_half_open_slot()

    assert breaker.state == CircuitState.HALF_OPEN
    assert breaker.is_available()
    assert not breaker.is_available()


def test_release_half_open_slot_outside_half_open_is_ignored(breaker):
    breaker.release_half_open_slot()
    assert breaker.state == CircuitState.CLOSED

    trip(breaker, 5)
    breaker.release_half_open_slot()
    assert breaker.state == CircuitState.OPEN
    assert not breaker.is_available()


def test_status_reports_state(breaker):
    trip(breaker, 5)
    status = breaker.get_status()
    assert status["service_id"] == "steam"
    assert status["state"] == "OPEN"
    assert status["failure_count"] == 5
    assert status["opened_at"] is not None
    assert status["time_until_reset"] == pytest.approx(30)


def test_concurrent_failures_are_not_lost():
    cb = CircuitBreaker("gog", CircuitBreakerConfig(failure_threshold=10_000))

    def worker():
        for _ in range(500):
            cb.record_failure()

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert cb.failure_count == 4000


class TestRegistry:
    def test_get_returns_same_breaker_per_store(self):
        registry = CircuitBreakerRegistry()
        assert registry.get("steam") is registry.get("steam")
        assert registry.get("steam") is not registry.get("gog")

    def test_uses_default_config(self):
        config = CircuitBreakerConfig(failure_threshold=2)
        registry = CircuitBreakerRegistry(config)
        assert registry.get("epic").config.failure_threshold == 2

    def test_open_circuits_and_status(self):
        clock = FakeClock()
        registry = CircuitBreakerRegistry(
            CircuitBreakerConfig(failure_threshold=1), clock=clock
        )
        registry.get("steam").record_failure()
        registry.get("gog").record_success()

        assert registry.get_open_circuits() == ["steam"]
        assert set(registry.get_all_status()) == {"steam", "gog"}

        clock.advance(seconds=31)
        assert registry.get("steam").is_available()
        registry.get("steam").record_success()
        assert registry.get_open_circuits() == []


@pytest.mark.parametrize(
    "remaining, expected", [(0.4, "1"), (20.0, "20"), (29.1, "30"), (0, "0")]
)
def test_open_error_rounds_retry_delay_up(remaining, expected):
    error = CircuitOpenError("steam", remaining)
    assert str(error) == f"source unavailable, retry after {expected} seconds"
    assert error.service_id == "steam"
