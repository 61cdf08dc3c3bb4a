from datetime import timedelta

import pytest

from pricecompare.services.aggregator import PriceAggregator
from pricecompare.services.cache import CacheManager
from pricecompare.services.circuit_breaker import (
    CircuitBreakerConfig,
    CircuitBreakerRegistry,
)
from pricecompare.services.fetcher import StoreQuoteFetcher
from pricecompare.stores.base import StoreBackend
from tests.conftest_utils import STORES, FakeClock, ScriptedBackend, witcher_quotes


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend():
    return ScriptedBackend(prices={"1": witcher_quotes()})


@pytest.fixture
def make_aggregator(clock):
    """Build an aggregator with isolated cache and breakers."""

    def _make(
        backend: StoreBackend,
        failure_threshold: int = 5,
        reset_timeout: timedelta = timedelta(seconds=30),
        cache_ttl: timedelta = timedelta(hours=1),
        timeout: float = 1.0,
    ) -> PriceAggregator:
        return PriceAggregator(
            fetcher=StoreQuoteFetcher(backend, timeout=timeout),
            known_stores=STORES,
            cache=CacheManager(default_ttl=cache_ttl, clock=clock),
            breakers=CircuitBreakerRegistry(
                CircuitBreakerConfig(
                    failure_threshold=failure_threshold,
                    reset_timeout=reset_timeout,
                ),
                clock=clock,
            ),
            cache_ttl=cache_ttl,
        )

    return _make
