"""
Service layer - resilient price aggregation across upstream stores.

Provides:
- CacheManager: TTL cache for aggregated results
- CircuitBreaker: Skips stores that keep failing
- RequestDeduplicator: Shares one fan-out between identical concurrent requests
- select_best: Picks the cheapest quote

The aggregator itself lives in pricecompare.services.aggregator.
"""

from pricecompare.services.errors import (
    ServiceError,
    InvalidRequestError,
    SourceUnavailableError,
    SourceTimeoutError,
    CircuitOpenError,
    QuoteNotFoundError,
    NoQuotesAvailableError,
)
from pricecompare.services.cache import CacheManager, CacheEntry, CacheResult
from pricecompare.services.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerRegistry,
    CircuitState,
)
from pricecompare.services.deduplicator import RequestDeduplicator
from pricecompare.services.selector import select_best

__all__ = [
    # Errors
    "ServiceError",
    "InvalidRequestError",
    "SourceUnavailableError",
    "SourceTimeoutError",
    "CircuitOpenError",
    "QuoteNotFoundError",
    "NoQuotesAvailableError",
    # Cache
    "CacheManager",
    "CacheEntry",
    "CacheResult",
    # Circuit Breaker
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerRegistry",
    "CircuitState",
    # Deduplicator
    "RequestDeduplicator",
    # Selection
    "select_best",
]
