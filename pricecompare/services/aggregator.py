"""
PriceAggregator - Resilient price lookup across many stores.

Combines:
- CacheManager for aggregated results
- CircuitBreakerRegistry to skip stores that keep failing
- StoreQuoteFetcher for bounded per-store round-trips
- RequestDeduplicator so identical concurrent misses share one fan-out
"""

import asyncio
import re
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Iterable

from loguru import logger

from pricecompare.models import AggregationResult, BestPrice, Quote, StoreError
from pricecompare.services.cache import CacheManager
from pricecompare.services.circuit_breaker import (
    CircuitBreakerConfig,
    CircuitBreakerRegistry,
)
from pricecompare.services.deduplicator import RequestDeduplicator
from pricecompare.services.errors import (
    CircuitOpenError,
    InvalidRequestError,
    QuoteNotFoundError,
)
from pricecompare.services.fetcher import StoreQuoteFetcher
from pricecompare.services.selector import select_best
from pricecompare.settings import Settings, global_settings
from pricecompare.stores.base import StoreBackend
from pricecompare.stores.http import HttpStoreBackend
from pricecompare.stores.simulated import SimulatedStoreBackend

GAME_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


@dataclass
class PriceLookup:
    """Aggregation result plus where it came from."""

    result: AggregationResult
    from_cache: str | None = None  # 'memory' | None

    @property
    def data_source(self) -> str:
        return "cache" if self.from_cache else "live"


class PriceAggregator:
    """
    Fans a price request out to every eligible store and joins the outcomes.

    Individual store failures never fail the aggregate call: each failed or
    skipped store shows up in the result's error list instead.

    Usage:
        aggregator = PriceAggregator(
            fetcher=StoreQuoteFetcher(SimulatedStoreBackend()),
            known_stores=["steam", "gog", "epic"],
        )
        result = await aggregator.get_prices("1", ["gog", "steam"])
        best = await aggregator.get_best_price("1")
    """

    def __init__(
        self,
        fetcher: StoreQuoteFetcher,
        known_stores: Iterable[str],
        cache: CacheManager | None = None,
        breakers: CircuitBreakerRegistry | None = None,
        deduplicator: RequestDeduplicator | None = None,
        cache_ttl: timedelta | None = None,
    ):
        self.fetcher = fetcher
        self.known_stores = list(known_stores)
        if not self.known_stores:
            raise ValueError("At least one known store is required")
        self._store_order = {store: i for i, store in enumerate(self.known_stores)}

        self._cache = cache or CacheManager()
        self._breakers = breakers or CircuitBreakerRegistry()
        self._deduplicator = deduplicator or RequestDeduplicator()
        self._cache_ttl = cache_ttl

    @property
    def cache(self) -> CacheManager:
        return self._cache

    @property
    def breakers(self) -> CircuitBreakerRegistry:
        return self._breakers

    def validate_game_id(self, game_id: str) -> str:
        game_id = (game_id or "").strip()
        if not GAME_ID_PATTERN.match(game_id):
            raise InvalidRequestError(f"Invalid game id: {game_id!r}")
        return game_id

    def canonicalize_stores(self, stores: Iterable[str] | str | None) -> list[str]:
        """
        Normalize a requested store list.

        None means every known store. Names are trimmed, lowercased and
        deduplicated, then ordered as in the known store list.
        """
        if stores is None:
            return list(self.known_stores)

        if isinstance(stores, str):
            stores = stores.split(",")

        requested = {s.strip().lower() for s in stores if s and s.strip()}
        if not requested:
            raise InvalidRequestError("Store list must not be empty")

        unknown = sorted(requested - self._store_order.keys())
        if unknown:
            raise InvalidRequestError(f"Unknown stores: {', '.join(unknown)}")

        return sorted(requested, key=self._store_order.__getitem__)

    async def lookup_prices(
        self,
        game_id: str,
        stores: Iterable[str] | str | None = None,
    ) -> PriceLookup:
        """
        Get prices for a game, reporting whether they came from the cache.

        Raises:
            InvalidRequestError: If the game id or store list is malformed
        """
        game_id = self.validate_game_id(game_id)
        canonical = self.canonicalize_stores(stores)
        cache_key = self._cache.generate_key(game_id, canonical)

        cached = await self._cache.get(cache_key)
        if cached:
            logger.debug(f"Serving prices for game {game_id} from cache")
            return PriceLookup(result=cached.data, from_cache=cached.from_cache)

        result = await self._deduplicator.dedupe(
            cache_key, lambda: self._aggregate(game_id, canonical, cache_key)
        )
        return PriceLookup(result=result, from_cache=None)

    async def get_prices(
        self,
        game_id: str,
        stores: Iterable[str] | str | None = None,
    ) -> AggregationResult:
        """Get the aggregated prices for a game across the requested stores."""
        lookup = await self.lookup_prices(game_id, stores)
        return lookup.result

    async def get_best_price(
        self,
        game_id: str,
        stores: Iterable[str] | str | None = None,
    ) -> BestPrice:
        """
        Get the cheapest offer for a game.

        Raises:
            NoQuotesAvailableError: If no store produced a quote
        """
        result = await self.get_prices(game_id, stores)
        return self.select_best(result)

    def select_best(self, result: AggregationResult) -> BestPrice:
        """Pick the best price out of an aggregation's successful quotes."""
        return BestPrice(
            game_id=result.game_id,
            best_price=select_best(result.prices, game_id=result.game_id),
        )

    async def _aggregate(
        self, game_id: str, stores: list[str], cache_key: str
    ) -> AggregationResult:
        """Run one fan-out/join cycle and cache its result."""
        outcomes: dict[str, Quote | BaseException] = {}
        eligible: list[str] = []

        for store in stores:
            cb = self._breakers.get(store)
            if cb.is_available():
                eligible.append(store)
            else:
                outcomes[store] = CircuitOpenError(
                    store, cb.get_time_until_reset() or 0
                )
                logger.info(f"Skipping {store} for game {game_id}: circuit open")

        reported: set[str] = set()
        try:
            results = await asyncio.gather(
                *(self.fetcher.fetch(game_id, store) for store in eligible),
                return_exceptions=True,
            )

            for store, outcome in zip(eligible, results):
                cb = self._breakers.get(store)
                if isinstance(outcome, Quote):
                    cb.record_success()
                elif isinstance(outcome, QuoteNotFoundError):
                    # The store answered; a missing listing is not a store failure
                    cb.record_success()
                elif isinstance(outcome, Exception):
                    cb.record_failure()
                    logger.warning(f"Error fetching price from {store}: {outcome}")
                else:
                    raise outcome
                reported.add(store)
                outcomes[store] = outcome
        finally:
            # Cancelled fetches have no outcome; free their half-open slots
            for store in eligible:
                if store not in reported:
                    self._breakers.get(store).release_half_open_slot()

        prices = []
        errors = []
        for store in stores:
            outcome = outcomes[store]
            if isinstance(outcome, Quote):
                prices.append(outcome)
            else:
                errors.append(StoreError(store=store, error=str(outcome)))

        result = AggregationResult(
            game_id=game_id, prices=tuple(prices), errors=tuple(errors)
        )
        await self._cache.set(cache_key, result, self._cache_ttl)

        logger.info(
            f"Aggregated game {game_id}: {len(prices)} prices, "
            f"{len(errors)} errors from {len(stores)} stores"
        )
        return result

    # Health and status methods

    def get_health_status(self) -> dict[str, Any]:
        """Get health status of the aggregation engine."""
        return {
            "cache": self._cache.get_stats().to_dict(),
            "circuit_breakers": self._breakers.get_all_status(),
            "open_circuits": self._breakers.get_open_circuits(),
            "deduplicator": self._deduplicator.get_stats(),
        }

    async def close(self) -> None:
        await self._deduplicator.cancel_all()
        await self.fetcher.close()
        logger.debug("PriceAggregator closed")


def build_store_backend(settings: Settings) -> StoreBackend:
    """Create the store backend selected by configuration."""
    if settings.store_backend == "http":
        return HttpStoreBackend(
            url_template=settings.store_api_url_template,
            timeout=settings.store_fetch_timeout_seconds,
        )
    if settings.store_backend == "simulated":
        return SimulatedStoreBackend(
            latency_range=(
                settings.store_latency_min_seconds,
                settings.store_latency_max_seconds,
            ),
            failure_rate=settings.store_failure_rate,
        )
    raise ValueError(f"Unknown store backend: {settings.store_backend}")


def create_price_aggregator(
    settings: Settings | None = None,
    backend: StoreBackend | None = None,
) -> PriceAggregator:
    """Wire a PriceAggregator from settings."""
    settings = settings or global_settings
    backend = backend or build_store_backend(settings)

    ttl = timedelta(seconds=settings.cache_ttl_seconds)
    return PriceAggregator(
        fetcher=StoreQuoteFetcher(backend, timeout=settings.store_fetch_timeout_seconds),
        known_stores=settings.known_stores,
        cache=CacheManager(
            max_size=settings.cache_max_size,
            default_ttl=ttl,
            debug=settings.debug,
        ),
        breakers=CircuitBreakerRegistry(
            CircuitBreakerConfig(
                failure_threshold=settings.breaker_failure_threshold,
                reset_timeout=timedelta(
                    seconds=settings.breaker_reset_timeout_seconds
                ),
            )
        ),
        deduplicator=RequestDeduplicator(debug=settings.debug),
        cache_ttl=ttl,
    )
