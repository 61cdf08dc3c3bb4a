"""
Simulated store backend for demos and local development.

Serves prices from an in-memory table, adds jittered latency and
fails at random to mimic unstable upstream storefronts.
"""

import asyncio
import random
from typing import Any

from loguru import logger

from pricecompare.models import Quote
from pricecompare.services.errors import SourceUnavailableError
from pricecompare.stores.base import StoreBackend

# Mock store prices per game id
MOCK_PRICES: dict[str, dict[str, dict[str, Any]]] = {
    "1": {  # The Witcher 3
        "steam": {"price": "29.99", "currency": "EUR", "discount": False},
        "gog": {
            "price": "24.99",
            "currency": "EUR",
            "discount": True,
            "original_price": "39.99",
        },
        "epic": {
            "price": "19.99",
            "currency": "EUR",
            "discount": True,
            "original_price": "39.99",
        },
    },
    "2": {  # Zelda: Breath of the Wild
        "nintendo": {"price": "59.99", "currency": "EUR", "discount": False},
    },
    "3": {  # God of War
        "steam": {"price": "49.99", "currency": "EUR", "discount": False},
        "playstation": {
            "price": "39.99",
            "currency": "EUR",
            "discount": True,
            "original_price": "59.99",
        },
    },
    "4": {  # Halo Infinite
        "xbox": {"price": "59.99", "currency": "EUR", "discount": False},
        "steam": {"price": "59.99", "currency": "EUR", "discount": False},
    },
}


class SimulatedStoreBackend(StoreBackend):
    """
    In-memory store backend with latency and failure injection.

    Args:
        prices: Price table {game_id: {store: quote fields}}
        latency_range: (min, max) seconds of simulated round-trip time
        failure_rate: Probability in [0, 1] that a call fails
        rng: Random source, injectable for reproducible runs
    """

    def __init__(
        self,
        prices: dict[str, dict[str, dict[str, Any]]] | None = None,
        latency_range: tuple[float, float] = (0.1, 0.4),
        failure_rate: float = 0.2,
        rng: random.Random | None = None,
    ):
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError(f"failure_rate must be within [0, 1], got {failure_rate}")
        low, high = latency_range
        if low < 0 or high < low:
            raise ValueError(f"Invalid latency range: {latency_range}")

        self.prices = prices if prices is not None else MOCK_PRICES
        self.latency_range = latency_range
        self.failure_rate = failure_rate
        self._rng = rng or random.Random()

    @property
    def name(self) -> str:
        return "simulated"

    async def fetch_quote(self, game_id: str, store: str) -> Quote | None:
        if self._rng.random() < self.failure_rate:
            logger.debug(f"Injected failure for {store} (game {game_id})")
            raise SourceUnavailableError(
                f"Failed to fetch price from {store}", service_id=store
            )

        await asyncio.sleep(self._rng.uniform(*self.latency_range))

        entry = self.prices.get(game_id, {}).get(store)
        if entry is None:
            return None
        return Quote(store=store, **entry)
