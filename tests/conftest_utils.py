"""
Shared test doubles for the price aggregation tests.

Usage:
    from tests.conftest_utils import FakeClock, ScriptedBackend, witcher_quotes
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

from pricecompare.models import Quote
from pricecompare.services.errors import SourceUnavailableError
from pricecompare.stores.base import StoreBackend

STORES = ["steam", "gog", "epic", "playstation", "xbox", "nintendo"]


class FakeClock:
    """Manually advanced clock for TTL and breaker timing."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 4, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> None:
        self.now += timedelta(**kwargs)


class ScriptedBackend(StoreBackend):
    """Backend answering from a table; stores listed in `failing` raise."""

    def __init__(
        self,
        prices: dict[str, dict[str, Quote]] | None = None,
        failing: set[str] | None = None,
    ):
        self.prices = prices or {}
        self.failing = failing or set()
        self.calls: list[tuple[str, str]] = []
        self.closed = False

    @property
    def name(self) -> str:
        return "scripted"

    async def fetch_quote(self, game_id: str, store: str) -> Quote | None:
        self.calls.append((game_id, store))
        if store in self.failing:
            raise SourceUnavailableError(
                f"Failed to fetch price from {store}", service_id=store
            )
        return self.prices.get(game_id, {}).get(store)

    async def close(self) -> None:
        self.closed = True


def witcher_quotes() -> dict[str, Quote]:
    return {
        "steam": Quote(
            store="steam", price=Decimal("29.99"), currency="EUR", discount=False
        ),
        "gog": Quote(
            store="gog",
            price=Decimal("24.99"),
            currency="EUR",
            discount=True,
            original_price=Decimal("39.99"),
        ),
        "epic": Quote(
            store="epic",
            price=Decimal("19.99"),
            currency="EUR",
            discount=True,
            original_price=Decimal("39.99"),
        ),
    }
