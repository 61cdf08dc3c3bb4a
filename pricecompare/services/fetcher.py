"""
StoreQuoteFetcher - One bounded round-trip to one store for one game.
"""

import asyncio

from loguru import logger

from pricecompare.models import Quote
from pricecompare.services.errors import (
    QuoteNotFoundError,
    ServiceError,
    SourceTimeoutError,
    SourceUnavailableError,
)
from pricecompare.stores.base import StoreBackend


class StoreQuoteFetcher:
    """
    Wraps a StoreBackend with a deadline and error normalization.

    Every call either returns a Quote or raises:
    - QuoteNotFoundError: the store answered but has no listing
    - SourceTimeoutError: the store did not answer before the deadline
    - SourceUnavailableError: any other upstream failure
    """

    def __init__(self, backend: StoreBackend, timeout: float = 2.0):
        self.backend = backend
        self.timeout = timeout

    async def fetch(self, game_id: str, store: str) -> Quote:
        try:
            quote = await asyncio.wait_for(
                self.backend.fetch_quote(game_id, store), timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            logger.warning(
                f"[{self.backend.name}] store {store} timed out after {self.timeout}s"
            )
            raise SourceTimeoutError(store, self.timeout) from e
        except ServiceError as e:
            if e.service_id is None:
                e.service_id = store
            raise
        except Exception as e:
            logger.warning(
                f"[{self.backend.name}] unexpected error from store {store}: {e!r}"
            )
            raise SourceUnavailableError(
                f"Failed to fetch price from {store}: {e}", service_id=store
            ) from e

        if quote is None:
            logger.debug(f"[{self.backend.name}] {store} has no listing for {game_id}")
            raise QuoteNotFoundError(store, game_id)
        return quote

    async def close(self) -> None:
        await self.backend.close()
