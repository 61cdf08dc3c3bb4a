"""FastAPI server exposing the price aggregation engine."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Query, Response
from loguru import logger

from pricecompare.exceptions import BadPriceRequestError, PriceNotFoundError
from pricecompare.services.aggregator import PriceAggregator, create_price_aggregator
from pricecompare.services.errors import InvalidRequestError, NoQuotesAvailableError

DATA_SOURCE_HEADER = "X-Data-Source"


class PriceServer:
    """HTTP server for price lookups."""

    def __init__(self, aggregator: PriceAggregator, owns_aggregator: bool = False):
        self.aggregator = aggregator
        self._owns_aggregator = owns_aggregator
        self.app = FastAPI(title="Price Comparison Service", lifespan=self._lifespan)

        # Register routes
        self.app.get("/prices/{game_id}")(self.get_prices)
        self.app.get("/best-price/{game_id}")(self.get_best_price)
        self.app.get("/health")(self.health_check)
        self.app.get("/ready")(self.ready_check)

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        logger.info(
            f"Price comparison service ready for stores: {', '.join(self.aggregator.known_stores)}"
        )
        yield
        if self._owns_aggregator:
            await self.aggregator.close()
        logger.info("Price comparison service stopped")

    async def get_prices(
        self,
        game_id: str,
        response: Response,
        stores: Optional[str] = Query(None),
    ):
        """Get prices for a game from every requested store.

        Args:
            game_id: Game identifier
            response: Outgoing response, receives the data source header
            stores: Comma separated store list, all known stores when omitted

        Returns:
            Aggregated prices with per-store errors
        """
        try:
            lookup = await self.aggregator.lookup_prices(game_id, stores)
        except InvalidRequestError as e:
            raise BadPriceRequestError(e) from e

        response.headers[DATA_SOURCE_HEADER] = lookup.data_source
        return lookup.result.to_dict()

    async def get_best_price(
        self,
        game_id: str,
        response: Response,
        stores: Optional[str] = Query(None),
    ):
        """Get the cheapest offer for a game."""
        try:
            lookup = await self.aggregator.lookup_prices(game_id, stores)
        except InvalidRequestError as e:
            raise BadPriceRequestError(e) from e

        response.headers[DATA_SOURCE_HEADER] = lookup.data_source
        try:
            best = self.aggregator.select_best(lookup.result)
        except NoQuotesAvailableError as e:
            logger.info(f"No prices found for game {game_id}")
            raise PriceNotFoundError(e) from e
        return best.to_dict()

    async def health_check(self):
        """Health check endpoint with breaker and cache state."""
        status = self.aggregator.get_health_status()
        return {
            "status": "degraded" if status["open_circuits"] else "healthy",
            "circuitBreakers": status["circuit_breakers"],
            "openCircuits": status["open_circuits"],
            "cache": status["cache"],
        }

    async def ready_check(self):
        """Readiness endpoint."""
        return {"status": "ready"}


def create_price_server(aggregator: PriceAggregator | None = None) -> FastAPI:
    """Create FastAPI app for price lookups.

    Args:
        aggregator: Aggregator to serve; one is built from settings when omitted

    Returns:
        FastAPI app
    """
    owns = aggregator is None
    server = PriceServer(aggregator or create_price_aggregator(), owns_aggregator=owns)
    return server.app
