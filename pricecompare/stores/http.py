"""
HTTP store backend - asks real storefront price APIs over the network.

Each store is reached through a URL template such as
``https://{store}.example.com/games/{game_id}/price`` and is expected to
answer with ``{"price": ..., "currency": ..., "discount": ..., "originalPrice": ...}``.
"""

import httpx
from loguru import logger
from pydantic import ValidationError

from pricecompare.models import Quote
from pricecompare.services.errors import SourceTimeoutError, SourceUnavailableError
from pricecompare.stores.base import StoreBackend


class HttpStoreBackend(StoreBackend):
    """
    Store backend built on a shared httpx.AsyncClient.

    Usage:
        backend = HttpStoreBackend(
            url_template="https://{store}.example.com/games/{game_id}/price",
        )
        quote = await backend.fetch_quote("1", "gog")
    """

    def __init__(
        self,
        url_template: str,
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.url_template = url_template
        self._timeout = timeout
        self._http_client = http_client

    @property
    def name(self) -> str:
        return "http"

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                follow_redirects=True,
            )
        return self._http_client

    def build_url(self, game_id: str, store: str) -> str:
        return self.url_template.format(store=store, game_id=game_id)

    async def fetch_quote(self, game_id: str, store: str) -> Quote | None:
        client = await self._get_http_client()
        url = self.build_url(game_id, store)

        try:
            response = await client.get(url)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            payload = response.json()

        except httpx.TimeoutException as e:
            raise SourceTimeoutError(store, self._timeout) from e

        except httpx.HTTPStatusError as e:
            raise SourceUnavailableError(
                f"HTTP {e.response.status_code}: {e.response.text[:200]}",
                service_id=store,
            ) from e

        except httpx.RequestError as e:
            raise SourceUnavailableError(str(e), service_id=store) from e

        except ValueError as e:
            raise SourceUnavailableError(
                f"Invalid JSON from {store}: {e}", service_id=store
            ) from e

        try:
            return Quote.model_validate({**payload, "store": store})
        except (ValidationError, TypeError) as e:
            logger.warning(f"Malformed quote payload from {store}: {payload!r}")
            raise SourceUnavailableError(
                f"Malformed quote from {store}", service_id=store
            ) from e

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
            logger.debug("HttpStoreBackend closed")
