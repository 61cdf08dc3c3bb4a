"""
Base store backend interface.
"""

from abc import ABC, abstractmethod

from pricecompare.models import Quote


class StoreBackend(ABC):
    """
    Abstract capability for asking an upstream store for a game's price.

    Implementations should:
    - Return a Quote, or None when the store does not list the game
    - Raise on any upstream failure (the fetcher normalizes the error)
    - Never return a partially filled quote
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier of this backend, used as the fetcher's log prefix."""
        ...

    @abstractmethod
    async def fetch_quote(self, game_id: str, store: str) -> Quote | None:
        """Fetch one store's quote for one game."""
        ...

    async def close(self) -> None:
        """Release resources held by the backend."""
        return None
