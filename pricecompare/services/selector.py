"""
Best-price selection over successful quotes.
"""

from typing import Sequence

from pricecompare.models import Quote
from pricecompare.services.errors import NoQuotesAvailableError


def select_best(quotes: Sequence[Quote], game_id: str | None = None) -> Quote:
    """
    Return the cheapest quote.

    Ties keep the earliest quote in the given order, so a result built in
    canonical store order always yields the same winner.

    Raises:
        NoQuotesAvailableError: If there are no quotes to choose from
    """
    if not quotes:
        raise NoQuotesAvailableError(game_id)

    best = quotes[0]
    for quote in quotes[1:]:
        if quote.price < best.price:
            best = quote
    return best
