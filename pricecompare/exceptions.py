"""
HTTP errors raised by the price API routes.

Each wraps the service-layer exception that caused it and reuses its
message as the response ``detail``.
"""

from fastapi import HTTPException, status

from pricecompare.services.errors import InvalidRequestError, NoQuotesAvailableError


class BadPriceRequestError(HTTPException):
    """422: malformed game id or ``stores`` query parameter."""

    def __init__(self, cause: InvalidRequestError):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(cause)
        )


class PriceNotFoundError(HTTPException):
    """404: none of the requested stores produced a quote for the game."""

    def __init__(self, cause: NoQuotesAvailableError):
        self.game_id = cause.game_id
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=str(cause))
