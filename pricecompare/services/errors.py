"""
Service layer exceptions.
"""

import math


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, service_id: str | None = None):
        self.service_id = service_id
        super().__init__(message)


class InvalidRequestError(ServiceError):
    """Malformed price request (bad game id or store list)."""

    pass


class SourceUnavailableError(ServiceError):
    """An upstream store failed to produce a quote."""

    pass


class SourceTimeoutError(SourceUnavailableError):
    """An upstream store did not answer within its deadline."""

    def __init__(self, service_id: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Request to store '{service_id}' timed out after {timeout}s",
            service_id=service_id,
        )


class CircuitOpenError(ServiceError):
    """Circuit breaker is open, request skipped."""

    def __init__(self, service_id: str, reset_after_seconds: float):
        self.reset_after_seconds = reset_after_seconds
        super().__init__(
            "source unavailable, retry after "
            f"{math.ceil(reset_after_seconds)} seconds",
            service_id=service_id,
        )


class QuoteNotFoundError(ServiceError):
    """The store answered but does not list the game."""

    def __init__(self, service_id: str, game_id: str):
        self.game_id = game_id
        super().__init__(
            f"No price listed by '{service_id}' for game '{game_id}'",
            service_id=service_id,
        )


class NoQuotesAvailableError(ServiceError):
    """No successful quote to pick a best price from."""

    def __init__(self, game_id: str | None = None):
        self.game_id = game_id
        super().__init__("No prices found for this game")
