"""
Price aggregation value types using Pydantic models.
"""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator


class Quote(BaseModel):
    """One store's price offer for one game."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    store: str
    price: Decimal = Field(ge=0)
    currency: str = Field(min_length=1)
    discount: bool
    original_price: Decimal | None = Field(
        default=None, ge=0, alias="originalPrice"
    )

    @model_validator(mode="after")
    def _original_price_only_on_discount(self) -> "Quote":
        if self.original_price is not None and not self.discount:
            raise ValueError("original_price is only allowed on discounted quotes")
        return self

    @field_serializer("price", "original_price")
    def _serialize_decimal(self, value: Decimal | None) -> float | None:
        return float(value) if value is not None else None

    def to_dict(self) -> dict[str, Any]:
        """Wire representation; originalPrice omitted when absent."""
        return self.model_dump(by_alias=True, exclude_none=True)


class StoreError(BaseModel):
    """A store that failed or was skipped during an aggregation."""

    model_config = ConfigDict(frozen=True)

    store: str
    error: str


class AggregationResult(BaseModel):
    """Outcome of one aggregation cycle for a game."""

    model_config = ConfigDict(frozen=True)

    game_id: str
    prices: tuple[Quote, ...] = ()
    errors: tuple[StoreError, ...] = ()

    @property
    def is_complete(self) -> bool:
        return not self.errors

    @property
    def stores(self) -> list[str]:
        return [q.store for q in self.prices] + [e.store for e in self.errors]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "gameId": self.game_id,
            "prices": [quote.to_dict() for quote in self.prices],
        }
        if self.errors:
            data["errors"] = [error.model_dump() for error in self.errors]
        return data


class BestPrice(BaseModel):
    """Cheapest quote for a game."""

    model_config = ConfigDict(frozen=True)

    game_id: str
    best_price: Quote

    def to_dict(self) -> dict[str, Any]:
        return {"gameId": self.game_id, "bestPrice": self.best_price.to_dict()}
