import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

load_dotenv()

DEFAULT_STORES = ["steam", "gog", "epic", "playstation", "xbox", "nintendo"]


class Settings(BaseModel):
    # HTTP server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    debug: bool = Field(default=False, alias="DEBUG")

    # Known upstream stores, in canonical order
    known_stores: list[str] = Field(
        default_factory=lambda: list(DEFAULT_STORES), alias="PRICE_KNOWN_STORES"
    )

    # Aggregated result cache
    cache_ttl_seconds: float = Field(default=3600, alias="PRICE_CACHE_TTL_SECONDS")
    cache_max_size: int = Field(default=1000, alias="PRICE_CACHE_MAX_SIZE")

    # Circuit breaker
    breaker_failure_threshold: int = Field(
        default=5, ge=1, alias="BREAKER_FAILURE_THRESHOLD"
    )
    breaker_reset_timeout_seconds: float = Field(
        default=30, alias="BREAKER_RESET_TIMEOUT_SECONDS"
    )

    # Store backend
    store_backend: str = Field(default="simulated", alias="STORE_BACKEND")
    store_fetch_timeout_seconds: float = Field(
        default=2.0, alias="STORE_FETCH_TIMEOUT_SECONDS"
    )
    store_latency_min_seconds: float = Field(
        default=0.1, alias="STORE_LATENCY_MIN_SECONDS"
    )
    store_latency_max_seconds: float = Field(
        default=0.4, alias="STORE_LATENCY_MAX_SECONDS"
    )
    store_failure_rate: float = Field(
        default=0.2, ge=0.0, le=1.0, alias="STORE_FAILURE_RATE"
    )
    store_api_url_template: str = Field(
        default="http://{store}.prices.internal/games/{game_id}/price",
        alias="STORE_API_URL_TEMPLATE",
    )

    model_config = {"populate_by_name": True}

    @field_validator("known_stores", mode="before")
    @classmethod
    def _split_stores(cls, value):
        if isinstance(value, str):
            value = value.split(",")
        stores = []
        for store in value:
            store = store.strip().lower()
            if store and store not in stores:
                stores.append(store)
        return stores


def load_settings() -> Settings:
    """Build settings from the process environment."""
    return Settings.model_validate(dict(os.environ))


global_settings = load_settings()
