"""Application configuration via Pydantic Settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # App
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    # eBay Browse API (client credentials grant)
    # Leaving either empty keeps the eBay source in its "not configured" mode.
    EBAY_APP_ID: str = ""
    EBAY_APP_SECRET: str = ""

    # Outbound HTTP
    SOURCE_REQUEST_TIMEOUT: float = 15.0  # seconds, per attempt
    HTTP_USER_AGENT: str = "DealRadar Deal Aggregator/1.0"

    # Cache
    CACHE_DEFAULT_TTL_SECONDS: int = 300
    CACHE_SWEEP_INTERVAL_SECONDS: int = 60
    DEALS_CACHE_TTL_SECONDS: int = 300
    SEARCH_CACHE_TTL_SECONDS: int = 180

    # Aggregation
    HOT_DEALS_MIN_SCORE: int = 75
    CRAIGSLIST_DEFAULT_CITY: str = "sfbay"

    # Frontend
    FRONTEND_URL: str = "http://localhost:3000"


settings = Settings()
