"""Application configuration management using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Required settings will raise validation errors if not provided.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="storefront-backend", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/staging/production)")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=5000, description="Server port")

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed CORS origins",
    )

    # MongoDB
    mongodb_url: str = Field(default="mongodb://localhost:27017", description="MongoDB connection string")
    mongodb_database: str = Field(default="storefront", description="MongoDB database name")
    mongodb_transactions: bool | None = Field(
        default=None,
        description="Force multi-document transactions on/off. Probed from the server topology when unset.",
    )

    # Auth
    jwt_secret: str = Field(..., description="Shared secret used to verify access tokens")
    jwt_algorithm: str = Field(default="HS256", description="Access token signing algorithm")

    # Orders
    default_currency: str = Field(
        default="USD",
        description="Currency used when neither the request nor the store settings name one",
    )

    # PayPal
    paypal_client_id: str = Field(default="", description="PayPal REST client ID")
    paypal_client_secret: str = Field(default="", description="PayPal REST client secret")
    paypal_mode: str = Field(default="sandbox", description="PayPal environment (sandbox/live)")

    # Real-time
    realtime_queue_size: int = Field(
        default=100,
        description="Per-listener buffer of pending real-time events before messages are dropped",
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def paypal_base_url(self) -> str:
        """PayPal REST API base URL for the configured mode."""
        if self.paypal_mode == "live":
            return "https://api-m.paypal.com"
        return "https://api-m.sandbox.paypal.com"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings: Application settings instance.

    Note:
        Settings are cached using lru_cache for performance.
        Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
