"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_version: str = "0.1.0"
    debug: bool = False

    # Database
    database_url: str = "postgresql+asyncpg://storefront:storefront_dev_password@db:5432/storefront"

    # Search
    search_default_page_size: int = 12
    search_max_page_size: int = 100
    search_suggestion_limit: int = 10
    search_suggestion_min_length: int = 2
    search_top_tags: int = 20
    search_price_bucket_edges: list[int] = [0, 1_000_000, 5_000_000, 10_000_000, 50_000_000]
    search_rating_thresholds: list[int] = [4, 3, 2, 1]
    search_read_timeout_seconds: float = 5.0
    search_request_timeout_seconds: float = 15.0
    search_max_concurrent_reads: int = 4

    # CORS (public read-only API, no credentials)
    cors_allow_origins: list[str] = ["*"]

    # Shown when a product has no image
    default_product_image: str = "/uploads/products/default.jpg"

    # Category tree cache
    category_cache_ttl_seconds: float = 300.0

    # Logging
    log_level: str = "INFO"

    class Config:
        """Pydantic configuration."""

        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
