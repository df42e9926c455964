from pydantic_settings import BaseSettings

from bookstore_catalog.projection import PriceFormat


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite:///./bookstore.db"

    # Logging
    log_level: str = "INFO"

    # Header carrying the per-request correlation id (echoed on responses)
    correlation_header: str = "X-Correlation-ID"

    # Currency rendering for profile.formatted_price
    currency_symbol: str = "$"
    currency_group_separator: str = ","
    currency_decimal_separator: str = "."

    # "List all books" cache lifetime; invalidated on every create/delete
    list_cache_ttl_seconds: float = 300.0

    model_config = {"env_file": ".env"}

    @property
    def price_format(self) -> PriceFormat:
        return PriceFormat(
            symbol=self.currency_symbol,
            group_separator=self.currency_group_separator,
            decimal_separator=self.currency_decimal_separator,
        )


settings = Settings()
