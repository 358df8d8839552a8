"""Runtime settings for the Ordering domain.

Values come from ``ORDERING_*`` environment variables (or a ``.env`` file).
Protean's own configuration (providers, brokers, event store) stays in the
domain config and is selected with ``PROTEAN_ENV``.
"""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="ORDERING_", env_file=".env", extra="ignore")

    # Pricing
    tax_rate: Decimal = Field(default=Decimal("0.15"), ge=0)
    shipping_fee: Decimal = Field(default=Decimal("0"), ge=0)
    free_shipping_threshold: Decimal | None = Field(default=None, ge=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)

    # External storage (in-memory adapters when unset)
    catalogue_uri: str | None = None
    sequence_uri: str | None = None
    storage_timeout: float = Field(default=5.0, gt=0)

    # Order numbers
    order_number_prefix: str = "ORD"

    # Logging
    log_level: str | None = None
    log_dir: str | None = "logs"


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, read once from the environment."""
    return Settings()
