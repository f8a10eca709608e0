"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # SUPABASE
    # ===================
    supabase_url: Optional[str] = Field(
        None,
        description="Supabase project URL"
    )
    supabase_key: Optional[str] = Field(
        None,
        description="Supabase service key used by the import jobs"
    )
    products_table: str = Field(
        default="products",
        description="Table holding the product catalog"
    )
    batch_write_function: str = Field(
        default="apply_product_batch",
        description="Postgres function applying one batch of writes in a transaction"
    )

    # ===================
    # IMPORT PIPELINE
    # ===================
    import_batch_size: int = Field(
        default=500,
        ge=1,
        le=5000,
        description="Write operations buffered before a batch flush"
    )
    match_confidence_threshold: float = Field(
        default=0.3,
        ge=0,
        le=1,
        description="Minimum normalized fuzzy score to accept a catalog match"
    )
    import_source_tag: str = Field(
        default="stock-import",
        description="Written to source/modified_by on imported products"
    )
    import_created_by: str = Field(
        default="import-script",
        description="Written to created_by on products created by an import"
    )
    dedupe_within_run: bool = Field(
        default=False,
        description="Match later rows against products created earlier in the same run"
    )
    infer_missing_category: bool = Field(
        default=False,
        description="Guess a category from the product name when the row has none"
    )

    # ===================
    # NEW PRODUCT DEFAULTS
    # ===================
    new_product_unit: str = Field(
        default="bottle",
        pattern="^(bottle|liter|centiliter|glass|can|piece)$",
        description="Unit given to products created by an import"
    )
    new_product_alert_threshold: int = Field(
        default=5,
        ge=0,
        description="Low-stock alert threshold for created products"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def supabase_configured(self) -> bool:
        """Check if Supabase credentials are present."""
        return bool(self.supabase_url and self.supabase_key)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If env vars are invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
