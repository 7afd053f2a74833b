"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
Supabase is optional: without it staging runs in memory.
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
        description="Supabase anon/public key"
    )
    supabase_service_key: Optional[str] = Field(
        None,
        description="Supabase service role key (preferred for staging writes)"
    )

    # ===================
    # SHOPIFY
    # ===================
    shopify_shop_domain: Optional[str] = Field(
        None,
        description="Default shop domain (e.g. my-store.myshopify.com)"
    )
    shopify_admin_access_token: Optional[str] = Field(
        None,
        description="Admin API token used when no per-shop token exists"
    )
    shopify_api_version: str = Field(
        default="2025-01",
        pattern=r"^\d{4}-\d{2}$",
        description="Admin GraphQL API version"
    )
    shopify_request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Timeout for a single GraphQL page request"
    )
    shopify_products_per_page: int = Field(
        default=100,
        ge=1,
        le=250,
        description="Products requested per GraphQL page"
    )
    shopify_max_scan_pages: int = Field(
        default=40,
        ge=1,
        le=500,
        description="Hard page cap for one storefront scan"
    )
    shopify_variants_cache_seconds: int = Field(
        default=300,
        ge=0,
        le=86400,
        description="TTL of the per-store variant cache"
    )

    # ===================
    # CATALOG SNAPSHOT (POS/ERP)
    # ===================
    catalog_snapshot_url: str = Field(
        default="http://localhost:3000/api/lightspeed/catalog",
        description="Endpoint returning the POS/ERP catalog snapshot"
    )
    catalog_snapshot_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        le=600,
        description="Timeout for the snapshot request"
    )
    catalog_snapshot_cache_seconds: int = Field(
        default=60,
        ge=0,
        le=3600,
        description="TTL of the in-process snapshot cache"
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
        return bool(self.supabase_url and (self.supabase_service_key or self.supabase_key))


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
