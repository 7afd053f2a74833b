"""
Database connection management.

Provides the Supabase client singleton used by the staging store
and the store directory.
"""

from supabase import create_client, Client
from functools import lru_cache
from typing import Optional
import structlog

from config.settings import settings

logger = structlog.get_logger(__name__)

STAGING_TABLE = "shopify_cart_inventory_staging"
TOKENS_TABLE = "shopify_tokens"


class DatabaseError(Exception):
    """Base exception for database errors."""
    pass


class ConnectionError(DatabaseError):
    """Failed to connect to database."""
    pass


@lru_cache()
def get_supabase_client() -> Client:
    """
    Get cached Supabase client instance.

    Prefers the service role key; staging writes bypass row level security.
    Call get_supabase_client.cache_clear() to reconnect.

    Returns:
        Client: Supabase client

    Raises:
        ConnectionError: If Supabase is not configured or connection fails
    """
    if not settings.supabase_configured:
        raise ConnectionError("Supabase is not configured")

    try:
        logger.info(
            "connecting_to_supabase",
            url=settings.supabase_url[:30] + "..."  # Log partial URL only
        )

        client = create_client(
            settings.supabase_url,
            settings.supabase_service_key or settings.supabase_key
        )

        logger.info(
            "supabase_connected",
            status="success"
        )

        return client

    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise ConnectionError(f"Failed to connect to Supabase: {e}") from e


def try_get_supabase_client() -> Optional[Client]:
    """
    Get the Supabase client, or None when it is unavailable.

    Callers that degrade gracefully use this instead of handling
    ConnectionError themselves.
    """
    try:
        return get_supabase_client()
    except ConnectionError:
        return None


# Convenience alias
db = get_supabase_client


# ===================
# HELPER FUNCTIONS
# ===================

def check_connection() -> dict:
    """
    Check database connection health.

    Returns:
        dict: Connection status with details
    """
    if not settings.supabase_configured:
        return {
            "status": "not_configured",
            "backend": "memory"
        }

    try:
        client = get_supabase_client()

        staged = client.table(STAGING_TABLE).select("parent_id", count="exact").limit(1).execute()

        return {
            "status": "healthy",
            "backend": "supabase",
            "staged_count": staged.count
        }

    except Exception as e:
        return {
            "status": "unhealthy",
            "backend": "memory",
            "error": str(e)
        }


def reset_connection():
    """
    Reset the cached database connection.

    Call this if connection becomes stale or after config changes.
    """
    get_supabase_client.cache_clear()
    logger.info("database_connection_reset")
