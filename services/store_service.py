"""
Store directory: which Shopify shops are connected and which
credentials to try for each.

Supabase failures here are logged and skipped; the env configuration
still works on its own.
"""

from typing import Optional
import structlog

from config import settings, try_get_supabase_client, TOKENS_TABLE
from integrations.shopify import get_env_admin_token
from models.storefront import TokenCandidate
from utils.text_utils import natural_sort_key, normalize_store_domain, normalize_text

logger = structlog.get_logger(__name__)

MAX_LISTED_STORES = 100


class StoreService:
    """Shop listing, shop resolution and token lookup."""

    def configured_store(self) -> str:
        """Default shop from settings, normalized, or ""."""
        return normalize_store_domain(settings.shopify_shop_domain) or ""

    def list_available_stores(self) -> list[str]:
        """
        List connected shops.

        Returns:
            Distinct shops from the tokens table (newest installs first,
            at most 100) plus the configured shop, naturally sorted
        """
        db_shops: list[str] = []
        client = try_get_supabase_client()
        if client is not None:
            try:
                result = (
                    client.table(TOKENS_TABLE)
                    .select("shop,installed_at")
                    .order("installed_at", desc=True)
                    .limit(MAX_LISTED_STORES)
                    .execute()
                )
                for row in result.data or []:
                    shop = normalize_store_domain((row or {}).get("shop"))
                    if shop:
                        db_shops.append(shop)
            except Exception as e:
                logger.warning("list_stores_failed", error=str(e))

        unique = set(db_shops)
        configured = self.configured_store()
        if configured:
            unique.add(configured)
        return sorted(unique, key=natural_sort_key)

    def resolve_store(self, requested: Optional[str], available: Optional[list[str]] = None) -> str:
        """
        Pick the shop for a request.

        Order: requested shop, configured shop, first available shop.
        Returns "" when nothing resolves.
        """
        requested_shop = normalize_store_domain(requested)
        if requested_shop:
            return requested_shop
        configured = self.configured_store()
        if configured:
            return configured
        return (available or [""])[0]

    def get_token_candidates(self, store: str) -> list[TokenCandidate]:
        """
        Credentials to try for a shop, in order.

        The persisted token (source "db") comes first, then the env token
        (source "env_token") if it differs.
        """
        db_token = ""
        client = try_get_supabase_client()
        if client is not None:
            try:
                result = (
                    client.table(TOKENS_TABLE)
                    .select("access_token")
                    .eq("shop", store)
                    .limit(1)
                    .execute()
                )
                rows = result.data or []
                if rows:
                    db_token = normalize_text(rows[0].get("access_token"))
            except Exception as e:
                logger.warning("token_lookup_failed", shop=store, error=str(e))

        env_token = normalize_text(get_env_admin_token(store))

        candidates: list[TokenCandidate] = []
        if db_token:
            candidates.append(TokenCandidate(token=db_token, source="db"))
        if env_token and env_token != db_token:
            candidates.append(TokenCandidate(token=env_token, source="env_token"))
        return candidates


# Singleton instance for convenience
_store_service: Optional[StoreService] = None

def get_store_service() -> StoreService:
    """Get or create StoreService instance."""
    global _store_service
    if _store_service is None:
        _store_service = StoreService()
    return _store_service
