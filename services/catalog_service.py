"""
Catalog snapshot service.

Wraps the snapshot provider with a short in-process cache.
"""

from typing import Optional
import structlog

from config import settings
from integrations.catalog_snapshot import fetch_catalog_snapshot
from models.catalog import CatalogSnapshot
from services.cache_service import TTLCache

logger = structlog.get_logger(__name__)

SNAPSHOT_CACHE_KEY = "catalog"


class CatalogService:
    """
    Catalog snapshot access.

    refresh=True bypasses the cache and replaces it on success.
    Provider failures propagate as CatalogSnapshotError.
    """

    def __init__(self, cache: Optional[TTLCache[CatalogSnapshot]] = None):
        self.cache = cache if cache is not None else TTLCache(settings.catalog_snapshot_cache_seconds)

    def get_snapshot(self, refresh: bool = False) -> CatalogSnapshot:
        if not refresh:
            cached = self.cache.get(SNAPSHOT_CACHE_KEY)
            if cached is not None:
                logger.debug("catalog_snapshot_cache_hit", rows=len(cached.rows))
                return cached

        snapshot = fetch_catalog_snapshot(refresh=refresh)
        self.cache.set(SNAPSHOT_CACHE_KEY, snapshot)
        return snapshot


# Singleton instance for convenience
_catalog_service: Optional[CatalogService] = None

def get_catalog_service() -> CatalogService:
    """Get or create CatalogService instance."""
    global _catalog_service
    if _catalog_service is None:
        _catalog_service = CatalogService()
    return _catalog_service
