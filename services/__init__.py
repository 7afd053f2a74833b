"""
Business logic services.

Each service handles one domain area.
"""

from services.cache_service import TTLCache
from services.catalog_service import CatalogService, get_catalog_service
from services.store_service import StoreService, get_store_service
from services.storefront_scanner_service import (
    StorefrontScannerService,
    get_storefront_scanner_service,
)
from services.matching_service import VariantIndex, MatchingService, match_row
from services.aggregation_service import aggregate
from services.staging_service import (
    StagingService,
    SupabaseStagingBackend,
    MemoryStagingBackend,
    get_staging_service,
)
from services.undo_session_service import UndoSessionService, get_undo_session_service
from services.cart_inventory_service import CartInventoryService, get_cart_inventory_service
from services.inventory_matrix_service import InventoryMatrixService, get_inventory_matrix_service

__all__ = [
    "TTLCache",
    "CatalogService",
    "get_catalog_service",
    "StoreService",
    "get_store_service",
    "StorefrontScannerService",
    "get_storefront_scanner_service",
    "VariantIndex",
    "MatchingService",
    "match_row",
    "aggregate",
    "StagingService",
    "SupabaseStagingBackend",
    "MemoryStagingBackend",
    "get_staging_service",
    "UndoSessionService",
    "get_undo_session_service",
    "CartInventoryService",
    "get_cart_inventory_service",
    "InventoryMatrixService",
    "get_inventory_matrix_service",
]
