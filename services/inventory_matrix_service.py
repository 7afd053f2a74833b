"""
Inventory matrix query façade.

One request:
    1. fetch available shops, the catalog snapshot, staged ids and the
       Shopify variants concurrently
    2. index the variants and aggregate the snapshot rows into parents
    3. filter, paginate, and attach facets, summary and match stats

Only a missing snapshot or an unresolvable shop fails the request;
everything else degrades to warnings.
"""

import asyncio
from typing import Any, Optional
import structlog

from exceptions import StoreNotResolvedError
from models.catalog import CatalogSnapshot
from models.matrix import (
    CatalogInfo,
    MatchStatsResponse,
    MatrixFilters,
    MatrixOptions,
    MatrixResponse,
    MatrixSummary,
    ParentGroup,
)
from models.storefront import ScanResult
from services.aggregation_service import aggregate
from services.catalog_service import CatalogService, get_catalog_service
from services.matching_service import VariantIndex
from services.staging_service import StagingService, get_staging_service
from services.store_service import StoreService, get_store_service
from services.storefront_scanner_service import (
    StorefrontScannerService,
    get_storefront_scanner_service,
)
from utils.pagination_utils import paginate, resolve_page_size
from utils.stock_utils import within_range
from utils.text_utils import distinct_sorted, includes_text, join_warnings, normalize_lower

logger = structlog.get_logger(__name__)

MATRIX_PAGE_SIZES = (50, 100, 200, 300, 500)
DEFAULT_MATRIX_PAGE_SIZE = 100


def parent_matches_filters(parent: ParentGroup, filters: MatrixFilters) -> bool:
    """AND of every active filter."""
    cart_state = normalize_lower(filters.cart_state)
    if cart_state == "enabled" and not parent.available_at.cart:
        return False
    if cart_state == "notenabled" and parent.available_at.cart:
        return False

    shopify_state = normalize_lower(filters.shopify_state)
    if shopify_state == "available" and not parent.available_at.shopify:
        return False
    if shopify_state == "missing" and parent.available_at.shopify:
        return False

    sku_needle = normalize_lower(filters.sku)
    if sku_needle and not (
        includes_text(parent.sku, sku_needle)
        or any(
            includes_text(v.sku, sku_needle)
            or includes_text(v.upc, sku_needle)
            or includes_text(v.seller_sku, sku_needle)
            for v in parent.variants
        )
    ):
        return False

    if not includes_text(parent.title, normalize_lower(filters.name)):
        return False

    category = normalize_lower(filters.category_name)
    if category and category != "all" and normalize_lower(parent.category) != category:
        return False

    if not within_range(parent.price, filters.price_from, filters.price_to):
        return False
    return within_range(parent.stock, filters.stock_from, filters.stock_to)


def truncation_warnings(snapshot: CatalogSnapshot, scan: ScanResult, max_pages: int) -> list[str]:
    warnings = []
    if snapshot.truncated:
        warnings.append(
            f"Catalog snapshot is truncated ({len(snapshot.rows)} of "
            f"{snapshot.total_in_source} rows loaded); results may be incomplete."
        )
    if scan.truncated:
        warnings.append(
            f"Shopify scan stopped after {max_pages} pages; availability may be incomplete."
        )
    return warnings


class InventoryMatrixService:
    """Reconciles the catalog snapshot with a shop's Shopify variants."""

    def __init__(
        self,
        store_service: Optional[StoreService] = None,
        catalog_service: Optional[CatalogService] = None,
        staging: Optional[StagingService] = None,
        scanner: Optional[StorefrontScannerService] = None
    ):
        self.store_service = store_service or get_store_service()
        self.catalog_service = catalog_service or get_catalog_service()
        self.staging = staging or get_staging_service()
        self.scanner = scanner or get_storefront_scanner_service()

    async def _fetch_for_store(self, store: str, refresh: bool):
        return await asyncio.gather(
            asyncio.to_thread(self.catalog_service.get_snapshot, refresh),
            asyncio.to_thread(self.staging.list_ids, store),
            asyncio.to_thread(self.scanner.scan, store, refresh),
        )

    async def query(
        self,
        store: Optional[str] = None,
        filters: Optional[MatrixFilters] = None,
        page: Any = 1,
        page_size: Any = DEFAULT_MATRIX_PAGE_SIZE,
        refresh: bool = False
    ) -> MatrixResponse:
        """
        Build one page of the inventory matrix.

        Args:
            store: Requested shop domain; falls back to the configured
                shop, then the first connected shop
            filters: Parent-level filters
            page: 1-indexed, clamped into range
            page_size: One of MATRIX_PAGE_SIZES, else the default
            refresh: Bypass the snapshot and variant caches

        Raises:
            StoreNotResolvedError: No shop could be resolved
            CatalogSnapshotError: Snapshot provider failed
        """
        filters = filters or MatrixFilters()
        size = resolve_page_size(page_size, MATRIX_PAGE_SIZES, DEFAULT_MATRIX_PAGE_SIZE)

        resolved = self.store_service.resolve_store(store)
        if resolved:
            shops, (snapshot, staged, scan) = await asyncio.gather(
                asyncio.to_thread(self.store_service.list_available_stores),
                self._fetch_for_store(resolved, refresh),
            )
        else:
            shops = await asyncio.to_thread(self.store_service.list_available_stores)
            resolved = self.store_service.resolve_store(store, shops)
            if not resolved:
                raise StoreNotResolvedError(store)
            snapshot, staged, scan = await self._fetch_for_store(resolved, refresh)

        index = VariantIndex.build(scan.variants)
        parents, stats = aggregate(snapshot.rows, index, staged.data, snapshot.options.shops)
        filtered = [p for p in parents if parent_matches_filters(p, filters)]
        paged = paginate(filtered, page, size)

        warnings = [w for w in (scan.warning, staged.warning) if w]
        warnings.extend(truncation_warnings(snapshot, scan, self.scanner.max_pages))

        logger.info(
            "inventory_matrix_built",
            shop=resolved,
            catalog_rows=len(snapshot.rows),
            shopify_variants=len(scan.variants),
            parents=len(parents),
            filtered=len(filtered),
            exact_sku=stats.exact_sku,
            fuzzy_sku=stats.fuzzy_sku,
            barcode=stats.barcode,
            unmatched=stats.unmatched,
            warnings=len(warnings)
        )

        return MatrixResponse(
            shop=resolved,
            shops=shops,
            source=scan.source,
            warning=join_warnings(*warnings),
            warnings=warnings,
            truncated=snapshot.truncated or scan.truncated,
            filters=filters,
            options=MatrixOptions(
                categories=distinct_sorted(p.category for p in parents),
                brands=distinct_sorted(p.brand for p in parents),
                shops=snapshot.options.shops,
            ),
            summary=MatrixSummary(
                total_products=len(filtered),
                total_items=sum(p.variations for p in filtered),
                total_in_cart=sum(1 for p in filtered if p.available_at.cart),
                total_on_shopify=sum(1 for p in filtered if p.available_at.shopify),
            ),
            catalog=CatalogInfo(
                total_loaded=len(snapshot.rows),
                total_in_source=snapshot.total_in_source,
                truncated=snapshot.truncated,
            ),
            match_stats=MatchStatsResponse(
                **stats.model_dump(),
                shopify_variants_scanned=len(scan.variants),
                catalog_rows_processed=len(snapshot.rows),
            ),
            page=paged.page,
            page_size=size,
            total=paged.total,
            total_pages=paged.total_pages,
            rows=paged.rows,
        )


# Singleton instance for convenience
_inventory_matrix_service: Optional[InventoryMatrixService] = None

def get_inventory_matrix_service() -> InventoryMatrixService:
    """Get or create InventoryMatrixService instance."""
    global _inventory_matrix_service
    if _inventory_matrix_service is None:
        _inventory_matrix_service = InventoryMatrixService()
    return _inventory_matrix_service
