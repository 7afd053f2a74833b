"""
Storefront variant scanner.

Walks the active products of a shop page by page over the Admin
GraphQL API and flattens their variants. Scans are bounded by a page
cap; hitting the cap marks the result truncated but still returns it.
"""

from typing import Any, Optional
import structlog

from config import settings
from exceptions import ShopifyAPIError
from integrations.shopify import run_graphql
from models.storefront import ScanResult, StorefrontVariant, TokenCandidate
from services.cache_service import TTLCache
from services.store_service import StoreService, get_store_service
from utils.text_utils import normalize_lower, normalize_text, parse_number

logger = structlog.get_logger(__name__)

ACTIVE_PRODUCTS_FILTER = "status:active"
VARIANTS_PER_PRODUCT = 250
COLOR_OPTION_NAMES = {"color", "colour"}
SIZE_OPTION_NAMES = {"size"}

PRODUCTS_QUERY = """
query InventoryMatrixProducts($first: Int!, $after: String, $query: String) {
  products(first: $first, after: $after, query: $query, sortKey: UPDATED_AT, reverse: true) {
    edges {
      cursor
      node {
        id
        title
        featuredImage {
          url
        }
        variants(first: %d) {
          nodes {
            id
            sku
            barcode
            price
            inventoryQuantity
            selectedOptions {
              name
              value
            }
            image {
              url
            }
          }
        }
      }
    }
    pageInfo {
      hasNextPage
      endCursor
    }
  }
}
""" % VARIANTS_PER_PRODUCT


def _option_value(options: list[dict], names: set[str]) -> str:
    for option in options:
        if normalize_lower((option or {}).get("name")) in names:
            return normalize_text(option.get("value"))
    return ""


def _image_url(node: Any) -> str:
    return normalize_text((node or {}).get("url")) if isinstance(node, dict) else ""


def parse_product_variants(product: dict) -> list[StorefrontVariant]:
    """
    Flatten one product node into variant records.

    The product title and featured image travel with every variant.
    """
    product_id = normalize_text(product.get("id"))
    product_title = normalize_text(product.get("title"))
    product_image = _image_url(product.get("featuredImage"))

    variants = []
    for node in (product.get("variants") or {}).get("nodes") or []:
        if not isinstance(node, dict):
            continue
        options = node.get("selectedOptions") or []
        quantity = parse_number(node.get("inventoryQuantity"))
        variants.append(StorefrontVariant(
            id=normalize_text(node.get("id")),
            product_id=product_id,
            product_title=product_title,
            sku=normalize_text(node.get("sku")),
            barcode=normalize_text(node.get("barcode")),
            price=parse_number(node.get("price")),
            inventory_quantity=int(quantity) if quantity is not None else None,
            color=_option_value(options, COLOR_OPTION_NAMES),
            size=_option_value(options, SIZE_OPTION_NAMES),
            image=_image_url(node.get("image")),
            product_image=product_image,
        ))
    return variants


class StorefrontScannerService:
    """
    Scan a shop's variants with a per-store TTL cache.

    scan() never raises for upstream problems: missing credentials or
    failed scans come back as an empty result with a warning.
    """

    def __init__(
        self,
        store_service: Optional[StoreService] = None,
        cache: Optional[TTLCache[ScanResult]] = None,
        page_size: Optional[int] = None,
        max_pages: Optional[int] = None
    ):
        self.store_service = store_service or get_store_service()
        self.cache = cache if cache is not None else TTLCache(settings.shopify_variants_cache_seconds)
        self.page_size = page_size or settings.shopify_products_per_page
        self.max_pages = max_pages or settings.shopify_max_scan_pages

    def scan(self, store: str, force_refresh: bool = False) -> ScanResult:
        """
        Get the shop's variants, from cache unless force_refresh.

        Args:
            store: Normalized shop domain
            force_refresh: Skip the cache; a successful scan replaces it

        Returns:
            ScanResult (warning set when Shopify data is unavailable)
        """
        if not store:
            return ScanResult(warning="No Shopify shop connected. Shopify availability is unavailable.")

        if not force_refresh:
            cached = self.cache.get(store)
            if cached is not None:
                logger.debug("storefront_cache_hit", store=store, variants=len(cached.variants))
                return cached.model_copy(update={"from_cache": True})

        candidates = self.store_service.get_token_candidates(store)
        if not candidates:
            logger.warning("storefront_no_credentials", store=store)
            return ScanResult(warning=f"Shop {store} is not connected. Shopify availability is unavailable.")

        last_error = ""
        for candidate in candidates:
            try:
                result = self._scan_with_token(store, candidate)
            except ShopifyAPIError as e:
                logger.warning(
                    "storefront_scan_attempt_failed",
                    store=store,
                    source=candidate.source,
                    error=e.message
                )
                last_error = e.message
                continue

            self.cache.set(store, result)
            return result

        return ScanResult(warning=f"Shopify availability comparison failed: {last_error}")

    def _scan_with_token(self, store: str, candidate: TokenCandidate) -> ScanResult:
        """
        Walk all active products with one credential.

        Raises:
            ShopifyAPIError: Any page failed; partial data is discarded
        """
        variants: list[StorefrontVariant] = []
        cursor: Optional[str] = None
        truncated = False
        page = 0

        while page < self.max_pages:
            data = run_graphql(
                store,
                candidate.token,
                PRODUCTS_QUERY,
                variables={
                    "first": self.page_size,
                    "after": cursor,
                    "query": ACTIVE_PRODUCTS_FILTER,
                }
            )
            products = (data or {}).get("products") or {}
            for edge in products.get("edges") or []:
                product = (edge or {}).get("node")
                if isinstance(product, dict):
                    variants.extend(parse_product_variants(product))

            page_info = products.get("pageInfo") or {}
            has_next_page = bool(page_info.get("hasNextPage"))
            end_cursor = normalize_text(page_info.get("endCursor"))
            page += 1

            if not has_next_page or not end_cursor:
                break
            if page >= self.max_pages:
                truncated = True
                break
            cursor = end_cursor

        logger.info(
            "storefront_scan_complete",
            store=store,
            source=candidate.source,
            pages=page,
            variants=len(variants),
            truncated=truncated
        )
        return ScanResult(variants=variants, truncated=truncated, source=candidate.source)


# Singleton instance for convenience
_scanner_service: Optional[StorefrontScannerService] = None

def get_storefront_scanner_service() -> StorefrontScannerService:
    """Get or create StorefrontScannerService instance."""
    global _scanner_service
    if _scanner_service is None:
        _scanner_service = StorefrontScannerService()
    return _scanner_service
