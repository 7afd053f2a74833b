"""
Inventory matrix schemas: match results, aggregated parents and the
paginated matrix response.
"""

from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum

from models.base import BaseSchema, PaginatedResponse
from models.catalog import CatalogRow
from models.storefront import StorefrontVariant, TokenSource


class MatchTier(str, Enum):
    """How a catalog row was paired with a Shopify variant."""
    EXACT_SKU = "exact_sku"
    FUZZY_SKU = "fuzzy_sku"
    BARCODE = "barcode"
    NONE = "none"


class MatchResult(BaseModel):
    """Exactly one per catalog row; variant is None for tier NONE."""

    row: CatalogRow
    variant: Optional[StorefrontVariant] = None
    tier: MatchTier = MatchTier.NONE

    @property
    def matched(self) -> bool:
        return self.variant is not None


class MatchStats(BaseModel):
    """Running tier counters for one reconciliation."""

    exact_sku: int = 0
    fuzzy_sku: int = 0
    barcode: int = 0
    unmatched: int = 0

    def record(self, tier: MatchTier) -> None:
        if tier == MatchTier.EXACT_SKU:
            self.exact_sku += 1
        elif tier == MatchTier.FUZZY_SKU:
            self.fuzzy_sku += 1
        elif tier == MatchTier.BARCODE:
            self.barcode += 1
        else:
            self.unmatched += 1


class StockByLocation(BaseSchema):
    location: str
    qty: Optional[float] = None


class VariantRow(BaseSchema):
    """A catalog row inside its parent, annotated with its Shopify match."""

    id: str
    parent_id: str
    sku: str = ""
    upc: str = ""
    seller_sku: str = Field("", description="Matched Shopify SKU")
    cart_id: str = Field("", description="<productId>~<variantId> line-item reference")
    stock: Optional[float] = None
    stock_by_location: list[StockByLocation] = Field(default_factory=list)
    price: Optional[float] = None
    color: str = ""
    size: str = ""
    image: str = ""
    available_in_shopify: bool = False
    staged_in_cart: bool = False


class AvailableAt(BaseSchema):
    shopify: bool = False
    cart: bool = False


class ParentGroup(BaseSchema):
    """Aggregated product built from rows sharing a matrix/SKU key."""

    id: str = Field(..., description="Group key (matrix:<id> or sku:<sku>)")
    title: str = ""
    category: str = ""
    brand: str = ""
    sku: str = Field("", description="Display SKU")
    stock: Optional[float] = None
    price: Optional[float] = None
    variations: int = 0
    image: str = ""
    available_at: AvailableAt = Field(default_factory=AvailableAt)
    variants: list[VariantRow] = Field(default_factory=list)


# ===================
# QUERY
# ===================

class MatrixFilters(BaseSchema):
    """Parent-level filters; all optional and AND-combined."""

    sku: str = ""
    name: str = ""
    price_from: Optional[float] = None
    price_to: Optional[float] = None
    stock_from: Optional[float] = None
    stock_to: Optional[float] = None
    category_name: str = ""
    cart_state: str = Field("All", description="All, Enabled or NotEnabled")
    shopify_state: str = Field("All", description="All, Available or Missing")


class MatrixOptions(BaseModel):
    categories: list[str] = Field(default_factory=list)
    brands: list[str] = Field(default_factory=list)
    shops: list[str] = Field(default_factory=list)
    cart_states: list[str] = Field(default_factory=lambda: ["All", "Enabled", "NotEnabled"])
    shopify_states: list[str] = Field(default_factory=lambda: ["All", "Available", "Missing"])


class MatrixSummary(BaseModel):
    total_products: int = 0
    total_items: int = 0
    total_in_cart: int = 0
    total_on_shopify: int = 0


class CatalogInfo(BaseModel):
    total_loaded: int = 0
    total_in_source: int = 0
    truncated: bool = False


class MatchStatsResponse(MatchStats):
    shopify_variants_scanned: int = 0
    catalog_rows_processed: int = 0


class MatrixResponse(PaginatedResponse):
    """Paginated, filtered, annotated inventory matrix."""

    ok: bool = True
    shop: str
    shops: list[str] = Field(default_factory=list)
    source: Optional[TokenSource] = None
    warning: str = ""
    warnings: list[str] = Field(default_factory=list)
    truncated: bool = False
    filters: MatrixFilters
    options: MatrixOptions
    summary: MatrixSummary
    catalog: CatalogInfo
    match_stats: MatchStatsResponse
    rows: list[ParentGroup] = Field(default_factory=list)
