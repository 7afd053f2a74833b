"""
Aggregation engine: groups matched catalog rows into parent products.

Grouping key per row:
    matrix:<item_matrix_id>   when the matrix id is present and not "0"
    sku:<fallback sku>        otherwise (system_sku, item_id, custom_sku, id)
Rows without any key are dropped and counted as unmatched.
"""

import re
from typing import Iterable, Optional
import structlog

from models.catalog import CatalogRow
from models.matrix import (
    AvailableAt,
    MatchResult,
    MatchStats,
    ParentGroup,
    StockByLocation,
    VariantRow,
)
from models.storefront import StorefrontVariant
from services.matching_service import MatchingService, VariantIndex
from utils.stock_utils import aggregate_location_stock, sum_known_quantities
from utils.text_utils import (
    collapse_whitespace,
    natural_sort_key,
    normalize_lower,
    normalize_text,
    to_gid_numeric_id,
)

logger = structlog.get_logger(__name__)

TITLE_STRIP_PASSES = 3
NO_MATRIX_ID = "0"


# ===================
# ROW RESOLUTION
# ===================

def resolve_fallback_sku(row: CatalogRow) -> str:
    return row.system_sku or row.item_id or row.custom_sku or row.id


def resolve_group_key(row: CatalogRow) -> str:
    """matrix:<id> / sku:<sku> (lowercased), or "" when unkeyable."""
    matrix_id = row.item_matrix_id
    if matrix_id and matrix_id != NO_MATRIX_ID:
        return f"matrix:{normalize_lower(matrix_id)}"
    fallback_sku = resolve_fallback_sku(row)
    if not fallback_sku:
        return ""
    return f"sku:{normalize_lower(fallback_sku)}"


def resolve_display_sku(row: CatalogRow) -> str:
    matrix_id = row.item_matrix_id
    if matrix_id and matrix_id != NO_MATRIX_ID:
        return matrix_id
    return resolve_fallback_sku(row)


def resolve_variant_sku(row: CatalogRow) -> str:
    return row.custom_sku or row.system_sku or row.item_id or row.id


def resolve_variant_upc(row: CatalogRow) -> str:
    return row.upc or row.ean


def build_cart_id(variant: Optional[StorefrontVariant]) -> str:
    """
    Storefront line-item reference for a matched variant.

    "<productNumericId>~<variantNumericId>", else the variant GID.
    """
    if variant is None:
        return ""
    product_numeric_id = to_gid_numeric_id(variant.product_id)
    variant_numeric_id = to_gid_numeric_id(variant.id)
    if product_numeric_id and variant_numeric_id:
        return f"{product_numeric_id}~{variant_numeric_id}"
    return variant.id


# ===================
# TITLE CLEANUP
# ===================

def _token_pattern(token: str) -> str:
    return r"\s+".join(re.escape(part) for part in token.split())


def normalize_parent_title(raw_title: str, fallback_sku: str, variants: Iterable[VariantRow]) -> str:
    """
    Strip redundant trailing size/color tokens from an ERP description.

    "TONY PANTS STONE L" with variant tokens {L, STONE} → "TONY PANTS".
    Tokens only match after a separator (whitespace, "-", "_" or "/"),
    longest first, one token per pass, at most 3 passes. A strip that
    would empty the title is skipped.
    """
    current = collapse_whitespace(raw_title or fallback_sku)
    if not current:
        return ""

    tokens = {
        normalize_text(token).upper()
        for variant in variants
        for token in (variant.size, variant.color)
        if normalize_text(token)
    }
    patterns = [
        re.compile(rf"(?:\s*[-_/]\s*|\s+){_token_pattern(token)}$", re.IGNORECASE)
        for token in sorted(tokens, key=len, reverse=True)
    ]

    for _ in range(TITLE_STRIP_PASSES):
        changed = False
        for pattern in patterns:
            if not pattern.search(current):
                continue
            cleaned = collapse_whitespace(pattern.sub("", current))
            if not cleaned:
                continue
            current = cleaned
            changed = True
            break
        if not changed:
            break

    return current


# ===================
# GROUPING
# ===================

class _ParentAccumulator:
    """Mutable group state while rows stream in."""

    def __init__(self, key: str, display_sku: str):
        self.id = key
        self.sku = display_sku
        self.title = ""
        self.category = ""
        self.brand = ""
        self.image = ""
        self.price: Optional[float] = None
        self.stocks: list[Optional[float]] = []
        self.variants: list[VariantRow] = []

    def add(self, row: CatalogRow, match: MatchResult, variant_row: VariantRow) -> None:
        matched = match.variant
        self.variants.append(variant_row)
        self.stocks.append(variant_row.stock)
        if not self.title:
            self.title = row.description or (matched.product_title if matched else "") or self.sku
        if not self.category:
            self.category = row.category
        if not self.brand:
            self.brand = row.item_type
        if not self.image and matched and matched.product_image:
            self.image = matched.product_image
        if self.price is None:
            self.price = variant_row.price

    def build(self, staged_ids: set[str]) -> ParentGroup:
        variants = sorted(
            self.variants,
            key=lambda v: (natural_sort_key(v.sku), natural_sort_key(v.upc))
        )
        return ParentGroup(
            id=self.id,
            title=normalize_parent_title(self.title, self.sku, variants),
            category=self.category,
            brand=self.brand,
            sku=self.sku,
            stock=sum_known_quantities(self.stocks),
            price=self.price,
            variations=len(variants),
            image=self.image,
            available_at=AvailableAt(
                shopify=any(v.available_in_shopify for v in variants),
                cart=normalize_lower(self.id) in staged_ids
            ),
            variants=variants,
        )


def build_variant_row(
    row: CatalogRow,
    match: MatchResult,
    parent_key: str,
    parent_sku: str,
    known_locations_lower: set[str],
    staged: bool
) -> VariantRow:
    matched = match.variant
    variant_sku = resolve_variant_sku(row)
    variant_upc = resolve_variant_upc(row)
    stock = aggregate_location_stock(row.locations, known_locations_lower)
    return VariantRow(
        id=row.id or f"{parent_sku}-{variant_sku}-{variant_upc}",
        parent_id=parent_key,
        sku=variant_sku,
        upc=variant_upc,
        seller_sku=matched.sku if matched else "",
        cart_id=build_cart_id(matched),
        stock=stock.total,
        stock_by_location=[
            StockByLocation(location=loc.location, qty=loc.qty) for loc in stock.rows
        ],
        price=row.price,
        color=row.color or (matched.color if matched else ""),
        size=row.size or (matched.size if matched else ""),
        image=matched.image if matched else "",
        available_in_shopify=matched is not None,
        staged_in_cart=staged,
    )


def aggregate(
    rows: Iterable[CatalogRow],
    index: VariantIndex,
    staged_ids: Iterable[str],
    known_locations: Iterable[str]
) -> tuple[list[ParentGroup], MatchStats]:
    """
    Match every row and group the results into parents.

    Args:
        rows: Catalog snapshot rows
        index: Lookup tables over the Shopify variants
        staged_ids: Parent ids staged for this store (any case)
        known_locations: Location allow-list; empty accepts all

    Returns:
        Parents sorted by display SKU, and the tier counters
    """
    staged = {normalize_lower(parent_id) for parent_id in staged_ids}
    known_locations_lower = {normalize_lower(loc) for loc in known_locations if normalize_text(loc)}
    matcher = MatchingService(index)
    groups: dict[str, _ParentAccumulator] = {}
    dropped = 0

    for row in rows:
        parent_sku = resolve_display_sku(row)
        parent_key = resolve_group_key(row)
        if not parent_sku or not parent_key:
            dropped += 1
            continue

        match = matcher.match(row)
        variant_row = build_variant_row(
            row,
            match,
            parent_key,
            parent_sku,
            known_locations_lower,
            staged=parent_key in staged
        )
        group = groups.get(parent_key)
        if group is None:
            group = groups[parent_key] = _ParentAccumulator(parent_key, parent_sku)
        group.add(row, match, variant_row)

    if dropped:
        matcher.stats.unmatched += dropped
        logger.debug("catalog_rows_unkeyed", count=dropped)

    parents = sorted(
        (group.build(staged) for group in groups.values()),
        key=lambda parent: natural_sort_key(parent.sku)
    )
    return parents, matcher.stats
