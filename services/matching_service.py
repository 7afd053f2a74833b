"""
Matching engine: pairs each catalog row with at most one Shopify variant.

Tiers run in a fixed order and the first hit wins:
    1. exact_sku  - custom_sku, system_sku, item_id against variant SKUs
    2. fuzzy_sku  - same candidates with one leading "c" stripped on
                    either side
    3. barcode    - upc, ean against variant barcodes
When several variants share a key, the first one scanned wins.
"""

from typing import Callable, Iterable, Optional
import structlog

from models.catalog import CatalogRow
from models.matrix import MatchResult, MatchStats, MatchTier
from models.storefront import StorefrontVariant
from utils.text_utils import normalize_sku_key, strip_leading_c

logger = structlog.get_logger(__name__)

SKU_FIELDS = ("custom_sku", "system_sku", "item_id")
BARCODE_FIELDS = ("upc", "ean")
FUZZY_MIN_KEY_LENGTH = 4
FUZZY_MIN_STRIPPED_LENGTH = 3


class VariantIndex:
    """
    Lookup tables over one scan's variants.

    by_stripped_sku maps each SKU key with its leading "c" removed to the
    variants of the first SKU key producing it.
    """

    def __init__(
        self,
        by_sku: dict[str, list[StorefrontVariant]],
        by_barcode: dict[str, list[StorefrontVariant]]
    ):
        self.by_sku = by_sku
        self.by_barcode = by_barcode
        self.by_stripped_sku: dict[str, list[StorefrontVariant]] = {}
        for key, variants in by_sku.items():
            self.by_stripped_sku.setdefault(strip_leading_c(key), variants)

    @classmethod
    def build(cls, variants: Iterable[StorefrontVariant]) -> "VariantIndex":
        by_sku: dict[str, list[StorefrontVariant]] = {}
        by_barcode: dict[str, list[StorefrontVariant]] = {}
        for variant in variants:
            sku_key = normalize_sku_key(variant.sku)
            if sku_key:
                by_sku.setdefault(sku_key, []).append(variant)
            barcode_key = normalize_sku_key(variant.barcode)
            if barcode_key:
                by_barcode.setdefault(barcode_key, []).append(variant)
        return cls(by_sku, by_barcode)

    def __len__(self) -> int:
        return sum(len(v) for v in self.by_sku.values())


def _candidate_keys(row: CatalogRow, fields: tuple[str, ...]) -> list[str]:
    keys = []
    for field in fields:
        key = normalize_sku_key(getattr(row, field))
        if key:
            keys.append(key)
    return keys


def _first(variants: Optional[list[StorefrontVariant]]) -> Optional[StorefrontVariant]:
    return variants[0] if variants else None


def match_exact_sku(row: CatalogRow, index: VariantIndex) -> Optional[StorefrontVariant]:
    for key in _candidate_keys(row, SKU_FIELDS):
        hit = _first(index.by_sku.get(key))
        if hit:
            return hit
    return None


def match_fuzzy_sku(row: CatalogRow, index: VariantIndex) -> Optional[StorefrontVariant]:
    for key in _candidate_keys(row, SKU_FIELDS):
        if len(key) < FUZZY_MIN_KEY_LENGTH:
            continue
        stripped = strip_leading_c(key)
        if stripped != key and len(stripped) >= FUZZY_MIN_STRIPPED_LENGTH:
            hit = _first(index.by_sku.get(stripped))
            if hit:
                return hit
        # Shopify side carries the prefix, or both sides do
        hit = _first(index.by_stripped_sku.get(stripped)) or _first(index.by_stripped_sku.get(key))
        if hit:
            return hit
    return None


def match_barcode(row: CatalogRow, index: VariantIndex) -> Optional[StorefrontVariant]:
    for key in _candidate_keys(row, BARCODE_FIELDS):
        hit = _first(index.by_barcode.get(key))
        if hit:
            return hit
    return None


MATCH_TIERS: tuple[tuple[MatchTier, Callable[[CatalogRow, VariantIndex], Optional[StorefrontVariant]]], ...] = (
    (MatchTier.EXACT_SKU, match_exact_sku),
    (MatchTier.FUZZY_SKU, match_fuzzy_sku),
    (MatchTier.BARCODE, match_barcode),
)


def match_row(row: CatalogRow, index: VariantIndex) -> MatchResult:
    """Run the tiers in order; tier NONE when nothing hits."""
    for tier, matcher in MATCH_TIERS:
        variant = matcher(row, index)
        if variant is not None:
            return MatchResult(row=row, variant=variant, tier=tier)
    return MatchResult(row=row)


class MatchingService:
    """
    Matches rows against one index and keeps tier counters.

    Create one per reconciliation.
    """

    def __init__(self, index: VariantIndex):
        self.index = index
        self.stats = MatchStats()

    def match(self, row: CatalogRow) -> MatchResult:
        result = match_row(row, self.index)
        self.stats.record(result.tier)
        return result
