"""
Staging store: which parent products are queued for push, per shop.

Backends are tried in order (Supabase, then process memory). A backend
that cannot serve an operation raises StagingBackendError; the store
records its message as a warning and moves to the next one, so staging
operations degrade instead of failing. The memory backend does not
survive a restart and the warning says so.

Parent status, stock and counters are always derived from the
variants; stored parent-level values are never trusted.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional
import structlog

from config import STAGING_TABLE, try_get_supabase_client
from exceptions import StagingBackendError
from models.matrix import StockByLocation
from models.staging import PersistResult, StagingParent, StagingVariant, SyncStatus
from utils.stock_utils import sum_known_quantities
from utils.text_utils import (
    join_warnings,
    natural_sort_key,
    normalize_lower,
    normalize_store_domain,
    normalize_text,
    parse_number,
)

logger = structlog.get_logger(__name__)

DEFAULT_SHOP_KEY = "__default_shop__"
REVIEW_ERROR_MESSAGE = "Marked for review."
NOT_CONFIGURED_WARNING = (
    "Supabase is not configured. Cart Inventory staging is running in memory "
    "for this session; staged items are lost on restart."
)
STAGING_COLUMNS = (
    "shop,parent_id,parent_sku,title,category,brand,stock,price,image,"
    "status,error_message,variants,created_at,updated_at"
)


def normalize_store_key(shop: Optional[str]) -> str:
    """Normalized shop domain, or the shared default bucket."""
    return normalize_store_domain(shop) or DEFAULT_SHOP_KEY


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _pick(raw: dict, *keys: str) -> Any:
    """First present value among snake_case / camelCase spellings."""
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def unique_ids(values: Iterable[Any]) -> list[str]:
    """Trimmed, non-empty, first-seen order."""
    seen: list[str] = []
    for value in values or []:
        text = normalize_text(value)
        if text and text not in seen:
            seen.append(text)
    return seen


# ===================
# DERIVATION / PARSING
# ===================

def derive_status(variants: list[StagingVariant]) -> SyncStatus:
    """ERROR if any variant errored; PROCESSED if non-empty with none pending."""
    if any(v.status == SyncStatus.ERROR for v in variants):
        return SyncStatus.ERROR
    if variants and all(v.status == SyncStatus.PROCESSED for v in variants):
        return SyncStatus.PROCESSED
    return SyncStatus.PENDING


def summarize_parent(parent: StagingParent) -> StagingParent:
    """Recompute status, stock, variations and counters from the variants."""
    variants = parent.variants
    processed = sum(1 for v in variants if v.status == SyncStatus.PROCESSED)
    errors = sum(1 for v in variants if v.status == SyncStatus.ERROR)
    return parent.model_copy(update={
        "status": derive_status(variants),
        "stock": sum_known_quantities(v.stock for v in variants),
        "variations": len(variants),
        "processed_count": processed,
        "error_count": errors,
        "pending_count": max(0, len(variants) - processed - errors),
    })


def _parse_stock_rows(raw: Any) -> list[StockByLocation]:
    if not isinstance(raw, list):
        return []
    return [
        StockByLocation(
            location=normalize_text((item or {}).get("location")),
            qty=parse_number((item or {}).get("qty"))
        )
        for item in raw
        if isinstance(item, dict) or item is None
    ]


def parse_staging_variant(
    raw: Any,
    parent_id: str,
    index: int,
    default_status: Optional[Callable[[bool], SyncStatus]] = None
) -> StagingVariant:
    """
    Build a StagingVariant from a persisted or posted dict.

    Accepts snake_case and camelCase keys. Without an explicit status,
    default_status(matched) decides; otherwise PENDING.
    """
    row = raw if isinstance(raw, dict) else {}
    matched = bool(
        _pick(row, "shopify_matched", "shopifyMatched")
        or _pick(row, "available_in_shopify", "availableInShopify")
    )
    status_raw = normalize_text(row.get("status"))
    if status_raw:
        status = SyncStatus.parse(status_raw)
    elif default_status is not None:
        status = default_status(matched)
    else:
        status = SyncStatus.PENDING

    return StagingVariant(
        id=normalize_text(row.get("id")) or f"{parent_id}-variant-{index + 1}",
        parent_id=parent_id,
        sku=normalize_text(row.get("sku")),
        upc=normalize_text(row.get("upc")),
        seller_sku=normalize_text(_pick(row, "seller_sku", "sellerSku")),
        cart_id=normalize_text(_pick(row, "cart_id", "cartId")),
        stock=parse_number(row.get("stock")),
        stock_by_location=_parse_stock_rows(_pick(row, "stock_by_location", "stockByLocation")),
        price=parse_number(row.get("price")),
        color=normalize_text(row.get("color")),
        size=normalize_text(row.get("size")),
        image=normalize_text(row.get("image")),
        status=status,
        error=normalize_text(row.get("error")) or None,
        shopify_matched=matched,
    )


def _status_from_match(matched: bool) -> SyncStatus:
    return SyncStatus.PROCESSED if matched else SyncStatus.PENDING


def parse_incoming_parent(raw: Any, index: int) -> Optional[StagingParent]:
    """
    Normalize a parent row posted for staging.

    Parent id falls back to parent_id, then sku, then "row-<n>". Rows
    without a sku are dropped (None). Variants without a status are
    PROCESSED when they were matched on Shopify, else PENDING.
    """
    row = raw if isinstance(raw, dict) else {}
    sku = normalize_text(row.get("sku"))
    parent_id = (
        normalize_text(row.get("id"))
        or normalize_text(_pick(row, "parent_id", "parentId"))
        or sku
        or f"row-{index + 1}"
    )
    if not sku:
        return None

    raw_variants = row.get("variants") if isinstance(row.get("variants"), list) else []
    variants = [
        parse_staging_variant(variant, parent_id, i, default_status=_status_from_match)
        for i, variant in enumerate(raw_variants)
    ]
    return summarize_parent(StagingParent(
        id=parent_id,
        title=normalize_text(row.get("title")) or sku,
        category=normalize_text(row.get("category")),
        brand=normalize_text(row.get("brand")),
        sku=sku,
        price=parse_number(row.get("price")),
        image=normalize_text(row.get("image")),
        variants=variants,
        error=normalize_text(row.get("error")) or None,
    ))


def parent_from_record(record: dict) -> StagingParent:
    """Persisted table row to StagingParent."""
    parent_id = normalize_text(record.get("parent_id"))
    raw_variants = record.get("variants") if isinstance(record.get("variants"), list) else []
    return summarize_parent(StagingParent(
        id=parent_id,
        title=normalize_text(record.get("title")),
        category=normalize_text(record.get("category")),
        brand=normalize_text(record.get("brand")),
        sku=normalize_text(record.get("parent_sku")),
        price=parse_number(record.get("price")),
        image=normalize_text(record.get("image")),
        variants=[
            parse_staging_variant(variant, parent_id, i)
            for i, variant in enumerate(raw_variants)
        ],
        error=normalize_text(record.get("error_message")) or None,
        created_at=normalize_text(record.get("created_at")) or None,
        updated_at=normalize_text(record.get("updated_at")) or None,
    ))


def parent_to_record(shop_key: str, parent: StagingParent) -> dict:
    """StagingParent to a table row; created_at is left to the database."""
    normalized = summarize_parent(parent)
    return {
        "shop": shop_key,
        "parent_id": normalized.id,
        "parent_sku": normalized.sku,
        "title": normalized.title,
        "category": normalized.category,
        "brand": normalized.brand,
        "stock": normalized.stock,
        "price": normalized.price,
        "image": normalized.image,
        "status": normalized.status.value,
        "error_message": normalized.error,
        "variants": [v.model_dump(mode="json") for v in normalized.variants],
        "updated_at": _now_iso(),
    }


# ===================
# BACKENDS
# ===================

class StagingBackend:
    """Storage strategy. Raise StagingBackendError to hand over to the next one."""

    name = ""

    def list(self, shop_key: str) -> list[StagingParent]:
        raise NotImplementedError

    def upsert(self, shop_key: str, parents: list[StagingParent]) -> int:
        raise NotImplementedError

    def remove(self, shop_key: str, parent_ids: list[str]) -> int:
        raise NotImplementedError


class SupabaseStagingBackend(StagingBackend):
    """Rows in shopify_cart_inventory_staging, unique on (shop, parent_id)."""

    name = "supabase"

    def _client(self):
        client = try_get_supabase_client()
        if client is None:
            raise StagingBackendError("connect", NOT_CONFIGURED_WARNING)
        return client

    def list(self, shop_key: str) -> list[StagingParent]:
        client = self._client()
        try:
            result = (
                client.table(STAGING_TABLE)
                .select(STAGING_COLUMNS)
                .eq("shop", shop_key)
                .order("updated_at", desc=True)
                .execute()
            )
        except Exception as e:
            raise StagingBackendError(
                "select",
                f"Supabase staging table unavailable ({e}). Using in-memory staging instead."
            )
        return [parent_from_record(row) for row in result.data or [] if isinstance(row, dict)]

    def upsert(self, shop_key: str, parents: list[StagingParent]) -> int:
        client = self._client()
        payload = [parent_to_record(shop_key, parent) for parent in parents]
        try:
            client.table(STAGING_TABLE).upsert(payload, on_conflict="shop,parent_id").execute()
        except Exception as e:
            raise StagingBackendError(
                "upsert",
                f"Supabase upsert unavailable ({e}). Using in-memory staging instead."
            )
        return len(payload)

    def remove(self, shop_key: str, parent_ids: list[str]) -> int:
        client = self._client()
        try:
            result = (
                client.table(STAGING_TABLE)
                .delete()
                .eq("shop", shop_key)
                .in_("parent_id", parent_ids)
                .execute()
            )
        except Exception as e:
            raise StagingBackendError(
                "delete",
                f"Supabase delete unavailable ({e}). Using in-memory staging instead."
            )
        return len(result.data or [])


class MemoryStagingBackend(StagingBackend):
    """
    Process-local map: shop key -> lowercase parent id -> parent.

    Writes are full-record replaces, so concurrent writers end up
    last-writer-wins per parent.
    """

    name = "memory"

    def __init__(self):
        self._buckets: dict[str, dict[str, StagingParent]] = {}

    def _bucket(self, shop_key: str) -> dict[str, StagingParent]:
        return self._buckets.setdefault(shop_key, {})

    def list(self, shop_key: str) -> list[StagingParent]:
        rows = [summarize_parent(p) for p in self._bucket(shop_key).values()]
        return sorted(rows, key=lambda p: natural_sort_key(p.sku))

    def upsert(self, shop_key: str, parents: list[StagingParent]) -> int:
        bucket = self._bucket(shop_key)
        now = _now_iso()
        for parent in parents:
            key = normalize_lower(parent.id)
            previous = bucket.get(key)
            bucket[key] = summarize_parent(parent).model_copy(update={
                "created_at": parent.created_at or (previous.created_at if previous else now),
                "updated_at": now,
            })
        return len(parents)

    def remove(self, shop_key: str, parent_ids: list[str]) -> int:
        bucket = self._bucket(shop_key)
        removed = 0
        for parent_id in parent_ids:
            if bucket.pop(normalize_lower(parent_id), None) is not None:
                removed += 1
        return removed

    def clear(self) -> None:
        self._buckets.clear()


# ===================
# STORE
# ===================

class StagingService:
    """
    Staging operations over an ordered list of backends.

    Every result carries the backend that served it and the joined
    warnings of the backends that were skipped.
    """

    def __init__(self, backends: Optional[list[StagingBackend]] = None):
        self.backends = backends or [SupabaseStagingBackend(), MemoryStagingBackend()]

    def _run(self, operation: str, shop_key: str, action: Callable[[StagingBackend], Any]) -> PersistResult:
        warnings: list[str] = []
        last_index = len(self.backends) - 1
        for i, backend in enumerate(self.backends):
            try:
                data = action(backend)
            except StagingBackendError as e:
                if i == last_index:
                    raise
                logger.warning(
                    "staging_backend_fallback",
                    operation=operation,
                    shop=shop_key,
                    backend=backend.name,
                    error=e.message
                )
                warnings.append(e.message)
                continue
            return PersistResult(backend=backend.name, warning=" ".join(warnings), data=data)
        raise StagingBackendError(operation, "No staging backend configured.")

    def list(self, shop: Optional[str]) -> PersistResult:
        """All staged parents for the shop (data: list[StagingParent])."""
        shop_key = normalize_store_key(shop)
        return self._run("list", shop_key, lambda backend: backend.list(shop_key))

    def list_ids(self, shop: Optional[str]) -> PersistResult:
        """Lowercase ids of the staged parents (data: set[str])."""
        listed = self.list(shop)
        return listed.model_copy(update={"data": {normalize_lower(p.id) for p in listed.data}})

    def upsert(self, shop: Optional[str], parents: list[StagingParent]) -> PersistResult:
        """
        Full-record replace per (shop, parent id).

        Parents without id or sku are dropped. data: upserted count.
        """
        shop_key = normalize_store_key(shop)
        sanitized = [summarize_parent(p) for p in parents if normalize_text(p.id) and normalize_text(p.sku)]
        if not sanitized:
            return PersistResult(backend=self.backends[0].name, data=0)

        result = self._run("upsert", shop_key, lambda backend: backend.upsert(shop_key, sanitized))
        logger.info("staging_upserted", shop=shop_key, backend=result.backend, count=result.data)
        return result

    def remove(self, shop: Optional[str], parent_ids: Iterable[str]) -> PersistResult:
        """Delete by id. data: count actually removed."""
        shop_key = normalize_store_key(shop)
        ids = unique_ids(parent_ids)
        if not ids:
            return PersistResult(backend=self.backends[0].name, data=0)

        result = self._run("remove", shop_key, lambda backend: backend.remove(shop_key, ids))
        logger.info("staging_removed", shop=shop_key, backend=result.backend, count=result.data)
        return result

    def update_status(self, shop: Optional[str], parent_ids: Iterable[str], status: SyncStatus) -> PersistResult:
        """
        Set every variant of the given parents to status.

        ERROR also sets the review message on each variant; other statuses
        clear it. data: number of parents rewritten.
        """
        ids = unique_ids(parent_ids)
        if not ids:
            return PersistResult(backend=self.backends[0].name, data=0)

        listed = self.list(shop)
        by_id = {normalize_lower(p.id): p for p in listed.data}
        error = REVIEW_ERROR_MESSAGE if status == SyncStatus.ERROR else None

        updated_rows = []
        for parent_id in ids:
            current = by_id.get(normalize_lower(parent_id))
            if current is None:
                continue
            variants = [v.model_copy(update={"status": status, "error": error}) for v in current.variants]
            updated_rows.append(summarize_parent(current.model_copy(update={"variants": variants})))

        if not updated_rows:
            return listed.model_copy(update={"data": 0})

        saved = self.upsert(shop, updated_rows)
        return PersistResult(
            backend=saved.backend,
            warning=join_warnings(saved.warning, listed.warning),
            data=len(updated_rows)
        )


# Singleton instance for convenience
_staging_service: Optional[StagingService] = None

def get_staging_service() -> StagingService:
    """Get or create StagingService instance."""
    global _staging_service
    if _staging_service is None:
        _staging_service = StagingService()
    return _staging_service
