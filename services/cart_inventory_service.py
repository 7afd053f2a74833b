"""
Cart inventory service: browse staged parents and mutate staging with
undo support.

Every mutation records an undo session holding the operations that
reverse it:
    stage-add     restore overwritten parents, remove newly added ids
    stage-remove  restore the removed parents
    set-status    restore the parents as they were before
"""

from typing import Any, Iterable, Optional
import structlog

from exceptions import EmptyStagingRequestError, UndoSessionNotFoundError
from models.staging import (
    CartFilters,
    CartCompareResponse,
    CartInventoryListResponse,
    CartOptions,
    CartSummary,
    StagingMutationResponse,
    StagingParent,
    SyncStatus,
    UndoOperation,
    UndoResponse,
    UndoSession,
    UndoSessionListResponse,
)
from services.staging_service import (
    StagingService,
    get_staging_service,
    parse_incoming_parent,
    unique_ids,
)
from services.store_service import StoreService, get_store_service
from services.undo_session_service import UndoSessionService, get_undo_session_service
from utils.pagination_utils import paginate, resolve_page_size
from utils.stock_utils import within_range
from utils.text_utils import (
    distinct_sorted,
    includes_text,
    join_warnings,
    natural_sort_key,
    normalize_lower,
)

logger = structlog.get_logger(__name__)

CART_PAGE_SIZES = (20, 50, 75, 100, 200, 500)
DEFAULT_CART_PAGE_SIZE = 20
RECENT_SESSIONS_IN_LIST = 8
SESSIONS_LIST_LIMIT = 25
COMPARE_SESSION_LIMIT = 10
NO_RECENT_SYNC_MESSAGE = (
    "No recent queue sync found. Queue items from the Inventory page first, "
    "then use Compare."
)
UNDO_TARGET = "cart_inventory"


# ===================
# FILTERING
# ===================

def parent_matches_filters(parent: StagingParent, filters: CartFilters) -> bool:
    """AND of every active filter."""
    status_filter = normalize_lower(filters.status)
    if status_filter and status_filter != "all":
        if status_filter in ("processed", "pending", "error") and parent.status.value.lower() != status_filter:
            return False

    sku_needle = normalize_lower(filters.sku)
    if sku_needle and not (
        includes_text(parent.sku, sku_needle)
        or any(includes_text(v.sku, sku_needle) for v in parent.variants)
    ):
        return False

    if not includes_text(parent.sku, normalize_lower(filters.parent_sku)):
        return False
    if not includes_text(parent.title, normalize_lower(filters.name)):
        return False
    if not includes_text(parent.brand, normalize_lower(filters.brand)):
        return False

    category = normalize_lower(filters.category_name)
    if category and category != "all" and normalize_lower(parent.category) != category:
        return False

    if not within_range(parent.price, filters.price_from, filters.price_to):
        return False
    if not within_range(parent.stock, filters.stock_from, filters.stock_to):
        return False

    keyword = normalize_lower(filters.keyword)
    if keyword:
        parent_text = " ".join([parent.title, parent.category, parent.brand, parent.sku])
        if not includes_text(parent_text, keyword) and not any(
            includes_text(
                " ".join([v.sku, v.upc, v.seller_sku, v.cart_id, v.color, v.size]),
                keyword
            )
            for v in parent.variants
        ):
            return False

    return True


# ===================
# UNDO OPERATIONS
# ===================

def build_undo_for_stage_add(current: list[StagingParent], incoming: list[StagingParent]) -> list[UndoOperation]:
    previous = {normalize_lower(p.id): p for p in current}
    touched = unique_ids(p.id for p in incoming)
    restore = [previous[normalize_lower(i)] for i in touched if normalize_lower(i) in previous]
    added = [i for i in touched if normalize_lower(i) not in previous]

    operations = []
    if restore:
        operations.append(UndoOperation(type="restore_rows", rows=restore))
    if added:
        operations.append(UndoOperation(type="remove_rows", parent_ids=added))
    return operations


def build_undo_for_restore(current: list[StagingParent], parent_ids: list[str]) -> list[UndoOperation]:
    wanted = {normalize_lower(i) for i in parent_ids}
    rows = [p for p in current if normalize_lower(p.id) in wanted]
    return [UndoOperation(type="restore_rows", rows=rows)] if rows else []


def stage_add_parent_ids(session: UndoSession) -> set[str]:
    """Lowercase parent ids a stage-add session queued (new and overwritten)."""
    ids = set()
    for operation in session.operations:
        ids.update(normalize_lower(i) for i in operation.parent_ids)
        ids.update(normalize_lower(p.id) for p in operation.rows)
    ids.discard("")
    return ids


class CartInventoryService:
    """Cart inventory queries and staging mutations for one process."""

    def __init__(
        self,
        staging: Optional[StagingService] = None,
        undo_sessions: Optional[UndoSessionService] = None,
        store_service: Optional[StoreService] = None
    ):
        self.staging = staging or get_staging_service()
        self.undo_sessions = undo_sessions or get_undo_session_service()
        self.store_service = store_service or get_store_service()

    def resolve_shop(self, requested: Optional[str]) -> tuple[str, list[str]]:
        """(shop, available shops). Shop may be "" (default staging bucket)."""
        shops = self.store_service.list_available_stores()
        return self.store_service.resolve_store(requested, shops), shops

    # ===================
    # READ OPERATIONS
    # ===================

    def list_inventory(
        self,
        shop: Optional[str] = None,
        filters: Optional[CartFilters] = None,
        page: Any = 1,
        page_size: Any = DEFAULT_CART_PAGE_SIZE
    ) -> CartInventoryListResponse:
        """
        Staged parents for a shop, sorted by SKU, filtered and paged.

        Facets come from every staged parent; summary counts only from
        the filtered ones.
        """
        filters = filters or CartFilters()
        resolved, shops = self.resolve_shop(shop)
        size = resolve_page_size(page_size, CART_PAGE_SIZES, DEFAULT_CART_PAGE_SIZE)

        listed = self.staging.list(resolved)
        ordered = sorted(listed.data, key=lambda p: natural_sort_key(p.sku))
        filtered = [p for p in ordered if parent_matches_filters(p, filters)]
        paged = paginate(filtered, page, size)

        logger.info(
            "cart_inventory_listed",
            shop=resolved,
            backend=listed.backend,
            total=paged.total,
            page=paged.page
        )

        return CartInventoryListResponse(
            shop=resolved,
            shops=shops,
            warning=listed.warning,
            options=CartOptions(
                categories=distinct_sorted(p.category for p in ordered),
                brands=distinct_sorted(p.brand for p in ordered),
            ),
            summary=CartSummary(
                total_products=len(filtered),
                total_items=sum(p.variations for p in filtered),
                total_processed=sum(p.processed_count for p in filtered),
                total_pending=sum(p.pending_count for p in filtered),
                total_errors=sum(p.error_count for p in filtered),
            ),
            undo_sessions=[
                s.summary() for s in self.undo_sessions.list(resolved, UNDO_TARGET, RECENT_SESSIONS_IN_LIST)
            ],
            page=paged.page,
            page_size=size,
            total=paged.total,
            total_pages=paged.total_pages,
            rows=paged.rows,
        )

    def list_sessions(self, shop: Optional[str] = None) -> UndoSessionListResponse:
        resolved, _ = self.resolve_shop(shop)
        sessions = self.undo_sessions.list(resolved, UNDO_TARGET, SESSIONS_LIST_LIMIT)
        return UndoSessionListResponse(shop=resolved, sessions=[s.summary() for s in sessions])

    def compare(self, shop: Optional[str] = None) -> CartCompareResponse:
        """
        Staged parents not queued by the last stage-add sessions.

        Uses the newest COMPARE_SESSION_LIMIT stage-add sessions of the
        shop. Without any, has_last_sync is False and no rows are listed.
        """
        resolved, _ = self.resolve_shop(shop)
        listed = self.staging.list(resolved)
        ordered = sorted(listed.data, key=lambda p: natural_sort_key(p.sku))

        synced_ids: set[str] = set()
        for session in self.undo_sessions.list(resolved, UNDO_TARGET, COMPARE_SESSION_LIMIT, action="stage-add"):
            synced_ids.update(stage_add_parent_ids(session))

        if not synced_ids:
            return CartCompareResponse(
                shop=resolved,
                total_cart_count=len(ordered),
                message=NO_RECENT_SYNC_MESSAGE,
                warning=listed.warning,
            )

        not_synced = [p for p in ordered if normalize_lower(p.id) not in synced_ids]
        logger.info(
            "cart_inventory_compared",
            shop=resolved,
            last_sync=len(synced_ids),
            total=len(ordered),
            not_in_last_sync=len(not_synced)
        )
        return CartCompareResponse(
            shop=resolved,
            rows=not_synced,
            last_sync_count=len(synced_ids),
            total_cart_count=len(ordered),
            not_in_last_sync_count=len(not_synced),
            has_last_sync=True,
            last_sync_note=f"Last sync: {len(synced_ids)} product(s) queued from Inventory.",
            warning=listed.warning,
        )

    # ===================
    # WRITE OPERATIONS
    # ===================

    def _record(self, shop: str, action: str, note: str, operations: list[UndoOperation]) -> Optional[UndoSession]:
        if not operations:
            return None
        return self.undo_sessions.create(shop, UNDO_TARGET, action, note, operations)

    def stage_add(self, shop: Optional[str], rows: Iterable[Any]) -> StagingMutationResponse:
        """
        Upsert posted parents.

        Raises:
            EmptyStagingRequestError: No row survived parsing
        """
        incoming = [
            parent for parent in (parse_incoming_parent(row, i) for i, row in enumerate(rows or []))
            if parent is not None
        ]
        if not incoming:
            raise EmptyStagingRequestError("rows[]", "stage-add")

        resolved, _ = self.resolve_shop(shop)
        current = self.staging.list(resolved)
        operations = build_undo_for_stage_add(current.data, incoming)
        saved = self.staging.upsert(resolved, incoming)
        session = self._record(
            resolved,
            "stage-add",
            f"Queued {len(incoming)} parent item(s) to Cart Inventory.",
            operations
        )

        return StagingMutationResponse(
            action="stage-add",
            shop=resolved,
            upserted=saved.data,
            warning=join_warnings(saved.warning, current.warning),
            undo_session=session.summary() if session else None,
        )

    def stage_remove(self, shop: Optional[str], parent_ids: Iterable[Any]) -> StagingMutationResponse:
        """
        Remove parents by id.

        Raises:
            EmptyStagingRequestError: No usable id
        """
        ids = unique_ids(parent_ids)
        if not ids:
            raise EmptyStagingRequestError("parent_ids[]", "stage-remove")

        resolved, _ = self.resolve_shop(shop)
        current = self.staging.list(resolved)
        operations = build_undo_for_restore(current.data, ids)
        removed = self.staging.remove(resolved, ids)
        session = self._record(
            resolved,
            "stage-remove",
            f"Removed {len(ids)} parent item(s) from Cart Inventory.",
            operations
        )

        return StagingMutationResponse(
            action="stage-remove",
            shop=resolved,
            removed=removed.data,
            warning=join_warnings(removed.warning, current.warning),
            undo_session=session.summary() if session else None,
        )

    def set_status(self, shop: Optional[str], parent_ids: Iterable[Any], status: Any) -> StagingMutationResponse:
        """
        Rewrite every variant status of the given parents.

        Raises:
            EmptyStagingRequestError: No usable id
        """
        ids = unique_ids(parent_ids)
        if not ids:
            raise EmptyStagingRequestError("parent_ids[]", "set-status")
        sync_status = SyncStatus.parse(status)

        resolved, _ = self.resolve_shop(shop)
        current = self.staging.list(resolved)
        operations = build_undo_for_restore(current.data, ids)
        updated = self.staging.update_status(resolved, ids, sync_status)
        session = self._record(
            resolved,
            "set-status",
            f"Updated {len(ids)} parent item(s) to {sync_status.value}.",
            operations
        )

        return StagingMutationResponse(
            action="set-status",
            shop=resolved,
            updated=updated.data,
            status=sync_status,
            warning=join_warnings(updated.warning, current.warning),
            undo_session=session.summary() if session else None,
        )

    def undo(self, shop: Optional[str], session_id: Optional[str] = None) -> UndoResponse:
        """
        Revert the newest (or the named) session.

        Operations replay in reverse order.

        Raises:
            UndoSessionNotFoundError: Nothing to undo
        """
        resolved, _ = self.resolve_shop(shop)
        session = self.undo_sessions.take(resolved, session_id)
        if session is None:
            raise UndoSessionNotFoundError(resolved, session_id)

        warnings = []
        for operation in reversed(session.operations):
            if operation.type == "restore_rows":
                result = self.staging.upsert(resolved, operation.rows)
            else:
                result = self.staging.remove(resolved, operation.parent_ids)
            warnings.append(result.warning)

        logger.info(
            "undo_session_applied",
            shop=resolved,
            session_id=session.id,
            action=session.action,
            operations=len(session.operations)
        )
        return UndoResponse(shop=resolved, undone_session=session.summary(), warning=join_warnings(*warnings))


# Singleton instance for convenience
_cart_inventory_service: Optional[CartInventoryService] = None

def get_cart_inventory_service() -> CartInventoryService:
    """Get or create CartInventoryService instance."""
    global _cart_inventory_service
    if _cart_inventory_service is None:
        _cart_inventory_service = CartInventoryService()
    return _cart_inventory_service
