"""
Cart staging schemas: persisted parents/variants, undo sessions and
the cart inventory API payloads.
"""

from pydantic import BaseModel, Field
from typing import Any, Generic, Literal, Optional, TypeVar
from enum import Enum

from models.base import BaseSchema, PaginatedResponse
from models.matrix import StockByLocation
from utils.text_utils import normalize_lower

T = TypeVar("T")


class SyncStatus(str, Enum):
    """Push state of a staged variant."""
    PENDING = "PENDING"
    PROCESSED = "PROCESSED"
    ERROR = "ERROR"

    @classmethod
    def parse(cls, value: Any) -> "SyncStatus":
        """Case-insensitive; anything unrecognised is PENDING."""
        normalized = normalize_lower(value.value if isinstance(value, SyncStatus) else value)
        if normalized == "processed":
            return cls.PROCESSED
        if normalized == "error":
            return cls.ERROR
        return cls.PENDING


StagingBackendName = Literal["supabase", "memory"]


class StagingVariant(BaseSchema):
    """Variant inside a staged parent. Its status is the source of truth."""

    id: str
    parent_id: str
    sku: str = ""
    upc: str = ""
    seller_sku: str = ""
    cart_id: str = ""
    stock: Optional[float] = None
    stock_by_location: list[StockByLocation] = Field(default_factory=list)
    price: Optional[float] = None
    color: str = ""
    size: str = ""
    image: str = ""
    status: SyncStatus = SyncStatus.PENDING
    error: Optional[str] = None
    shopify_matched: bool = False


class StagingParent(BaseSchema):
    """
    Parent product marked for push, keyed by (shop, id).

    status, stock and the counters are derived from the variants
    whenever the record is read or written.
    """

    id: str
    title: str = ""
    category: str = ""
    brand: str = ""
    sku: str = ""
    stock: Optional[float] = None
    price: Optional[float] = None
    variations: int = 0
    image: str = ""
    status: SyncStatus = SyncStatus.PENDING
    processed_count: int = 0
    pending_count: int = 0
    error_count: int = 0
    variants: list[StagingVariant] = Field(default_factory=list)
    error: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class PersistResult(BaseModel, Generic[T]):
    """
    Result of a staging operation.

    A non-empty warning means the durable backend was skipped; the
    request still succeeded.
    """

    backend: StagingBackendName
    warning: str = ""
    data: T


# ===================
# UNDO SESSIONS
# ===================

UndoTarget = Literal["cart_inventory"]


class UndoOperation(BaseModel):
    """restore_rows re-upserts saved parents; remove_rows deletes ids."""

    type: Literal["restore_rows", "remove_rows"]
    rows: list[StagingParent] = Field(default_factory=list)
    parent_ids: list[str] = Field(default_factory=list)


class UndoSessionSummary(BaseModel):
    id: str
    target: UndoTarget
    action: str
    note: str = ""
    created_at: str


class UndoSession(UndoSessionSummary):
    shop: str
    operations: list[UndoOperation] = Field(default_factory=list)

    def summary(self) -> UndoSessionSummary:
        return UndoSessionSummary(
            id=self.id,
            target=self.target,
            action=self.action,
            note=self.note,
            created_at=self.created_at
        )


# ===================
# CART INVENTORY API
# ===================

class CartFilters(BaseSchema):
    sku: str = ""
    parent_sku: str = ""
    name: str = ""
    brand: str = ""
    price_from: Optional[float] = None
    price_to: Optional[float] = None
    stock_from: Optional[float] = None
    stock_to: Optional[float] = None
    status: str = Field("All", description="All, Processed, Pending or Error")
    category_name: str = ""
    keyword: str = ""


class CartOptions(BaseModel):
    categories: list[str] = Field(default_factory=list)
    brands: list[str] = Field(default_factory=list)
    statuses: list[str] = Field(default_factory=lambda: ["All", "Processed", "Pending", "Error"])


class CartSummary(BaseModel):
    total_products: int = 0
    total_items: int = 0
    total_processed: int = 0
    total_pending: int = 0
    total_errors: int = 0


class CartInventoryListResponse(PaginatedResponse):
    ok: bool = True
    shop: str
    shops: list[str] = Field(default_factory=list)
    warning: str = ""
    options: CartOptions
    summary: CartSummary
    undo_sessions: list[UndoSessionSummary] = Field(default_factory=list)
    rows: list[StagingParent] = Field(default_factory=list)


class CartCompareResponse(BaseModel):
    """Staged parents that were not queued by the recent stage-add sessions."""

    ok: bool = True
    shop: str
    rows: list[StagingParent] = Field(default_factory=list)
    last_sync_count: int = 0
    total_cart_count: int = 0
    not_in_last_sync_count: int = 0
    has_last_sync: bool = False
    message: str = ""
    last_sync_note: str = ""
    warning: str = ""


class StageAddRequest(BaseModel):
    """Rows as produced by the matrix (parents with variants)."""

    shop: Optional[str] = None
    rows: list[dict[str, Any]] = Field(default_factory=list)


class StageIdsRequest(BaseModel):
    shop: Optional[str] = None
    parent_ids: list[str] = Field(default_factory=list)


class SetStatusRequest(StageIdsRequest):
    status: str = "PENDING"


class UndoRequest(BaseModel):
    shop: Optional[str] = None
    session_id: Optional[str] = None


class StagingMutationResponse(BaseModel):
    ok: bool = True
    action: str
    shop: str
    upserted: Optional[int] = None
    removed: Optional[int] = None
    updated: Optional[int] = None
    status: Optional[SyncStatus] = None
    warning: str = ""
    undo_session: Optional[UndoSessionSummary] = None


class UndoResponse(BaseModel):
    ok: bool = True
    action: str = "undo-session"
    shop: str
    undone_session: UndoSessionSummary
    warning: str = ""


class UndoSessionListResponse(BaseModel):
    ok: bool = True
    shop: str
    sessions: list[UndoSessionSummary] = Field(default_factory=list)
