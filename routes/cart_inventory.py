"""
Cart inventory API routes.

Browse staged parents and stage, unstage, re-status or undo.
Persistence problems never fail a request; they come back in `warning`.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from models.staging import (
    CartCompareResponse,
    CartFilters,
    CartInventoryListResponse,
    SetStatusRequest,
    StageAddRequest,
    StageIdsRequest,
    StagingMutationResponse,
    UndoRequest,
    UndoResponse,
    UndoSessionListResponse,
)
from services.cart_inventory_service import (
    DEFAULT_CART_PAGE_SIZE,
    get_cart_inventory_service,
)
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "Unable to load cart inventory."
            }
        }
    )


# ===================
# READ ROUTES
# ===================

@router.get("", response_model=CartInventoryListResponse)
async def list_cart_inventory(
    shop: Optional[str] = Query(None, description="Shop domain"),
    sku: str = Query("", description="Parent or variant SKU substring"),
    parent_sku: str = Query(""),
    name: str = Query(""),
    brand: str = Query(""),
    price_from: Optional[float] = Query(None),
    price_to: Optional[float] = Query(None),
    stock_from: Optional[float] = Query(None),
    stock_to: Optional[float] = Query(None),
    status: str = Query("All", description="All, Processed, Pending or Error"),
    category_name: str = Query(""),
    keyword: str = Query("", description="Matches parent or variant text"),
    page: int = Query(1, description="Page number, clamped into range"),
    page_size: int = Query(DEFAULT_CART_PAGE_SIZE, description="20, 50, 75, 100, 200 or 500")
):
    """List staged parents with facets, summary and recent undo sessions."""
    try:
        service = get_cart_inventory_service()
        filters = CartFilters(
            sku=sku,
            parent_sku=parent_sku,
            name=name,
            brand=brand,
            price_from=price_from,
            price_to=price_to,
            stock_from=stock_from,
            stock_to=stock_to,
            status=status or "All",
            category_name=category_name,
            keyword=keyword,
        )
        return service.list_inventory(shop, filters, page, page_size)

    except Exception as e:
        return handle_error(e)


@router.get("/sessions", response_model=UndoSessionListResponse)
async def list_undo_sessions(shop: Optional[str] = Query(None)):
    """Most recent cart inventory undo sessions (25)."""
    try:
        service = get_cart_inventory_service()
        return service.list_sessions(shop)

    except Exception as e:
        return handle_error(e)


@router.get("/compare", response_model=CartCompareResponse)
async def compare_cart_inventory(shop: Optional[str] = Query(None)):
    """Staged parents that the last 10 stage-add sessions did not queue."""
    try:
        service = get_cart_inventory_service()
        return service.compare(shop)

    except Exception as e:
        return handle_error(e)


# ===================
# WRITE ROUTES
# ===================

@router.post("/stage", response_model=StagingMutationResponse)
async def stage_parents(data: StageAddRequest):
    """
    Stage parents (full-record replace per parent id).

    Raises:
        400: No row with a sku
    """
    try:
        service = get_cart_inventory_service()
        return service.stage_add(data.shop, data.rows)

    except Exception as e:
        return handle_error(e)


@router.post("/remove", response_model=StagingMutationResponse)
async def remove_parents(data: StageIdsRequest):
    """
    Unstage parents by id.

    Raises:
        400: parent_ids empty
    """
    try:
        service = get_cart_inventory_service()
        return service.stage_remove(data.shop, data.parent_ids)

    except Exception as e:
        return handle_error(e)


@router.post("/status", response_model=StagingMutationResponse)
async def set_parent_status(data: SetStatusRequest):
    """
    Set every variant of the given parents to one status.

    Raises:
        400: parent_ids empty
    """
    try:
        service = get_cart_inventory_service()
        return service.set_status(data.shop, data.parent_ids, data.status)

    except Exception as e:
        return handle_error(e)


@router.post("/undo", response_model=UndoResponse)
async def undo_session(data: UndoRequest):
    """
    Revert the newest (or the named) staging session.

    Raises:
        404: No session to undo
    """
    try:
        service = get_cart_inventory_service()
        return service.undo(data.shop, data.session_id)

    except Exception as e:
        return handle_error(e)
