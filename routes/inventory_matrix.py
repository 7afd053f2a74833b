"""
Inventory matrix API routes.

Read-only: reconciles the catalog snapshot against a shop's Shopify
variants and returns one filtered page of parents.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from models.matrix import MatrixFilters, MatrixResponse
from services.inventory_matrix_service import (
    DEFAULT_MATRIX_PAGE_SIZE,
    get_inventory_matrix_service,
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
                "message": "Unable to load inventory matrix."
            }
        }
    )


# ===================
# ROUTES
# ===================

@router.get("", response_model=MatrixResponse)
async def get_inventory_matrix(
    shop: Optional[str] = Query(None, description="Shop domain (<name>.myshopify.com)"),
    sku: str = Query("", description="Parent or variant SKU/UPC substring"),
    name: str = Query("", description="Title substring"),
    price_from: Optional[float] = Query(None),
    price_to: Optional[float] = Query(None),
    stock_from: Optional[float] = Query(None),
    stock_to: Optional[float] = Query(None),
    category_name: str = Query("", description="Exact category, or All"),
    cart_state: str = Query("All", description="All, Enabled or NotEnabled"),
    shopify_state: str = Query("All", description="All, Available or Missing"),
    page: int = Query(1, description="Page number, clamped into range"),
    page_size: int = Query(DEFAULT_MATRIX_PAGE_SIZE, description="50, 100, 200, 300 or 500"),
    refresh: bool = Query(False, description="Bypass snapshot and Shopify caches")
):
    """
    Paginated inventory matrix for one shop.

    Shopify and staging problems come back as warnings with a 200.

    Raises:
        400: No shop connected or configured
        503: Catalog snapshot unavailable
    """
    try:
        service = get_inventory_matrix_service()
        filters = MatrixFilters(
            sku=sku,
            name=name,
            price_from=price_from,
            price_to=price_to,
            stock_from=stock_from,
            stock_to=stock_to,
            category_name=category_name,
            cart_state=cart_state or "All",
            shopify_state=shopify_state or "All",
        )
        return await service.query(
            store=shop,
            filters=filters,
            page=page,
            page_size=page_size,
            refresh=refresh
        )

    except Exception as e:
        return handle_error(e)
