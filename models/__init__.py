"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    UpstreamSchema,
    PaginatedResponse,
)
from models.catalog import (
    CatalogRow,
    CatalogOptions,
    CatalogSnapshot,
)
from models.storefront import (
    StorefrontVariant,
    TokenCandidate,
    ScanResult,
)
from models.matrix import (
    MatchTier,
    MatchResult,
    MatchStats,
    StockByLocation,
    VariantRow,
    AvailableAt,
    ParentGroup,
    MatrixFilters,
    MatrixOptions,
    MatrixSummary,
    CatalogInfo,
    MatchStatsResponse,
    MatrixResponse,
)
from models.staging import (
    SyncStatus,
    StagingVariant,
    StagingParent,
    PersistResult,
    UndoOperation,
    UndoSession,
    UndoSessionSummary,
    CartFilters,
    CartOptions,
    CartSummary,
    CartCompareResponse,
    CartInventoryListResponse,
    StageAddRequest,
    StageIdsRequest,
    SetStatusRequest,
    UndoRequest,
    StagingMutationResponse,
    UndoResponse,
    UndoSessionListResponse,
)

__all__ = [
    # Base
    "BaseSchema",
    "UpstreamSchema",
    "PaginatedResponse",

    # Catalog
    "CatalogRow",
    "CatalogOptions",
    "CatalogSnapshot",

    # Storefront
    "StorefrontVariant",
    "TokenCandidate",
    "ScanResult",

    # Matrix
    "MatchTier",
    "MatchResult",
    "MatchStats",
    "StockByLocation",
    "VariantRow",
    "AvailableAt",
    "ParentGroup",
    "MatrixFilters",
    "MatrixOptions",
    "MatrixSummary",
    "CatalogInfo",
    "MatchStatsResponse",
    "MatrixResponse",

    # Staging
    "SyncStatus",
    "StagingVariant",
    "StagingParent",
    "PersistResult",
    "UndoOperation",
    "UndoSession",
    "UndoSessionSummary",
    "CartFilters",
    "CartOptions",
    "CartSummary",
    "CartCompareResponse",
    "CartInventoryListResponse",
    "StageAddRequest",
    "StageIdsRequest",
    "SetStatusRequest",
    "UndoRequest",
    "StagingMutationResponse",
    "UndoResponse",
    "UndoSessionListResponse",
]
