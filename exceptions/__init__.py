"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ExternalServiceError,
    DatabaseError,

    # Catalog snapshot
    CatalogSnapshotError,

    # Storefront
    ShopifyAPIError,
    StoreNotResolvedError,

    # Staging
    StagingBackendError,
    EmptyStagingRequestError,
    UndoSessionNotFoundError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ExternalServiceError",
    "DatabaseError",

    # Catalog snapshot
    "CatalogSnapshotError",

    # Storefront
    "ShopifyAPIError",
    "StoreNotResolvedError",

    # Staging
    "StagingBackendError",
    "EmptyStagingRequestError",
    "UndoSessionNotFoundError",
]
