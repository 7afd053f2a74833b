"""
Custom exception classes for the application.

Errors raised to the HTTP layer carry a code and status; errors that
only drive internal fallbacks (storefront, persistence) carry a message.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "CATALOG_SNAPSHOT_ERROR")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None,
        status_code: int = 422
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=status_code,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# CATALOG SNAPSHOT ERRORS
# ===================

class CatalogSnapshotError(ExternalServiceError):
    """POS/ERP catalog snapshot could not be loaded."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            service="catalog_snapshot",
            message=message or "Unable to load Lightspeed catalog.",
            details=details
        )


# ===================
# STOREFRONT ERRORS
# ===================

class ShopifyAPIError(ExternalServiceError):
    """Shopify Admin API returned an HTTP or GraphQL error."""

    def __init__(self, message: str, status: Optional[int] = None, details: Optional[dict] = None):
        self.status = status
        super().__init__(
            service="shopify",
            message=message,
            details={"upstream_status": status, **(details or {})}
        )


class StoreNotResolvedError(ValidationError):
    """No shop identity could be resolved for the request."""

    def __init__(self, requested: Optional[str] = None):
        super().__init__(
            code="STORE_NOT_RESOLVED",
            message="No Shopify shop is connected or configured. Pass ?shop=<name>.myshopify.com.",
            details={"requested": requested},
            status_code=400
        )


# ===================
# STAGING ERRORS
# ===================

class StagingBackendError(AppError):
    """Durable staging backend failed; callers fall back to memory."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(
            code="STAGING_BACKEND_ERROR",
            message=message,
            status_code=500,
            details={"operation": operation}
        )


class EmptyStagingRequestError(ValidationError):
    """Staging mutation received no usable rows or ids."""

    def __init__(self, field: str, action: str):
        super().__init__(
            code="STAGING_REQUEST_EMPTY",
            message=f"{field} is required for {action} action.",
            details={"field": field, "action": action},
            status_code=400
        )


class UndoSessionNotFoundError(NotFoundError):
    """No undo session available for the shop."""

    def __init__(self, shop: str, session_id: Optional[str] = None):
        super().__init__(
            resource="Undo session",
            identifier=session_id or shop,
            code="UNDO_SESSION_NOT_FOUND"
        )
        self.message = "No undo session found for this shop."
