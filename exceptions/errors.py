"""
Custom exception classes for the application.

Every error carries a stable code, an HTTP status and a details dict so
routes can return one envelope format.
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "PRODUCT_NOT_FOUND")
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
        self.timestamp = datetime.now(timezone.utc).isoformat()
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
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource state (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
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
# PRODUCT ERRORS
# ===================

class ProductNotFoundError(NotFoundError):
    """Product not found."""

    def __init__(self, product_id: int):
        super().__init__(
            resource="Product",
            identifier=str(product_id),
            code="PRODUCT_NOT_FOUND"
        )


# ===================
# SHEET ERRORS
# ===================

class SheetParseError(ValidationError):
    """Spreadsheet content could not be read."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="SHEET_PARSE_ERROR",
            message=message,
            details=details
        )


class InvalidSheetUrlError(ValidationError):
    """URL is not a shared Google Sheets link."""

    def __init__(self, url: str):
        super().__init__(
            code="INVALID_SHEET_URL",
            message="Not a valid Google Sheets link",
            details={"url": url}
        )


class SheetFetchError(ExternalServiceError):
    """Shared spreadsheet could not be downloaded."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            service="google_sheets",
            message=message,
            details=details
        )


# ===================
# RECONCILIATION ERRORS
# ===================

class ReconciliationRunNotFoundError(NotFoundError):
    """Reconciliation run not found or expired."""

    def __init__(self, run_id: str):
        super().__init__(
            resource="Reconciliation run",
            identifier=run_id,
            code="RECONCILIATION_RUN_NOT_FOUND"
        )


class StagedResultNotFoundError(NotFoundError):
    """No staged update for this product in the run."""

    def __init__(self, product_id: int):
        super().__init__(
            resource="Staged result",
            identifier=str(product_id),
            code="STAGED_RESULT_NOT_FOUND"
        )


class UnmatchedEntryNotFoundError(NotFoundError):
    """No unmatched sheet entry with this name in the run."""

    def __init__(self, name: str):
        super().__init__(
            resource="Unmatched entry",
            identifier=name,
            code="UNMATCHED_ENTRY_NOT_FOUND"
        )


class InvalidStatusTransitionError(ConflictError):
    """Run is not in a state that allows the requested operation."""

    def __init__(self, current_status: str, new_status: str):
        super().__init__(
            code="INVALID_STATUS_TRANSITION",
            message=f"Cannot transition from {current_status} to {new_status}",
            details={
                "current_status": current_status,
                "new_status": new_status,
            }
        )
