"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    ExternalServiceError,
    DatabaseError,

    # Product-specific
    ProductNotFoundError,

    # Sheets
    SheetParseError,
    InvalidSheetUrlError,
    SheetFetchError,

    # Reconciliation
    ReconciliationRunNotFoundError,
    StagedResultNotFoundError,
    UnmatchedEntryNotFoundError,
    InvalidStatusTransitionError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "ExternalServiceError",
    "DatabaseError",

    # Product
    "ProductNotFoundError",

    # Sheets
    "SheetParseError",
    "InvalidSheetUrlError",
    "SheetFetchError",

    # Reconciliation
    "ReconciliationRunNotFoundError",
    "StagedResultNotFoundError",
    "UnmatchedEntryNotFoundError",
    "InvalidStatusTransitionError",
]
