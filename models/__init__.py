"""
Pydantic models for validation and serialization.
"""

from models.base import BaseSchema
from models.product import (
    ProductResponse,
    ProductListResponse,
    ProductUpdate,
    ValueUpdate,
    BulkUpdateError,
    BulkUpdateResult,
)
from models.reconciliation import (
    ValueMode,
    MatchType,
    RunStatus,
    SheetEntry,
    MatchOptions,
    MatchResult,
    MatchOutcome,
    ReconcileResult,
    CommitError,
    CommitResult,
    ReconciliationRun,
    AnalyzeSheetRequest,
    StagedResultUpdate,
    SelectAllRequest,
)
from models.manual_mapping import ManualMapping, ManualMappingResult

__all__ = [
    # Base
    "BaseSchema",

    # Product
    "ProductResponse",
    "ProductListResponse",
    "ProductUpdate",
    "ValueUpdate",
    "BulkUpdateError",
    "BulkUpdateResult",

    # Reconciliation
    "ValueMode",
    "MatchType",
    "RunStatus",
    "SheetEntry",
    "MatchOptions",
    "MatchResult",
    "MatchOutcome",
    "ReconcileResult",
    "CommitError",
    "CommitResult",
    "ReconciliationRun",
    "AnalyzeSheetRequest",
    "StagedResultUpdate",
    "SelectAllRequest",

    # Manual mapping
    "ManualMapping",
    "ManualMappingResult",
]
