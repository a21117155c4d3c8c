"""
Reconciliation schemas: sheet entries, staged matches and review runs.
"""

from pydantic import Field
from typing import Optional
from enum import Enum
from datetime import datetime, timezone

from models.base import BaseSchema


class ValueMode(str, Enum):
    """Which catalog column a sheet updates."""
    PRICE = "price"
    COST = "cost"


class MatchType(str, Enum):
    """Matcher pass that produced a result."""
    EXACT = "EXACT"
    FUZZY = "FUZZY"
    FALLBACK = "FALLBACK"


class RunStatus(str, Enum):
    """
    Reconciliation run lifecycle.

    IDLE -> ANALYZING -> STAGED | EMPTY
    STAGED -> COMMITTING -> IDLE (everything applied) | STAGED (rows left)
    """
    IDLE = "IDLE"
    ANALYZING = "ANALYZING"
    STAGED = "STAGED"
    EMPTY = "EMPTY"
    COMMITTING = "COMMITTING"


class SheetEntry(BaseSchema):
    """One accepted spreadsheet row."""

    brand: str = Field("", description="Brand from the sheet, empty if undetected")
    name: str = Field(..., description="Product label as written in the sheet")
    value: int = Field(..., ge=0, description="Price or cost, integer currency units")


class MatchOptions(BaseSchema):
    """Per-run matching options."""

    apply_all_variants: bool = Field(
        True,
        description="Update every matching catalog variant instead of the single best"
    )
    mode: ValueMode = Field(ValueMode.PRICE, description="Column being updated")


class MatchResult(BaseSchema):
    """A staged update for one catalog product."""

    product_id: int
    product_name: str
    brand: str = ""
    current_value: float = 0
    proposed_value: int = Field(..., ge=0)
    selected: bool = True
    manually_edited: bool = False
    score: float = 0
    match_type: MatchType = MatchType.FUZZY
    sheet_name: str = Field("", description="Sheet label that produced the match")


class MatchOutcome(BaseSchema):
    """Matcher result for one sheet entry. No matches means unmatched."""

    matched: list[MatchResult] = Field(default_factory=list)

    @property
    def unmatched(self) -> bool:
        return not self.matched


class ReconcileResult(BaseSchema):
    """Staged proposals for human review. The catalog is untouched."""

    staged: list[MatchResult] = Field(default_factory=list)
    unmatched: list[SheetEntry] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    entries_count: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.staged and not self.unmatched


class CommitError(BaseSchema):
    """A staged update the catalog rejected."""

    product_id: int
    error: str


class CommitResult(BaseSchema):
    """Outcome of committing the selected staged updates."""

    updated_count: int = 0
    updated_ids: list[int] = Field(default_factory=list)
    errors: list[CommitError] = Field(default_factory=list)


class ReconciliationRun(BaseSchema):
    """An analyzed sheet kept for review until committed or expired."""

    run_id: str
    mode: ValueMode
    options: MatchOptions
    status: RunStatus = RunStatus.IDLE
    source: Optional[str] = Field(None, description="Sheet URL or uploaded filename")
    staged: list[MatchResult] = Field(default_factory=list)
    unmatched: list[SheetEntry] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    last_commit: Optional[CommitResult] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def selected_count(self) -> int:
        return sum(1 for r in self.staged if r.selected)


# ===================
# REQUESTS
# ===================

class AnalyzeSheetRequest(BaseSchema):
    """Analyze a shared Google Sheets price or cost list."""

    url: str = Field(..., min_length=1, description="Shared sheet link")
    mode: ValueMode = Field(ValueMode.PRICE, description="Update prices or costs")
    apply_all_variants: Optional[bool] = Field(
        None,
        description="Defaults to the server setting when omitted"
    )


class StagedResultUpdate(BaseSchema):
    """Reviewer edit of one staged row."""

    proposed_value: Optional[int] = Field(None, ge=0)
    selected: Optional[bool] = None


class SelectAllRequest(BaseSchema):
    """Select or deselect every staged row."""

    selected: bool = True
