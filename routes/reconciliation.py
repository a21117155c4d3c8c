"""
Price/cost reconciliation routes.

Analyze a supplier sheet, review the staged updates, commit them, and
bind the rows that matched nothing.

Workflow:
1. POST /analyze (shared link) or /upload (file) → run with staged + unmatched
2. PATCH/DELETE staged rows, POST /staged/select-all
3. POST /unmatched/bind for rows the matcher couldn't place
4. POST /commit → selected rows written to the catalog
"""

from fastapi import APIRouter, UploadFile, File, Form
from fastapi.responses import JSONResponse, Response
from typing import Optional
import structlog

from models.manual_mapping import ManualMapping, ManualMappingResult
from models.reconciliation import (
    AnalyzeSheetRequest,
    MatchResult,
    ReconciliationRun,
    SelectAllRequest,
    StagedResultUpdate,
    ValueMode,
)
from services.reconciliation_service import get_reconciliation_service
from exceptions import AppError, ValidationError

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
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


# ===================
# ANALYZE
# ===================

@router.post("/analyze", response_model=ReconciliationRun)
async def analyze_sheet(data: AnalyzeSheetRequest):
    """
    Analyze a shared Google Sheets price or cost list.

    Nothing is written to the catalog. Missing columns and unusable links
    come back as warnings on an EMPTY run.

    Raises:
        503: Sheet could not be downloaded
    """
    try:
        service = get_reconciliation_service()
        return service.analyze_sheet(
            data.url,
            mode=data.mode,
            apply_all_variants=data.apply_all_variants
        )

    except Exception as e:
        return handle_error(e)


@router.post("/upload", response_model=ReconciliationRun)
async def upload_sheet(
    file: UploadFile = File(..., description="Price or cost list (.csv or .xlsx)"),
    mode: ValueMode = Form(ValueMode.PRICE, description="Update prices or costs"),
    apply_all_variants: Optional[bool] = Form(None, description="Update every matching variant")
):
    """
    Analyze an uploaded price or cost list.

    Raises:
        422: Empty, unreadable or unsupported file
    """
    try:
        content = await file.read()

        if len(content) == 0:
            raise ValidationError(message="Uploaded file is empty", code="EMPTY_FILE")

        service = get_reconciliation_service()
        return service.analyze_upload(
            content,
            file.filename or "",
            mode=mode,
            apply_all_variants=apply_all_variants
        )

    except Exception as e:
        return handle_error(e)


# ===================
# REVIEW
# ===================

@router.get("/{run_id}", response_model=ReconciliationRun)
async def get_run(run_id: str):
    """
    Get a run with its staged and unmatched rows.

    Raises:
        404: Run not found or expired
    """
    try:
        return get_reconciliation_service().get_run(run_id)

    except Exception as e:
        return handle_error(e)


@router.patch("/{run_id}/staged/{product_id}", response_model=MatchResult)
async def update_staged(run_id: str, product_id: int, data: StagedResultUpdate):
    """
    Edit a staged row's proposed value or selection.

    Raises:
        404: Run or staged row not found
        409: Run is being committed
    """
    try:
        return get_reconciliation_service().update_staged(run_id, product_id, data)

    except Exception as e:
        return handle_error(e)


@router.post("/{run_id}/staged/select-all", response_model=ReconciliationRun)
async def select_all(run_id: str, data: SelectAllRequest):
    """Select or deselect every staged row."""
    try:
        return get_reconciliation_service().select_all(run_id, data.selected)

    except Exception as e:
        return handle_error(e)


@router.delete("/{run_id}/staged/{product_id}", response_model=ReconciliationRun)
async def remove_staged(run_id: str, product_id: int):
    """Drop a staged row from the run."""
    try:
        return get_reconciliation_service().remove_staged(run_id, product_id)

    except Exception as e:
        return handle_error(e)


# ===================
# COMMIT / BIND
# ===================

@router.post("/{run_id}/commit", response_model=ReconciliationRun)
async def commit_run(run_id: str):
    """
    Write the selected rows to the catalog.

    Per-product failures are reported in `last_commit.errors`; those rows
    stay selected for a retry.

    Raises:
        404: Run not found
        409: Run is not ready to commit (empty, or a commit is in flight)
    """
    try:
        return get_reconciliation_service().commit_run(run_id)

    except Exception as e:
        return handle_error(e)


@router.post("/{run_id}/unmatched/bind", response_model=ManualMappingResult)
async def bind_unmatched(run_id: str, data: ManualMapping):
    """
    Assign an unmatched row to a product picked by hand.

    With `rename`, the product takes the sheet label.

    Raises:
        404: Run, unmatched row or product not found
    """
    try:
        return get_reconciliation_service().bind_unmatched(run_id, data)

    except Exception as e:
        return handle_error(e)


@router.delete("/{run_id}", status_code=204, response_class=Response)
async def delete_run(run_id: str):
    """
    Discard a run.

    Raises:
        404: Run not found
    """
    try:
        get_reconciliation_service().delete_run(run_id)

    except Exception as e:
        return handle_error(e)
