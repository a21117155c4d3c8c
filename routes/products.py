"""
Catalog product API routes.

Read access to the catalog plus manual edits of name, brand, price and cost.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from models.product import (
    ProductUpdate,
    ProductResponse,
    ProductListResponse,
)
from services.product_service import get_product_service
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
# ROUTES
# ===================

@router.get("", response_model=ProductListResponse)
async def list_products(
    brand: Optional[str] = Query(None, description="Filter by brand")
):
    """
    List the catalog, optionally for one brand.
    """
    try:
        service = get_product_service()
        products = service.get_all(brand=brand)
        return ProductListResponse(data=products, total=len(products))

    except Exception as e:
        return handle_error(e)


@router.get("/search", response_model=list[ProductResponse])
async def search_products(
    q: str = Query(..., description="Search text (min 2 characters)"),
    limit: int = Query(10, ge=1, le=50, description="Max results")
):
    """
    Search product names for binding an unmatched sheet row.

    Every word of `q` must appear in the name; accents and case are ignored.
    """
    try:
        service = get_product_service()
        return service.search(q, limit=limit)

    except Exception as e:
        return handle_error(e)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: int):
    """
    Get a single product by ID.

    Raises:
        404: Product not found
    """
    try:
        service = get_product_service()
        return service.get_by_id(product_id)

    except Exception as e:
        return handle_error(e)


@router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(product_id: int, data: ProductUpdate):
    """
    Update an existing product.

    Only provided fields are updated.

    Raises:
        404: Product not found
        422: Validation error
    """
    try:
        service = get_product_service()
        return service.update(product_id, data)

    except Exception as e:
        return handle_error(e)
