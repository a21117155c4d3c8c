"""
Catalog product schemas for validation and serialization.

The catalog lives in the Supabase `products` table. Reconciliation only
ever writes the `price` or `cost` column (and `name` on a manual rename).
"""

from pydantic import Field, field_validator
from typing import Optional
from datetime import datetime

from models.base import BaseSchema


class ProductResponse(BaseSchema):
    """
    Catalog product as stored in the products table.

    Used for GET responses and as the catalog snapshot fed to the matcher.
    """

    id: int = Field(..., description="Product ID")
    name: str = Field(..., description="Display name")
    brand: str = Field("", description="Brand (Moval, Demobile, Mosconi, ...)")
    price: float = Field(0, description="Retail price")
    cost: Optional[float] = Field(None, description="Purchase cost")
    stock: int = Field(0, description="Units in stock")
    color: Optional[str] = Field(None, description="Finish / color")
    created_at: Optional[datetime] = None

    @field_validator("brand", mode="before")
    @classmethod
    def brand_not_null(cls, v: Optional[str]) -> str:
        """Legacy rows may have a NULL brand."""
        return v or ""

    @field_validator("price", "stock", mode="before")
    @classmethod
    def number_not_null(cls, v):
        return v if v is not None else 0


class ProductListResponse(BaseSchema):
    """List of catalog products."""

    data: list[ProductResponse]
    total: int


class ProductUpdate(BaseSchema):
    """
    Update existing product.

    All fields optional - only provided fields are updated.
    """

    name: Optional[str] = Field(
        None,
        min_length=1,
        max_length=255,
        description="Display name"
    )
    brand: Optional[str] = Field(None, max_length=100, description="Brand")
    price: Optional[float] = Field(None, ge=0, description="Retail price")
    cost: Optional[float] = Field(None, ge=0, description="Purchase cost")


class ValueUpdate(BaseSchema):
    """One price or cost write in a bulk update."""

    product_id: int
    new_value: int = Field(..., ge=0)


class BulkUpdateError(BaseSchema):
    """A product that failed to update."""

    product_id: int
    error: str


class BulkUpdateResult(BaseSchema):
    """Outcome of a bulk price/cost update. Partial success is normal."""

    updated: int = 0
    updated_ids: list[int] = Field(default_factory=list)
    errors: list[BulkUpdateError] = Field(default_factory=list)
