"""Manual mapping model for resolving unmatched sheet rows during review."""

from typing import Optional
from pydantic import BaseModel, Field

from models.product import ProductResponse


class ManualMapping(BaseModel):
    """User-provided mapping for an unmatched sheet row to an existing product."""
    original_key: str                                # The unmatched sheet label
    mapped_product_id: int                           # The product the user selected
    original_brand: Optional[str] = None             # Disambiguates repeated labels
    original_value: Optional[int] = None             # Disambiguates repeated labels
    value: Optional[int] = Field(None, ge=0)         # Defaults to the sheet value
    rename: bool = False                             # Rename product to the sheet label

    def identifies(self, name: str, brand: str, value: int) -> bool:
        """True if this mapping points at the unmatched row (name, brand, value)."""
        if name != self.original_key:
            return False
        if self.original_brand is not None and brand != self.original_brand:
            return False
        return self.original_value is None or value == self.original_value


class ManualMappingResult(BaseModel):
    """Product after binding, and how many rows still need a human."""
    product: ProductResponse
    remaining_unmatched: int
