"""
Business logic services.

Each service handles one domain area.
"""

from services.matcher_service import CandidateMatcher, get_matcher, search_catalog
from services.product_service import ProductService, get_product_service
from services.reconciliation_service import (
    ReconciliationService,
    get_reconciliation_service,
)

__all__ = [
    "CandidateMatcher",
    "get_matcher",
    "search_catalog",
    "ProductService",
    "get_product_service",
    "ReconciliationService",
    "get_reconciliation_service",
]
