"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.products import router as products_router
from routes.reconciliation import router as reconciliation_router

__all__ = [
    "products_router",
    "reconciliation_router",
]
