"""
Product service: the catalog collaborator for reconciliation.

Reads and writes the Supabase `products` table. Reconciliation only
writes `price` or `cost`, plus `name` when a reviewer renames a product
while binding an unmatched sheet row.
"""

from typing import Optional
import structlog

from config import get_supabase_client, settings
from models.product import (
    ProductUpdate,
    ProductResponse,
    ValueUpdate,
    BulkUpdateError,
    BulkUpdateResult,
)
from models.reconciliation import ValueMode
from exceptions import ProductNotFoundError, DatabaseError
from services.matcher_service import search_catalog

logger = structlog.get_logger(__name__)


class ProductService:
    """
    Catalog business logic.

    Handles listing, lookup and price/cost updates for products.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "products"
        self.page_size = settings.products_page_size

    # ===================
    # READ OPERATIONS
    # ===================

    def get_all(self, brand: Optional[str] = None) -> list[ProductResponse]:
        """
        Get the full catalog, optionally for one brand.

        Supabase caps rows per request, so the table is read page by page
        until a short page comes back.

        Args:
            brand: Exact brand filter

        Returns:
            Products ordered by id
        """
        logger.info("getting_products", brand=brand)

        products: list[ProductResponse] = []
        offset = 0

        try:
            while True:
                query = self.db.table(self.table).select("*")
                if brand:
                    query = query.eq("brand", brand)
                query = query.order("id").range(offset, offset + self.page_size - 1)

                rows = query.execute().data or []
                products.extend(ProductResponse(**row) for row in rows)

                if len(rows) < self.page_size:
                    break
                offset += self.page_size

        except Exception as e:
            logger.error("get_products_failed", error=str(e))
            raise DatabaseError("select", str(e))

        logger.info("products_retrieved", count=len(products))
        return products

    def get_by_id(self, product_id: int) -> ProductResponse:
        """
        Get a single product by ID.

        Raises:
            ProductNotFoundError: If product doesn't exist
        """
        logger.debug("getting_product", product_id=product_id)

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", product_id)
                .single()
                .execute()
            )

            if not result.data:
                raise ProductNotFoundError(product_id)

            return ProductResponse(**result.data)

        except ProductNotFoundError:
            raise
        except Exception as e:
            logger.error(
                "get_product_failed",
                product_id=product_id,
                error=str(e)
            )
            # Check if it's a "not found" from Supabase
            if "0 rows" in str(e) or "no rows" in str(e).lower():
                raise ProductNotFoundError(product_id)
            raise DatabaseError("select", str(e))

    def search(self, term: str, limit: int = 10) -> list[ProductResponse]:
        """
        Search catalog names for manual binding.

        Accent-insensitive, so it runs over the loaded catalog instead of
        a SQL ILIKE.
        """
        return search_catalog(term, self.get_all(), limit=limit)

    # ===================
    # WRITE OPERATIONS
    # ===================

    def update(self, product_id: int, data: ProductUpdate) -> ProductResponse:
        """
        Update an existing product.

        Args:
            product_id: Product ID
            data: Fields to update

        Returns:
            Updated ProductResponse

        Raises:
            ProductNotFoundError: If product doesn't exist
        """
        logger.info("updating_product", product_id=product_id)

        update_data = data.model_dump(exclude_none=True)
        if not update_data:
            # Nothing to update, return existing
            return self.get_by_id(product_id)

        try:
            result = (
                self.db.table(self.table)
                .update(update_data)
                .eq("id", product_id)
                .execute()
            )
        except Exception as e:
            logger.error(
                "update_product_failed",
                product_id=product_id,
                error=str(e)
            )
            raise DatabaseError("update", str(e))

        if not result.data:
            raise ProductNotFoundError(product_id)

        logger.info(
            "product_updated",
            product_id=product_id,
            fields=list(update_data.keys())
        )

        return ProductResponse(**result.data[0])

    def update_value(
        self,
        product_id: int,
        new_value: int,
        mode: ValueMode
    ) -> ProductResponse:
        """Write one price or cost."""
        return self.update(product_id, ProductUpdate(**{mode.value: new_value}))

    # ===================
    # BULK OPERATIONS
    # ===================

    def bulk_update_values(
        self,
        items: list[ValueUpdate],
        mode: ValueMode
    ) -> BulkUpdateResult:
        """
        Write many prices or costs, one product at a time.

        A failing product doesn't stop the batch; it is reported in
        `errors` and the rest carry on.
        """
        logger.info("bulk_update_values", count=len(items), mode=mode.value)

        result = BulkUpdateResult()

        for item in items:
            try:
                self.update_value(item.product_id, item.new_value, mode)
                result.updated += 1
                result.updated_ids.append(item.product_id)
            except Exception as e:
                logger.error(
                    "bulk_update_value_failed",
                    product_id=item.product_id,
                    error=str(e)
                )
                message = e.message if hasattr(e, "message") else str(e)
                result.errors.append(
                    BulkUpdateError(product_id=item.product_id, error=message)
                )

        logger.info(
            "bulk_update_complete",
            updated=result.updated,
            failed=len(result.errors)
        )
        return result


# Singleton instance for convenience
_product_service: Optional[ProductService] = None

def get_product_service() -> ProductService:
    """Get or create ProductService instance."""
    global _product_service
    if _product_service is None:
        _product_service = ProductService()
    return _product_service
