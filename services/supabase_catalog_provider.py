"""
Supabase-backed catalog provider.

Snapshot reads page through the products table (PostgREST caps a response at
1000 rows). Each batch goes to one Postgres function call so it commits or
rolls back as a unit. The function receives

    {"operations": [
        {"op": "update", "id": "...", "fields": {"quantity": 4, ...}},
        {"op": "create", "product": {...full row...}},
    ]}

and applies the operations in order inside its transaction.
"""

from typing import Optional, Sequence
import structlog

from supabase import Client

from config import get_supabase_client, settings
from models.product import CatalogProduct
from services.catalog_provider import CatalogProvider, WriteOperation
from exceptions import CatalogReadError, DatabaseError

logger = structlog.get_logger(__name__)

PAGE_SIZE = 1000


class SupabaseCatalogProvider(CatalogProvider):
    """
    Catalog stored in the Supabase products table.

    Usage:
        provider = SupabaseCatalogProvider()
        service = ReconciliationService(provider)
    """

    def __init__(
        self,
        client: Optional[Client] = None,
        table: Optional[str] = None,
        batch_function: Optional[str] = None
    ):
        self.db = client or get_supabase_client()
        self.table = table or settings.products_table
        self.batch_function = batch_function or settings.batch_write_function

    def get_all(self) -> list[CatalogProduct]:
        """
        Read every product, page by page, ordered by id.

        Raises:
            CatalogReadError: If a page cannot be read or a row is invalid
        """
        logger.info("loading_catalog", table=self.table)

        products: list[CatalogProduct] = []
        offset = 0

        try:
            while True:
                result = (
                    self.db.table(self.table)
                    .select("*")
                    .order("id")
                    .range(offset, offset + PAGE_SIZE - 1)
                    .execute()
                )
                rows = result.data or []
                products.extend(CatalogProduct(**row) for row in rows)

                if len(rows) < PAGE_SIZE:
                    break
                offset += PAGE_SIZE

        except Exception as e:
            logger.error("load_catalog_failed", table=self.table, error=str(e))
            raise CatalogReadError(str(e)) from e

        logger.info("catalog_loaded", count=len(products))
        return products

    def batch_write(self, operations: Sequence[WriteOperation]) -> None:
        """
        Apply one batch through the batch write function.

        Raises:
            DatabaseError: If the call fails (nothing from the batch is kept)
        """
        if not operations:
            return

        payload = {"operations": [operation.to_payload() for operation in operations]}

        logger.debug(
            "writing_batch",
            function=self.batch_function,
            operations=len(operations)
        )

        try:
            self.db.rpc(self.batch_function, payload).execute()
        except Exception as e:
            logger.error(
                "batch_write_failed",
                function=self.batch_function,
                operations=len(operations),
                error=str(e)
            )
            raise DatabaseError("batch write", str(e)) from e
