"""
Catalog product provider contract.

The reconciliation engine reads the catalog once (get_all) and sends its
write intents in batches (batch_write). A batch is atomic: every operation in
it is applied, or none is and batch_write raises.

Providers are built for one run and passed to the engine explicitly.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Sequence, Union
import structlog

from models.product import CatalogProduct
from exceptions import DatabaseError

logger = structlog.get_logger(__name__)


@dataclass
class UpdateOperation:
    """Overwrite some fields of an existing product."""
    product_id: str
    fields: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict:
        return {
            "op": "update",
            "id": self.product_id,
            "fields": {
                key: value.isoformat() if hasattr(value, "isoformat") else value
                for key, value in self.fields.items()
            },
        }


@dataclass
class CreateOperation:
    """Insert a new product."""
    product: CatalogProduct

    def to_payload(self) -> dict:
        return {
            "op": "create",
            "product": self.product.model_dump(mode="json"),
        }


WriteOperation = Union[UpdateOperation, CreateOperation]


class CatalogProvider(ABC):
    """Where the catalog lives."""

    @abstractmethod
    def get_all(self) -> list[CatalogProduct]:
        """Read a snapshot of every product."""

    @abstractmethod
    def batch_write(self, operations: Sequence[WriteOperation]) -> None:
        """
        Apply a batch of operations atomically.

        Raises:
            DatabaseError: If the batch was not applied
        """


class InMemoryCatalogProvider(CatalogProvider):
    """
    Catalog held in a dict, in insertion order.

    Used for tests and offline runs. A batch is validated in full before any
    of it is applied.
    """

    def __init__(self, products: Optional[Iterable[CatalogProduct]] = None):
        self._products: dict[str, CatalogProduct] = {}
        for product in products or []:
            if product.id in self._products:
                raise ValueError(f"Duplicate product id: {product.id}")
            self._products[product.id] = product
        self.batches: list[list[WriteOperation]] = []

    @property
    def products(self) -> list[CatalogProduct]:
        return list(self._products.values())

    def get(self, product_id: str) -> Optional[CatalogProduct]:
        return self._products.get(product_id)

    def get_all(self) -> list[CatalogProduct]:
        return [product.model_copy() for product in self._products.values()]

    def batch_write(self, operations: Sequence[WriteOperation]) -> None:
        staged = dict(self._products)

        try:
            for operation in operations:
                if isinstance(operation, CreateOperation):
                    if operation.product.id in staged:
                        raise ValueError(f"Product id already exists: {operation.product.id}")
                    staged[operation.product.id] = operation.product
                elif isinstance(operation, UpdateOperation):
                    current = staged.get(operation.product_id)
                    if current is None:
                        raise ValueError(f"Product not found: {operation.product_id}")
                    staged[operation.product_id] = CatalogProduct.model_validate(
                        {**current.model_dump(), **operation.fields}
                    )
                else:
                    raise TypeError(f"Unknown operation: {type(operation).__name__}")
        except (ValueError, TypeError) as e:
            logger.error("in_memory_batch_rejected", error=str(e), operations=len(operations))
            raise DatabaseError("batch write", str(e)) from e

        self._products = staged
        self.batches.append(list(operations))
        logger.debug("in_memory_batch_applied", operations=len(operations))


class DryRunCatalogProvider(CatalogProvider):
    """
    Reads through to another provider, records writes without applying them.

    Lets an import be previewed against the real catalog.
    """

    def __init__(self, source: CatalogProvider):
        self.source = source
        self.batches: list[list[WriteOperation]] = []

    def get_all(self) -> list[CatalogProduct]:
        return self.source.get_all()

    def batch_write(self, operations: Sequence[WriteOperation]) -> None:
        self.batches.append(list(operations))
        logger.info("dry_run_batch_skipped", operations=len(operations))
