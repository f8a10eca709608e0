"""
Pydantic models and working records.
"""

from models.base import BaseSchema, ReportSchema, TimestampMixin
from models.product import (
    Category,
    WINE_CATEGORIES,
    ProductType,
    Unit,
    CatalogProduct,
)
from models.stock_import import (
    ImportCandidate,
    MatchType,
    MatchResult,
    ImportAction,
    ImportStatus,
    ImportLogEntry,
    ImportResult,
)

__all__ = [
    # Base
    "BaseSchema",
    "ReportSchema",
    "TimestampMixin",

    # Product
    "Category",
    "WINE_CATEGORIES",
    "ProductType",
    "Unit",
    "CatalogProduct",

    # Import
    "ImportCandidate",
    "MatchType",
    "MatchResult",
    "ImportAction",
    "ImportStatus",
    "ImportLogEntry",
    "ImportResult",
]
