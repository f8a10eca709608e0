"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    ValidationError,
    DatabaseError,

    # Source reader
    SourceReadError,
    UnsupportedFormatError,

    # Catalog provider
    CatalogReadError,
    PersistenceError,
)

__all__ = [
    # Base
    "AppError",
    "ValidationError",
    "DatabaseError",

    # Source reader
    "SourceReadError",
    "UnsupportedFormatError",

    # Catalog provider
    "CatalogReadError",
    "PersistenceError",
]
