"""
Custom exception classes for the application.

Row-level problems never surface here: a rejected row is logged as skipped
and any other per-row exception is recorded on the import log. Only the
run-level failures below escape an import.
"""

from typing import Optional, Any, TYPE_CHECKING
from datetime import datetime, timezone

if TYPE_CHECKING:
    from models.stock_import import ImportResult


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "SOURCE_READ_ERROR")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# SOURCE ERRORS
# ===================

class SourceReadError(ValidationError):
    """The tabular source could not be read or parsed."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="SOURCE_READ_ERROR",
            message=message,
            details=details
        )


class UnsupportedFormatError(SourceReadError):
    """File extension is not a spreadsheet format we can read."""

    def __init__(self, file_format: str, supported: list[str]):
        super().__init__(
            message=f"Unsupported file format: {file_format or 'unknown'}",
            details={"provided": file_format, "supported": supported}
        )


# ===================
# CATALOG ERRORS
# ===================

class CatalogReadError(DatabaseError):
    """The catalog snapshot could not be loaded."""

    def __init__(self, message: str):
        super().__init__(operation="catalog read", message=message)


class PersistenceError(AppError):
    """
    A batch flush failed.

    Carries the partial ImportResult of the run. Entries whose batch was not
    confirmed keep pending=True.
    """

    def __init__(
        self,
        message: str,
        result: Optional["ImportResult"] = None,
        details: Optional[dict] = None
    ):
        self.result = result
        super().__init__(
            code="PERSISTENCE_ERROR",
            message=message,
            status_code=500,
            details=details
        )
