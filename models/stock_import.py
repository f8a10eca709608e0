"""
Stock import schemas.

ImportCandidate and MatchResult are working records of one run (dataclasses,
like the parser records). ImportLogEntry and ImportResult form the report
handed back to callers, serialized with camelCase aliases.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import ConfigDict, Field

from models.base import ReportSchema
from models.product import CatalogProduct, Category


@dataclass
class ImportCandidate:
    """One spreadsheet row, normalized, not yet reconciled with the catalog."""
    origin_name: str
    official_name: str
    category: Category
    quantity: float
    row: Optional[int] = None


class MatchType(str, Enum):
    """How a candidate was paired with a catalog product."""
    EXACT_OFFICIAL = "exact-official"
    EXACT_ORIGIN = "exact-origin"
    FUZZY = "fuzzy"


@dataclass
class MatchResult:
    """Best catalog product for a candidate. Exact matches score 1.0."""
    product: CatalogProduct
    score: float
    match_type: MatchType
    raw_score: Optional[float] = None


class ImportAction(str, Enum):
    """Outcome recorded for one source row."""
    UPDATED = "updated"
    CREATED = "created"
    SKIPPED = "skipped"
    ERROR = "error"


class ImportStatus(str, Enum):
    """Terminal state of a run."""
    COMPLETED = "completed"
    ABORTED = "aborted"     # source could not be read, nothing processed
    FAILED = "failed"       # a batch flush failed


class ImportLogEntry(ReportSchema):
    """
    Audit record for one source row.

    pending stays True while the row's write intent sits in an unflushed
    (or failed) batch.
    """

    model_config = ConfigDict(frozen=True)

    action: ImportAction
    row: Optional[int] = None
    origin_name: str = ""
    official_name: str = ""
    category: Optional[Category] = None
    quantity: Optional[float] = None
    product_id: Optional[str] = None
    old_quantity: Optional[float] = None
    new_quantity: Optional[float] = None
    match_score: Optional[float] = None
    match_type: Optional[MatchType] = None
    matched_with: Optional[str] = None
    reason: Optional[str] = None
    error: Optional[str] = None
    pending: bool = False


class ImportResult(ReportSchema):
    """Totals and ordered log of one import run. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    status: ImportStatus = ImportStatus.COMPLETED
    total_processed: int = Field(default=0, ge=0)
    updated: int = Field(default=0, ge=0)
    created: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    errors: int = Field(default=0, ge=0)
    logs: tuple[ImportLogEntry, ...] = ()
    source_error: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None

    @property
    def success(self) -> bool:
        """True if the run completed without row errors."""
        return self.status == ImportStatus.COMPLETED and self.errors == 0

    def entries_for(self, action: ImportAction) -> list[ImportLogEntry]:
        """Log entries with the given action, in row order."""
        return [entry for entry in self.logs if entry.action == action]
