"""
Stock import reconciliation.

Runs an import: each source row is extracted, matched against the catalog
snapshot, and turned into an update intent (quantity replaced) or a create
intent. Intents are buffered and flushed to the catalog provider in batches.
The run returns an ImportResult with totals and one log entry per row.

Row-level failures never stop a run. Only an unreadable source (run
aborted), an unreadable catalog and a failed batch flush are run-level.
"""

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping, Optional, Union
import structlog

from config.settings import Settings, settings as default_settings
from models.product import CatalogProduct, Unit
from models.stock_import import (
    ImportAction,
    ImportCandidate,
    ImportLogEntry,
    ImportResult,
    ImportStatus,
    MatchResult,
)
from parsers.row_extractor import detect_columns, extract_row, ORIGIN_NAME, OFFICIAL_NAME
from parsers.tabular_reader import Source, TabularSourceReader
from services.catalog_matcher import CatalogMatcher
from services.catalog_provider import (
    CatalogProvider,
    CreateOperation,
    UpdateOperation,
    WriteOperation,
)
from services.category_mapper import product_type_for
from exceptions import CatalogReadError, PersistenceError, SourceReadError

logger = structlog.get_logger(__name__)

REJECTED_ROW_REASON = "missing name or negative quantity"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _RunState:
    """Mutable bookkeeping of one run. Only the service touches it."""
    started_at: datetime = field(default_factory=_utcnow)
    started_clock: float = field(default_factory=time.monotonic)
    total_processed: int = 0
    updated: int = 0
    created: int = 0
    skipped: int = 0
    errors: int = 0
    flushes: int = 0
    logs: list[ImportLogEntry] = field(default_factory=list)
    # (intent, index of its entry in logs)
    pending: list[tuple[WriteOperation, int]] = field(default_factory=list)

    def to_result(self, status: ImportStatus, source_error: Optional[str] = None) -> ImportResult:
        return ImportResult(
            status=status,
            source_error=source_error,
            total_processed=self.total_processed,
            updated=self.updated,
            created=self.created,
            skipped=self.skipped,
            errors=self.errors,
            logs=tuple(self.logs),
            started_at=self.started_at,
            finished_at=_utcnow(),
            duration_seconds=round(time.monotonic() - self.started_clock, 3),
        )


class ReconciliationService:
    """
    Reconciles spreadsheet stock counts with the product catalog.

    Usage:
        provider = SupabaseCatalogProvider()
        service = ReconciliationService(provider)
        result = service.run_source("Stocks boissons août 2025.xlsx")
    """

    def __init__(
        self,
        provider: CatalogProvider,
        matcher: Optional[CatalogMatcher] = None,
        batch_size: Optional[int] = None,
        dedupe_within_run: Optional[bool] = None,
        infer_missing_category: Optional[bool] = None,
        config: Optional[Settings] = None,
    ):
        self.config = config or default_settings
        self.provider = provider
        self.matcher = matcher or CatalogMatcher(threshold=self.config.match_confidence_threshold)
        self.batch_size = self.config.import_batch_size if batch_size is None else batch_size
        self.dedupe_within_run = (
            self.config.dedupe_within_run if dedupe_within_run is None else dedupe_within_run
        )
        self.infer_missing_category = (
            self.config.infer_missing_category if infer_missing_category is None
            else infer_missing_category
        )

        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")

    # ===================
    # ENTRY POINTS
    # ===================

    def run_source(
        self,
        source: Source,
        reader: Optional[TabularSourceReader] = None,
        sheet_name: Optional[str] = None,
        file_format: Optional[str] = None,
    ) -> ImportResult:
        """
        Read a spreadsheet and import it.

        An unreadable source aborts the run: nothing is processed and the
        result carries status ABORTED and the read error.

        Raises:
            CatalogReadError: If the catalog snapshot cannot be loaded
            PersistenceError: If a batch flush fails
        """
        state = _RunState()
        reader = reader or TabularSourceReader()

        try:
            rows = reader.read(source, sheet_name=sheet_name, file_format=file_format)
        except SourceReadError as e:
            logger.error("import_aborted", error=e.message, details=e.details)
            return state.to_result(ImportStatus.ABORTED, source_error=e.message)

        return self.run(rows)

    def run(self, rows: Iterable[Mapping[str, Any]]) -> ImportResult:
        """
        Import raw spreadsheet rows (column header → cell value).

        Rows are numbered from 2, the first line under the header.
        """
        def extract(raw_row: Mapping[str, Any]) -> Optional[ImportCandidate]:
            return extract_row(raw_row, infer_missing_category=self.infer_missing_category)

        return self._execute(enumerate(rows, start=2), extract)

    def run_candidates(self, candidates: Iterable[ImportCandidate]) -> ImportResult:
        """Import candidates that were already extracted."""
        return self._execute(enumerate(candidates, start=1), _validate_candidate)

    # ===================
    # RUN LOOP
    # ===================

    def _execute(
        self,
        items: Iterable[tuple[int, Any]],
        extract: Callable[[Any], Optional[ImportCandidate]],
    ) -> ImportResult:
        state = _RunState()
        catalog = self._load_catalog()
        overlay: dict[str, CatalogProduct] = {}

        logger.info(
            "import_started",
            catalog_size=len(catalog),
            batch_size=self.batch_size,
            dedupe_within_run=self.dedupe_within_run
        )

        for row_number, item in items:
            state.total_processed += 1

            try:
                candidate = extract(item)
                if candidate is None:
                    self._record_skip(state, row_number, item)
                    continue
                if candidate.row is None:
                    candidate.row = row_number

                view = catalog + list(overlay.values()) if overlay else catalog
                match = self.matcher.find_match(candidate, view)
                now = _utcnow()

                if match is not None:
                    operation, entry = self._update_intent(candidate, match, now)
                    if match.product.id in overlay:
                        overlay[match.product.id] = match.product.model_copy(
                            update={"quantity": candidate.quantity}
                        )
                else:
                    operation, entry = self._create_intent(candidate, now)
                    if self.dedupe_within_run:
                        overlay[operation.product.id] = operation.product

            except Exception as e:
                self._record_error(state, row_number, item, e)
                continue

            if entry.action == ImportAction.UPDATED:
                state.updated += 1
            else:
                state.created += 1
            state.pending.append((operation, len(state.logs)))
            state.logs.append(entry)

            if len(state.pending) >= self.batch_size:
                self._flush(state)

        if state.pending:
            self._flush(state)

        result = state.to_result(ImportStatus.COMPLETED)

        logger.info(
            "import_completed",
            processed=result.total_processed,
            updated=result.updated,
            created=result.created,
            skipped=result.skipped,
            errors=result.errors,
            batches=state.flushes,
            duration_seconds=result.duration_seconds
        )

        return result

    def _load_catalog(self) -> list[CatalogProduct]:
        try:
            return list(self.provider.get_all())
        except CatalogReadError:
            raise
        except Exception as e:
            logger.error("catalog_read_failed", error=str(e))
            raise CatalogReadError(str(e)) from e

    # ===================
    # INTENTS
    # ===================

    def _update_intent(
        self,
        candidate: ImportCandidate,
        match: MatchResult,
        now: datetime
    ) -> tuple[UpdateOperation, ImportLogEntry]:
        """Replace the matched product's quantity with the counted one."""
        product = match.product
        old_quantity = product.quantity or 0

        operation = UpdateOperation(
            product_id=product.id,
            fields={
                "quantity": candidate.quantity,
                "updated_at": now,
                "modified_by": self.config.import_source_tag,
            },
        )

        entry = ImportLogEntry(
            action=ImportAction.UPDATED,
            row=candidate.row,
            origin_name=candidate.origin_name,
            official_name=candidate.official_name,
            category=candidate.category,
            quantity=candidate.quantity,
            product_id=product.id,
            old_quantity=old_quantity,
            new_quantity=candidate.quantity,
            match_score=match.score,
            match_type=match.match_type,
            matched_with=product.name,
            pending=True,
        )

        logger.debug(
            "import_row_updated",
            row=candidate.row,
            name=candidate.official_name,
            matched_with=product.name,
            match_type=match.match_type.value,
            score=round(match.score, 3),
            old_quantity=old_quantity,
            new_quantity=candidate.quantity
        )

        return operation, entry

    def _create_intent(
        self,
        candidate: ImportCandidate,
        now: datetime
    ) -> tuple[CreateOperation, ImportLogEntry]:
        product = self.build_product(candidate, now)

        entry = ImportLogEntry(
            action=ImportAction.CREATED,
            row=candidate.row,
            origin_name=candidate.origin_name,
            official_name=candidate.official_name,
            category=candidate.category,
            quantity=candidate.quantity,
            product_id=product.id,
            new_quantity=candidate.quantity,
            pending=True,
        )

        logger.debug(
            "import_row_created",
            row=candidate.row,
            name=product.name,
            category=product.category.value,
            quantity=product.quantity
        )

        return CreateOperation(product=product), entry

    def build_product(
        self,
        candidate: ImportCandidate,
        now: Optional[datetime] = None
    ) -> CatalogProduct:
        """New catalog product seeded from a candidate. Prices are set later by hand."""
        now = now or _utcnow()
        return CatalogProduct(
            id=str(uuid.uuid4()),
            name=candidate.official_name,
            category=candidate.category,
            product_type=product_type_for(candidate.category),
            quantity=candidate.quantity,
            unit=Unit(self.config.new_product_unit),
            purchase_price=0,
            sale_price=0,
            alert_threshold=self.config.new_product_alert_threshold,
            active=True,
            source=self.config.import_source_tag,
            created_at=now,
            updated_at=now,
            created_by=self.config.import_created_by,
        )

    # ===================
    # LOG ENTRIES
    # ===================

    def _record_skip(self, state: _RunState, row_number: int, item: Any) -> None:
        origin_name, official_name = _row_names(item)
        state.skipped += 1
        state.logs.append(ImportLogEntry(
            action=ImportAction.SKIPPED,
            row=row_number,
            origin_name=origin_name,
            official_name=official_name,
            reason=REJECTED_ROW_REASON,
        ))
        logger.warning("import_row_skipped", row=row_number, reason=REJECTED_ROW_REASON)

    def _record_error(
        self,
        state: _RunState,
        row_number: int,
        item: Any,
        error: Exception
    ) -> None:
        origin_name, official_name = _row_names(item)
        state.errors += 1
        state.logs.append(ImportLogEntry(
            action=ImportAction.ERROR,
            row=row_number,
            origin_name=origin_name,
            official_name=official_name,
            error=str(error) or type(error).__name__,
        ))
        logger.warning(
            "import_row_failed",
            row=row_number,
            name=official_name,
            error=str(error),
            error_type=type(error).__name__
        )

    # ===================
    # PERSISTENCE
    # ===================

    def _flush(self, state: _RunState) -> None:
        """
        Send the buffered intents as one batch.

        Raises:
            PersistenceError: With the partial result; entries of the failed
                              batch stay pending
        """
        operations = [operation for operation, _ in state.pending]
        batch_number = state.flushes + 1

        try:
            self.provider.batch_write(operations)
        except Exception as e:
            logger.error(
                "batch_flush_failed",
                batch=batch_number,
                operations=len(operations),
                error=str(e)
            )
            raise PersistenceError(
                f"Batch {batch_number} of {len(operations)} operations failed: {e}",
                result=state.to_result(ImportStatus.FAILED),
                details={"batch": batch_number, "operations": len(operations)}
            ) from e

        for _, index in state.pending:
            state.logs[index] = state.logs[index].model_copy(update={"pending": False})
        state.pending.clear()
        state.flushes = batch_number

        logger.info("batch_flushed", batch=batch_number, operations=len(operations))


def _validate_candidate(candidate: ImportCandidate) -> Optional[ImportCandidate]:
    """Same acceptance rule as the row extractor."""
    if not candidate.official_name or candidate.quantity < 0:
        return None
    return candidate


def _row_names(item: Union[ImportCandidate, Mapping[str, Any], Any]) -> tuple[str, str]:
    """Best-effort names of a source row, for the log."""
    if isinstance(item, ImportCandidate):
        return item.origin_name or "", item.official_name or ""
    if isinstance(item, Mapping):
        columns = detect_columns(item)
        names = []
        for field_name in (ORIGIN_NAME, OFFICIAL_NAME):
            value = item.get(columns[field_name]) if field_name in columns else None
            names.append("" if value is None else " ".join(str(value).split()))
        return names[0], names[1]
    return "", ""
