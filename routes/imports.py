"""
Stock import API routes.

Upload a stock spreadsheet and reconcile it with the product catalog.
"""

from fastapi import APIRouter, UploadFile, File, Form
from fastapi.responses import JSONResponse
from typing import Optional
from pathlib import Path
from io import BytesIO
import structlog

from config import settings
from models.stock_import import ImportResult, ImportStatus
from parsers.tabular_reader import SUPPORTED_FORMATS, PREFERRED_SHEETS
from services.catalog_provider import CatalogProvider, DryRunCatalogProvider
from services.reconciliation_service import ReconciliationService
from services.supabase_catalog_provider import SupabaseCatalogProvider
from exceptions import (
    AppError,
    PersistenceError,
    UnsupportedFormatError,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/imports", tags=["Imports"])


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, PersistenceError) and e.result is not None:
        content = e.to_dict()
        content["error"]["details"] = {
            **(e.details or {}),
            "result": e.result.model_dump(mode="json", by_alias=True),
        }
        return JSONResponse(status_code=e.status_code, content=content)
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


def get_catalog_provider() -> CatalogProvider:
    """Catalog used by uploads. A new provider per request."""
    return SupabaseCatalogProvider()


# ===================
# ROUTES
# ===================

@router.get("/stock")
async def stock_import_info():
    """
    Describe the stock import endpoint.

    Returns:
        Accepted formats, preferred sheet names and batch settings
    """
    return {
        "ready": settings.supabase_configured,
        "supported_formats": SUPPORTED_FORMATS,
        "preferred_sheets": PREFERRED_SHEETS,
        "batch_size": settings.import_batch_size,
        "match_threshold": settings.match_confidence_threshold,
    }


@router.post("/stock", response_model=ImportResult)
async def import_stock(
    file: UploadFile = File(...),
    sheet: Optional[str] = Form(None),
    dry_run: bool = Form(False),
):
    """
    Import a stock spreadsheet.

    Existing products get their quantity replaced, unknown ones are created.
    With dry_run the catalog is read but nothing is written.

    Raises:
        422: Unsupported format or unreadable file
        500: Catalog read or batch write failed (partial result in details)
    """
    logger.info(
        "stock_import_upload_started",
        filename=file.filename,
        content_type=file.content_type,
        sheet=sheet,
        dry_run=dry_run
    )

    try:
        file_format = Path(file.filename or "").suffix.lower()
        if file_format not in SUPPORTED_FORMATS:
            raise UnsupportedFormatError(file_format, SUPPORTED_FORMATS)

        content = await file.read()

        provider = get_catalog_provider()
        if dry_run:
            provider = DryRunCatalogProvider(provider)

        service = ReconciliationService(provider)
        result = service.run_source(
            BytesIO(content),
            sheet_name=sheet or None,
            file_format=file_format
        )

        if result.status == ImportStatus.ABORTED:
            logger.warning(
                "stock_import_upload_aborted",
                filename=file.filename,
                error=result.source_error
            )
            return JSONResponse(
                status_code=422,
                content={
                    "error": {
                        "code": "SOURCE_READ_ERROR",
                        "message": result.source_error,
                        "details": result.model_dump(mode="json", by_alias=True),
                    }
                }
            )

        logger.info(
            "stock_import_upload_completed",
            filename=file.filename,
            updated=result.updated,
            created=result.created,
            skipped=result.skipped,
            errors=result.errors,
            dry_run=dry_run
        )

        return result

    except Exception as e:
        return handle_error(e)
