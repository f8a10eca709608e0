"""
Tabular source reader for stock spreadsheets.

Reads an Excel workbook or CSV export into a list of rows, each row a dict of
column header → cell value in the sheet's column order. Empty cells become
None and fully empty rows are dropped. Column meaning is not interpreted here;
see parsers.row_extractor.
"""

from io import BytesIO
from pathlib import Path
from typing import Any, Optional, Union
import structlog

import numpy as np
import pandas as pd

from exceptions import SourceReadError, UnsupportedFormatError

logger = structlog.get_logger(__name__)

Source = Union[str, Path, BytesIO]

EXCEL_FORMATS = {".xlsx", ".xlsm", ".xls"}
CSV_FORMATS = {".csv"}
SUPPORTED_FORMATS = sorted(EXCEL_FORMATS | CSV_FORMATS)

# Sheet names used by the bar's own stock workbooks, tried in order when no
# sheet is requested. Compared case-insensitively, ignoring trailing spaces.
PREFERRED_SHEETS = ["Stocks et prix", "Stocks", "Actuels", "Sheet1", "Feuil1"]


class TabularSourceReader:
    """
    Reads spreadsheet exports into rows.

    Usage:
        reader = TabularSourceReader()
        rows = reader.read("Stocks boissons août 2025.xlsx")
    """

    def read(
        self,
        source: Source,
        sheet_name: Optional[str] = None,
        file_format: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """
        Read a spreadsheet into rows.

        Args:
            source: File path or in-memory buffer
            sheet_name: Sheet to read (Excel only), defaults to a preferred
                        or the first sheet
            file_format: Extension such as ".csv", needed for buffers
                         (buffers default to Excel)

        Returns:
            List of {column header: cell value} dicts, in row order

        Raises:
            SourceReadError: If the source is missing, corrupt or unsupported
        """
        file_format = self._resolve_format(source, file_format)

        logger.info(
            "reading_source",
            source=str(source) if isinstance(source, (str, Path)) else type(source).__name__,
            file_format=file_format,
            sheet=sheet_name
        )

        if isinstance(source, (str, Path)) and not Path(source).is_file():
            logger.error("source_not_found", path=str(source))
            raise SourceReadError(
                message=f"File not found: {source}",
                details={"path": str(source)}
            )

        if file_format in CSV_FORMATS:
            df = self._read_csv(source)
        else:
            df = self._read_excel(source, file_format, sheet_name)

        rows = self._to_rows(df)

        logger.info(
            "source_read",
            row_count=len(rows),
            columns=[str(col) for col in df.columns]
        )

        return rows

    # ===================
    # FORMAT HANDLING
    # ===================

    def _resolve_format(self, source: Source, file_format: Optional[str]) -> str:
        """Work out the file extension, lower-cased with a leading dot."""
        if file_format:
            fmt = file_format.lower().strip()
            if not fmt.startswith("."):
                fmt = "." + fmt
        elif isinstance(source, (str, Path)):
            fmt = Path(source).suffix.lower()
        else:
            fmt = ".xlsx"

        if fmt not in EXCEL_FORMATS and fmt not in CSV_FORMATS:
            logger.warning("unsupported_source_format", file_format=fmt)
            raise UnsupportedFormatError(fmt, SUPPORTED_FORMATS)

        return fmt

    def _read_excel(
        self,
        source: Source,
        file_format: str,
        sheet_name: Optional[str]
    ) -> pd.DataFrame:
        """Load one worksheet. Legacy .xls goes through pandas' default engine."""
        engine = None if file_format == ".xls" else "openpyxl"

        try:
            excel = pd.ExcelFile(source, engine=engine)
        except Exception as e:
            logger.error("excel_read_failed", error=str(e))
            raise SourceReadError(
                message="Failed to read Excel file",
                details={"original_error": str(e)}
            ) from e

        sheet = self._pick_sheet(excel.sheet_names, sheet_name)
        logger.debug("using_sheet", sheet=sheet, available=excel.sheet_names)

        try:
            return excel.parse(sheet, dtype=object)
        except Exception as e:
            logger.error("sheet_read_failed", sheet=sheet, error=str(e))
            raise SourceReadError(
                message=f"Failed to read sheet: {sheet}",
                details={"sheet": sheet, "original_error": str(e)}
            ) from e

    def _read_csv(self, source: Source) -> pd.DataFrame:
        """Load a CSV export, sniffing the delimiter (French exports use ';')."""
        for encoding in ("utf-8-sig", "cp1252"):
            if isinstance(source, BytesIO):
                source.seek(0)
            try:
                return pd.read_csv(
                    source,
                    sep=None,
                    engine="python",
                    dtype=str,
                    encoding=encoding,
                )
            except UnicodeDecodeError:
                logger.debug("csv_encoding_retry", failed_encoding=encoding)
                continue
            except Exception as e:
                logger.error("csv_read_failed", error=str(e))
                raise SourceReadError(
                    message="Failed to read CSV file",
                    details={"original_error": str(e)}
                ) from e

        raise SourceReadError(message="Failed to decode CSV file")

    def _pick_sheet(self, sheet_names: list[str], requested: Optional[str]) -> str:
        """Choose the worksheet to read."""
        if not sheet_names:
            raise SourceReadError(message="Workbook has no sheets")

        by_key = {name.strip().lower(): name for name in sheet_names}

        if requested:
            if requested in sheet_names:
                return requested
            match = by_key.get(requested.strip().lower())
            if match is None:
                raise SourceReadError(
                    message=f"Sheet not found: {requested}",
                    details={"requested": requested, "available": sheet_names}
                )
            return match

        for preferred in PREFERRED_SHEETS:
            match = by_key.get(preferred.lower())
            if match is not None:
                return match

        return sheet_names[0]

    # ===================
    # ROW CONVERSION
    # ===================

    def _to_rows(self, df: pd.DataFrame) -> list[dict[str, Any]]:
        """Convert a DataFrame to row dicts, keeping column order."""
        df = df.dropna(how="all")
        columns = [str(col) for col in df.columns]

        return [
            {column: _cell_value(value) for column, value in zip(columns, values)}
            for values in df.itertuples(index=False, name=None)
        ]


def _cell_value(value: Any) -> Any:
    """Blank cells become None, numpy scalars become Python scalars."""
    if value is None:
        return None
    if isinstance(value, np.generic):
        value = value.item()
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return value
