"""
Spreadsheet readers and row extraction.
"""

from parsers.tabular_reader import (
    TabularSourceReader,
    SUPPORTED_FORMATS,
    PREFERRED_SHEETS,
)
from parsers.row_extractor import (
    detect_columns,
    extract_row,
)

__all__ = [
    "TabularSourceReader",
    "SUPPORTED_FORMATS",
    "PREFERRED_SHEETS",
    "detect_columns",
    "extract_row",
]
