"""
Text utilities for spreadsheet cells.

Handles French exports: accented labels, decimal commas, stray whitespace.
None of these functions raise; bad input degrades to "" or 0.
"""

import math
import re
import unicodedata
from decimal import Decimal
from typing import Any

# Leading float literal, the way spreadsheet exports write it ("6", "12.5", "6 btl")
_LEADING_NUMBER = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def clean_string(value: Any) -> str:
    """
    Clean a cell value for storage and comparison.

    - Non-string or empty input returns ""
    - Strips leading/trailing whitespace
    - Collapses internal whitespace runs to a single space

    Examples:
        "  Château   Margaux " → "Château Margaux"
        12 → ""
    """
    if not value or not isinstance(value, str):
        return ""

    return " ".join(value.split())


def to_number(value: Any) -> float:
    """
    Coerce a cell value to a number.

    Numbers pass through. Strings use a decimal comma or dot and are read up
    to the first non-numeric character. Anything else is 0.

    Examples:
        "12,5" → 12.5
        "6 bouteilles" → 6.0
        "abc" → 0
        7 → 7
    """
    if isinstance(value, bool):
        return 0

    if isinstance(value, (int, float)):
        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return 0
        return value

    if isinstance(value, Decimal):
        return float(value) if value.is_finite() else 0

    if isinstance(value, str):
        match = _LEADING_NUMBER.match(value.replace(",", ".", 1))
        if not match:
            return 0
        number = float(match.group(1))
        return number if math.isfinite(number) else 0

    return 0


def fold_accents(value: str) -> str:
    """
    Remove accent marks, keeping case.

    "Château Rosé" → "Chateau Rose"
    """
    if not value:
        return ""

    # NFD decomposition separates base chars from accents
    normalized = unicodedata.normalize("NFD", value)

    # Drop combining marks (Unicode category 'Mn')
    return "".join(c for c in normalized if unicodedata.category(c) != "Mn")
