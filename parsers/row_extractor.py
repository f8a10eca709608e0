"""
Row extractor for stock spreadsheets.

Stock sheets come from different people and never share a header layout, so
columns are recognised by keywords in their header rather than by exact name.
The keyword table is a heuristic: a header such as "Type de stock" matches
both category and quantity keywords and goes to whichever field is declared
first. That ambiguity is a known limitation, not something resolved here.
"""

from typing import Any, Mapping, Optional

from models.product import Category
from models.stock_import import ImportCandidate
from services.category_mapper import normalize_category, infer_category
from utils.text_utils import clean_string, to_number, fold_accents

ORIGIN_NAME = "origin_name"
OFFICIAL_NAME = "official_name"
CATEGORY = "category"
QUANTITY = "quantity"

# Field → header keywords, in priority order. Headers are lower-cased and
# accent-folded before the substring test, so "Quantité" matches "quantite".
FIELD_KEYWORDS: dict[str, tuple[str, ...]] = {
    ORIGIN_NAME: ("origine", "origin", "court", "historique", "short"),
    OFFICIAL_NAME: ("officiel", "official", "complet", "corrige", "canonical"),
    CATEGORY: ("categorie", "category", "type"),
    QUANTITY: ("quantite", "quantity", "qty", "stock"),
}

# Headers that usually hold the product name when neither name field was
# recognised.
NAME_HEADER_KEYWORDS = ("nom", "name", "produit", "product", "article", "designation", "libelle")

# Never taken as a name column.
IGNORED_HEADER_KEYWORDS = ("prix", "price", "cout", "cost", "total", "montant", "amount", "ttc")


def _header_key(header: Any) -> str:
    return fold_accents(str(header)).lower()


def _first_matching_field(header_key: str) -> Optional[str]:
    for field, keywords in FIELD_KEYWORDS.items():
        if any(keyword in header_key for keyword in keywords):
            return field
    return None


def detect_columns(row: Mapping[str, Any]) -> dict[str, str]:
    """
    Work out which column holds which field.

    Scans columns in their declared order. Each column goes to the first
    field whose keywords it contains; the first column found for a field
    wins and later matches for that field are ignored.

    When neither name field was recognised, unclaimed columns stand in: the
    name-like headers ("Produit", "Nom") if there are any, otherwise all of
    them in column order. The choice depends on the headers only, so every
    row of a sheet is read with the same layout. The first becomes the origin
    name, the second the official name.

    Returns:
        Dict of field → column header (fields without a column are absent)
    """
    columns: dict[str, str] = {}
    claimed: set[str] = set()

    for header in row:
        field = _first_matching_field(_header_key(header))
        if field is None:
            continue
        claimed.add(header)
        if field not in columns:
            columns[field] = header

    if ORIGIN_NAME not in columns and OFFICIAL_NAME not in columns:
        fallback = _fallback_name_columns(row, claimed)
        for field, header in zip((ORIGIN_NAME, OFFICIAL_NAME), fallback):
            columns[field] = header

    return columns


def _fallback_name_columns(row: Mapping[str, Any], claimed: set[str]) -> list[str]:
    """Unclaimed columns that can hold a name, best candidates first."""
    usable = [
        header for header in row
        if header not in claimed
        and not any(keyword in _header_key(header) for keyword in IGNORED_HEADER_KEYWORDS)
    ]
    named = [
        header for header in usable
        if any(keyword in _header_key(header) for keyword in NAME_HEADER_KEYWORDS)
    ]
    return named or usable


def _name_value(value: Any) -> str:
    """Names like "1664" come back from Excel as numbers."""
    if isinstance(value, int) and not isinstance(value, bool):
        value = str(value)
    elif isinstance(value, float) and value.is_integer():
        value = str(int(value))
    return clean_string(value)


def extract_row(
    raw_row: Mapping[str, Any],
    infer_missing_category: bool = False
) -> Optional[ImportCandidate]:
    """
    Turn one raw spreadsheet row into an ImportCandidate.

    Args:
        raw_row: Column header → cell value, in column order
        infer_missing_category: Guess the category from the name when the
                                row's category maps to OTHER

    Returns:
        ImportCandidate, or None when the row has no name or a negative
        quantity (the caller records the rejection)
    """
    columns = detect_columns(raw_row)

    def cell(field: str) -> Any:
        header = columns.get(field)
        return raw_row.get(header) if header is not None else None

    origin_name = _name_value(cell(ORIGIN_NAME))
    official_name = _name_value(cell(OFFICIAL_NAME))
    category = normalize_category(cell(CATEGORY))
    quantity = to_number(cell(QUANTITY))

    # No official name: the historical label is the best we have
    if not official_name and origin_name:
        official_name = origin_name

    if not official_name or quantity < 0:
        return None

    if category == Category.OTHER and infer_missing_category:
        category = infer_category(official_name)

    return ImportCandidate(
        origin_name=origin_name or official_name,
        official_name=official_name,
        category=category,
        quantity=quantity,
    )
