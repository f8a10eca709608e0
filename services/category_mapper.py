"""
Category mapping for imported stock rows.

Spreadsheets label categories in free text ("Vins rouge", "Bières", "soda").
normalize_category maps such a label onto the fixed Category enum through a
static synonym table; infer_category guesses from a product name instead.
Both are total: anything unrecognized is Category.OTHER.
"""

import re
from typing import Any

from models.product import Category, ProductType, WINE_CATEGORIES
from utils.text_utils import clean_string, fold_accents


# Label (lower-case, single-spaced) → Category.
# Accented and unaccented spellings are both listed; lookups also retry
# with accents folded.
CATEGORY_SYNONYMS: dict[str, Category] = {
    # Red wine
    "vins rouge": Category.WINE_RED,
    "vins rouges": Category.WINE_RED,
    "vin rouge": Category.WINE_RED,
    "rouge": Category.WINE_RED,
    "rouges": Category.WINE_RED,
    "red": Category.WINE_RED,
    "red wine": Category.WINE_RED,
    "wine-red": Category.WINE_RED,

    # White wine
    "vins blanc": Category.WINE_WHITE,
    "vins blancs": Category.WINE_WHITE,
    "vin blanc": Category.WINE_WHITE,
    "blanc": Category.WINE_WHITE,
    "blancs": Category.WINE_WHITE,
    "white": Category.WINE_WHITE,
    "white wine": Category.WINE_WHITE,
    "wine-white": Category.WINE_WHITE,

    # Rosé
    "vins rosé": Category.WINE_ROSE,
    "vins rosés": Category.WINE_ROSE,
    "vin rosé": Category.WINE_ROSE,
    "rosé": Category.WINE_ROSE,
    "rosés": Category.WINE_ROSE,
    "rose": Category.WINE_ROSE,
    "rose wine": Category.WINE_ROSE,
    "wine-rose": Category.WINE_ROSE,

    # Other wines
    "vins": Category.WINE_GENERIC,
    "vin": Category.WINE_GENERIC,
    "wine": Category.WINE_GENERIC,
    "wines": Category.WINE_GENERIC,
    "bulles": Category.WINE_GENERIC,
    "champagne": Category.WINE_GENERIC,
    "wine-generic": Category.WINE_GENERIC,

    # Spirits
    "spiritueux": Category.SPIRITS,
    "alcool": Category.SPIRITS,
    "alcools": Category.SPIRITS,
    "spirits": Category.SPIRITS,
    "liqueur": Category.SPIRITS,
    "liqueurs": Category.SPIRITS,

    # Beer
    "bières": Category.BEER,
    "bière": Category.BEER,
    "bieres": Category.BEER,
    "biere": Category.BEER,
    "beer": Category.BEER,
    "beers": Category.BEER,

    # Soft drinks
    "softs": Category.SOFT,
    "soft": Category.SOFT,
    "soda": Category.SOFT,
    "sodas": Category.SOFT,

    # Juice
    "jus": Category.JUICE,
    "juice": Category.JUICE,
    "juices": Category.JUICE,

    # Water
    "eaux": Category.WATER,
    "eau": Category.WATER,
    "water": Category.WATER,

    # Cocktails
    "cocktails": Category.COCKTAIL,
    "cocktail": Category.COCKTAIL,

    # Other
    "autres": Category.OTHER,
    "autre": Category.OTHER,
    "other": Category.OTHER,
}


# Name keyword → Category, checked in order (first hit wins).
NAME_KEYWORDS: list[tuple[tuple[str, ...], Category]] = [
    (("rouge", "red"), Category.WINE_RED),
    (("blanc", "white"), Category.WINE_WHITE),
    (("rosé", "rose"), Category.WINE_ROSE),
    (("vin", "wine"), Category.WINE_GENERIC),
    (("whisky", "vodka", "gin", "rhum", "rum"), Category.SPIRITS),
    (("bière", "biere", "beer"), Category.BEER),
    (("jus", "juice"), Category.JUICE),
    (("eau", "water"), Category.WATER),
    (("coca", "pepsi", "sprite"), Category.SOFT),
]


def normalize_category(label: Any) -> Category:
    """
    Map a free-text category label to the fixed enum.

    Args:
        label: Raw cell value (any type)

    Returns:
        Matching Category, or Category.OTHER when the label is unknown
    """
    key = clean_string(label).lower()
    if not key:
        return Category.OTHER

    category = CATEGORY_SYNONYMS.get(key)
    if category is None:
        category = _FOLDED_SYNONYMS.get(fold_accents(key))

    return category or Category.OTHER


def infer_category(name: Any) -> Category:
    """
    Guess a category from a product name by keyword containment.

    Keywords must start a word, so "Bordeaux" is not water. Still rough
    ("Rouge Gorge" is red wine). Only used when a row carries no usable
    category.
    """
    lowered = clean_string(name).lower()
    if not lowered:
        return Category.OTHER

    for keywords, category in NAME_KEYWORDS:
        if any(re.search(r"(?<!\w)" + re.escape(keyword), lowered) for keyword in keywords):
            return category

    return Category.OTHER


def product_type_for(category: Category) -> ProductType:
    """Wines are tracked as their own product type."""
    return ProductType.WINE if category in WINE_CATEGORIES else ProductType.GENERAL


_FOLDED_SYNONYMS: dict[str, Category] = {
    fold_accents(label): category
    for label, category in CATEGORY_SYNONYMS.items()
}
