"""
Catalog product schemas.
"""

from pydantic import Field, field_validator
from typing import Any, Optional
from enum import Enum

from models.base import BaseSchema, TimestampMixin


class Category(str, Enum):
    """Fixed product categories."""
    WINE_RED = "wine-red"
    WINE_WHITE = "wine-white"
    WINE_ROSE = "wine-rose"
    WINE_GENERIC = "wine-generic"
    SPIRITS = "spirits"
    BEER = "beer"
    SOFT = "soft"
    JUICE = "juice"
    WATER = "water"
    COCKTAIL = "cocktail"
    OTHER = "other"


WINE_CATEGORIES = frozenset({
    Category.WINE_RED,
    Category.WINE_WHITE,
    Category.WINE_ROSE,
    Category.WINE_GENERIC,
})


class ProductType(str, Enum):
    """Wines are stocked apart from the general bar stock."""
    WINE = "wine"
    GENERAL = "general"


class Unit(str, Enum):
    """Stock unit."""
    BOTTLE = "bottle"
    LITER = "liter"
    CENTILITER = "centiliter"
    GLASS = "glass"
    CAN = "can"
    PIECE = "piece"


class CatalogProduct(BaseSchema, TimestampMixin):
    """
    Existing inventory record as stored in the catalog.

    Unknown category or unit values read back as OTHER / BOTTLE so a single
    legacy row cannot break a whole snapshot.
    """

    id: str = Field(..., min_length=1, description="Product id")
    name: str = Field(default="", description="Official display name")
    category: Category = Field(default=Category.OTHER, description="Product category")
    product_type: ProductType = Field(default=ProductType.GENERAL, description="Wine or general stock")
    quantity: float = Field(default=0, ge=0, description="Units in stock")
    unit: Unit = Field(default=Unit.BOTTLE, description="Stock unit")
    purchase_price: float = Field(default=0, ge=0, description="Purchase price")
    sale_price: float = Field(default=0, ge=0, description="Sale price")
    alert_threshold: float = Field(default=0, ge=0, description="Low-stock alert level")
    active: bool = Field(default=True, description="Whether product is active")
    source: Optional[str] = Field(None, description="Where the record came from")
    created_by: Optional[str] = None
    modified_by: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def name_not_null(cls, v: Any) -> str:
        """Missing names are stored as NULL in older rows."""
        return "" if v is None else v

    @field_validator("category", mode="before")
    @classmethod
    def coerce_category(cls, v: Any) -> Category:
        try:
            return Category(v)
        except ValueError:
            return Category.OTHER

    @field_validator("unit", mode="before")
    @classmethod
    def coerce_unit(cls, v: Any) -> Unit:
        try:
            return Unit(v)
        except ValueError:
            return Unit.BOTTLE

    @field_validator("quantity", "purchase_price", "sale_price", "alert_threshold", mode="before")
    @classmethod
    def null_as_zero(cls, v: Any) -> Any:
        return 0 if v is None else v
