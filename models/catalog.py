"""
POS/ERP catalog snapshot schemas.

Rows are validated on ingress so the matching and aggregation code
only ever sees trimmed strings and finite numbers.
"""

from pydantic import Field, field_validator
from typing import Any, Optional

from models.base import UpstreamSchema
from utils.text_utils import normalize_text, parse_number


class CatalogRow(UpstreamSchema):
    """
    One SKU-level row of the catalog snapshot.

    Rows sharing a non-zero item_matrix_id belong to the same parent.
    """

    id: str = ""
    item_id: str = ""
    item_matrix_id: str = ""
    system_sku: str = ""
    custom_sku: str = ""
    upc: str = ""
    ean: str = ""
    description: str = ""
    color: str = ""
    size: str = ""
    category: str = ""
    item_type: str = ""
    retail_price: str = ""
    retail_price_number: Optional[float] = None
    locations: dict[str, Optional[float]] = Field(default_factory=dict)

    @field_validator(
        "id", "item_id", "item_matrix_id", "system_sku", "custom_sku",
        "upc", "ean", "description", "color", "size", "category",
        "item_type", "retail_price",
        mode="before"
    )
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        """Upstream ids arrive as numbers or null."""
        return normalize_text(v)

    @field_validator("retail_price_number", mode="before")
    @classmethod
    def coerce_number(cls, v: Any) -> Optional[float]:
        return parse_number(v)

    @field_validator("locations", mode="before")
    @classmethod
    def coerce_locations(cls, v: Any) -> dict[str, Optional[float]]:
        """Quantities may be missing, null or numeric strings."""
        if not isinstance(v, dict):
            return {}
        return {normalize_text(name): parse_number(qty) for name, qty in v.items()}

    @property
    def price(self) -> Optional[float]:
        """Numeric retail price, falling back to the text field."""
        if self.retail_price_number is not None:
            return self.retail_price_number
        return parse_number(self.retail_price)


class CatalogOptions(UpstreamSchema):
    """Option metadata sent alongside the rows."""

    categories: list[str] = Field(default_factory=list)
    shops: list[str] = Field(default_factory=list)

    @field_validator("categories", "shops", mode="before")
    @classmethod
    def coerce_list(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [normalize_text(item) for item in v if normalize_text(item)]


class CatalogSnapshot(UpstreamSchema):
    """
    Full point-in-time export of the POS catalog.

    `options.shops` is the canonical allow-list of known locations.
    """

    rows: list[CatalogRow] = Field(default_factory=list)
    total: Optional[int] = None
    options: CatalogOptions = Field(default_factory=CatalogOptions)
    truncated: bool = False

    @field_validator("rows", mode="before")
    @classmethod
    def coerce_rows(cls, v: Any) -> list:
        if not isinstance(v, list):
            return []
        return [row for row in v if isinstance(row, dict)]

    @field_validator("options", mode="before")
    @classmethod
    def coerce_options(cls, v: Any) -> Any:
        return v if isinstance(v, dict) else {}

    @field_validator("total", mode="before")
    @classmethod
    def coerce_total(cls, v: Any) -> Optional[int]:
        parsed = parse_number(v)
        return int(parsed) if parsed is not None else None

    @field_validator("truncated", mode="before")
    @classmethod
    def coerce_truncated(cls, v: Any) -> bool:
        return bool(v)

    @property
    def total_in_source(self) -> int:
        """Row count reported by the provider, else the loaded count."""
        return self.total if self.total is not None else len(self.rows)
