"""
Shopify storefront variant schemas.
"""

from pydantic import BaseModel, Field
from typing import Literal, Optional

from models.base import BaseSchema

TokenSource = Literal["db", "env_token"]


class StorefrontVariant(BaseSchema):
    """
    One Shopify variant flattened with its product's title and image.

    color/size come from the selected options named color/colour and size.
    """

    id: str = Field(..., description="Variant GID")
    product_id: str = Field("", description="Product GID")
    product_title: str = ""
    sku: str = ""
    barcode: str = ""
    price: Optional[float] = None
    inventory_quantity: Optional[int] = None
    color: str = ""
    size: str = ""
    image: str = ""
    product_image: str = ""


class TokenCandidate(BaseModel):
    """Admin API credential to try for a shop, in order."""

    token: str = Field(..., repr=False)
    source: TokenSource


class ScanResult(BaseModel):
    """
    Outcome of a storefront scan.

    A warning means Shopify data is unavailable or incomplete;
    the reconciliation still proceeds with whatever variants exist.
    """

    variants: list[StorefrontVariant] = Field(default_factory=list)
    truncated: bool = False
    source: Optional[TokenSource] = None
    warning: str = ""
    from_cache: bool = False
