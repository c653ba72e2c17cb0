"""
Pydantic schemas for API request/response contracts.
"""
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictBool

from portal.services.config_store import ProductData


class ProductIn(BaseModel):
    """Catalog entry as sent by the admin UI (legacy ``desc`` key)."""
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    id: str = Field(min_length=1, max_length=64)
    title: str = Field(min_length=1)
    description: str = Field(default="", validation_alias=AliasChoices("desc", "description"))
    price_cents: Optional[int] = Field(default=None, ge=0, validation_alias=AliasChoices("priceCents", "price_cents"))

    def to_product(self) -> ProductData:
        # Same checks the stores apply when reading the catalog back
        return ProductData.from_document({
            "id": self.id,
            "title": self.title,
            "desc": self.description,
            "priceCents": self.price_cents,
        })


class AuthRequest(BaseModel):
    password: Optional[str] = None


class AuthResponse(BaseModel):
    token: str


class CheckoutRequest(BaseModel):
    productId: Optional[str] = None
    quantity: Optional[int] = None


class CheckoutResponse(BaseModel):
    sessionId: str


class AdminSettingsUpdate(BaseModel):
    """Partial settings update; omitted fields stay as they are."""
    exclusiveEnabled: Optional[StrictBool] = None
    password: Optional[str] = None
    products: Optional[List[ProductIn]] = Field(
        default=None,
        validation_alias=AliasChoices("products", "exclusiveProducts"),
    )


def product_payload(products: List[ProductData]) -> List[Dict[str, Any]]:
    return [product.to_document() for product in products]
