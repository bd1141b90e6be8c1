"""Read models and result types for the catalog store."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OfferView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    store_id: Optional[str] = None
    store_name: str
    url: Optional[str] = None
    price: float
    currency: str
    shipping_cost: Optional[float] = None
    delivery_days: Optional[int] = None
    fast_delivery: bool = False
    in_stock: bool = True
    rating: Optional[float] = None
    review_count: Optional[int] = None
    location: Optional[str] = None
    source: str
    provider: Optional[str] = None
    affiliate_program: Optional[str] = None
    last_seen_at: Optional[datetime] = None

    @field_validator("url", mode="before")
    @classmethod
    def _empty_url(cls, value: Optional[str]) -> Optional[str]:
        return value or None

    @property
    def total_price(self) -> float:
        return self.price + (self.shipping_cost or 0.0)


class PricePointView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    recorded_at: datetime
    price: float
    currency: str
    store_name: Optional[str] = None


class ProductView(BaseModel):
    """A product with its visible offers and price history, detached from the session."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    source_name: str
    external_id: str
    name: str
    display_name: Optional[str] = None
    brand: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    offers: List[OfferView] = Field(default_factory=list)
    price_history: List[PricePointView] = Field(default_factory=list)


class CatalogFilter(BaseModel):
    text_terms: List[str] = Field(default_factory=list)
    category_hint: Optional[str] = None
    store: Optional[str] = None
    fast_only: bool = False
    limit: Optional[int] = Field(None, ge=1)
    offset: int = Field(0, ge=0)


class CatalogSearchResult(BaseModel):
    products: List[ProductView] = Field(default_factory=list)
    total: int = 0  # matches before limit/offset
    error: Optional[str] = None

    @property
    def count(self) -> int:
        return len(self.products)


class RowError(BaseModel):
    index: int
    message: str


class UpsertResult(BaseModel):
    count: int = 0
    product_ids: List[int] = Field(default_factory=list)
    products_created: int = 0
    products_matched: int = 0
    offers_created: int = 0
    offers_updated: int = 0
    history_points: int = 0
    errors: List[RowError] = Field(default_factory=list)
    error: Optional[str] = None
