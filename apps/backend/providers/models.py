"""Typed models shared by every provider adapter."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from exceptions import ProviderErrorKind


class HistoricalPrice(BaseModel):
    recorded_at: datetime
    price: float = Field(..., ge=0)
    currency: str = "USD"
    store_name: Optional[str] = None


class NormalizedListing(BaseModel):
    """One store offer plus the minimal fields of the product it belongs to.

    Every adapter translates its upstream payload into this shape at its own
    boundary. Unknown upstream fields map to None or a default.
    """

    # Product side
    source: str = Field(..., min_length=1, description="Adapter that produced the listing")
    external_id: Optional[str] = None
    title: str = Field(..., min_length=1)
    brand: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    gtin: Optional[str] = None

    # Offer side
    store_id: Optional[str] = None
    store_name: str = Field(..., min_length=1)
    url: Optional[str] = None
    price: float = Field(..., ge=0)
    currency: str = "USD"
    shipping_cost: Optional[float] = Field(None, ge=0)
    delivery_days: Optional[int] = Field(None, ge=0)
    fast_delivery: bool = False
    in_stock: bool = True
    rating: Optional[float] = Field(None, ge=0, le=5)
    review_count: Optional[int] = Field(None, ge=0)
    location: Optional[str] = None

    # Provenance
    provider: Optional[str] = None
    affiliate_program: Optional[str] = None
    last_seen_at: Optional[datetime] = None

    price_history: List[HistoricalPrice] = Field(default_factory=list)

    @field_validator("title", "store_name", mode="before")
    @classmethod
    def _strip_required(cls, value: Optional[str]) -> Optional[str]:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("currency", mode="before")
    @classmethod
    def _default_currency(cls, value: Optional[str]) -> str:
        if value is None or not str(value).strip():
            return "USD"
        return str(value).strip().upper()

    @field_validator("brand", "category", "external_id", "url", "image_url", "gtin", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Optional[object]) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None


class ProviderFailure(BaseModel):
    kind: ProviderErrorKind
    message: str


class ProviderSearchResult(BaseModel):
    """What every adapter returns: listings, plus an error when the call failed."""

    listings: List[NormalizedListing] = Field(default_factory=list)
    error: Optional[ProviderFailure] = None
    # Items returned upstream, including ones dropped as malformed
    payload_count: int = 0


class ProviderCallOutcome(BaseModel):
    """Per-request record of one adapter call. Never persisted."""

    provider: str
    payload_count: int = 0
    ingested_count: int = 0
    error_kind: Optional[ProviderErrorKind] = None
    error_message: Optional[str] = None
    latency_ms: Optional[int] = None

    @property
    def failed(self) -> bool:
        return self.error_kind is not None

    @property
    def timed_out(self) -> bool:
        return self.error_kind == "timeout"
