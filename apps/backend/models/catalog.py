"""Catalog models: products, their store offers and price history.

Timestamps are stored timezone-aware in UTC. SQLite hands them back naive,
so readers go through ``as_utc`` before comparing.
"""

from typing import Optional
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive values are taken to be UTC already."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _timestamp_column(nullable: bool = False, index: bool = False) -> sa.Column:
    # A fresh Column per field; SQLAlchemy columns cannot be shared between tables
    return sa.Column(sa.DateTime(timezone=True), nullable=nullable, index=index)


class Product(SQLModel, table=True):
    """Canonical product. Merge key is (source_name, external_id)."""
    __tablename__ = "product"
    __table_args__ = (
        sa.UniqueConstraint("source_name", "external_id", name="uq_product_source_external"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    source_name: str = Field(index=True)
    external_id: str
    name: str = Field(index=True)
    display_name: Optional[str] = None
    brand: Optional[str] = Field(default=None, index=True)
    category: Optional[str] = Field(default=None, index=True)
    description: Optional[str] = None
    image_url: Optional[str] = None
    gtin: Optional[str] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=utc_now, sa_column=_timestamp_column())
    updated_at: Optional[datetime] = Field(default=None, sa_column=_timestamp_column(nullable=True))


class Offer(SQLModel, table=True):
    """A priced, store-specific listing for a product."""
    __tablename__ = "offer"
    __table_args__ = (
        sa.UniqueConstraint("product_id", "store_name", "url", name="uq_offer_product_store_url"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    product_id: int = Field(foreign_key="product.id", index=True)

    store_id: Optional[str] = Field(default=None, index=True)
    store_name: str
    url: str = ""  # "" when the provider gave no URL, so the unique key still holds

    price: float = Field(ge=0)
    currency: str = "USD"
    shipping_cost: Optional[float] = None
    delivery_days: Optional[int] = None
    fast_delivery: bool = False
    in_stock: bool = True
    rating: Optional[float] = None
    review_count: Optional[int] = None
    location: Optional[str] = None

    # Provenance
    source: str
    provider: Optional[str] = Field(default=None, index=True)  # affiliate network tag
    affiliate_program: Optional[str] = None

    last_seen_at: Optional[datetime] = Field(default=None, sa_column=_timestamp_column(nullable=True))
    created_at: datetime = Field(default_factory=utc_now, sa_column=_timestamp_column())
    updated_at: Optional[datetime] = Field(default=None, sa_column=_timestamp_column(nullable=True))


class PriceHistoryPoint(SQLModel, table=True):
    """Append-only price observation. Rows are never updated."""
    __tablename__ = "price_history"

    id: Optional[int] = Field(default=None, primary_key=True)
    product_id: int = Field(foreign_key="product.id", index=True)
    recorded_at: datetime = Field(default_factory=utc_now, sa_column=_timestamp_column())
    price: float = Field(ge=0)
    currency: str = "USD"
    store_name: Optional[str] = None
