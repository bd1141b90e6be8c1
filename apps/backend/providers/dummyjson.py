"""DummyJSON demo dataset adapter (https://dummyjson.com/docs/products)."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from providers.base import HttpProviderAdapter
from providers.models import NormalizedListing
from providers.utils import parse_delivery_days

logger = logging.getLogger(__name__)

DEFAULT_DELIVERY_DAYS = 5


class DummyJsonAdapter(HttpProviderAdapter):
    name = "dummyjson"

    def __init__(
        self,
        base_url: str = "https://dummyjson.com",
        *,
        limit: int = 30,
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = 8.0,
        enabled: bool = True,
    ):
        super().__init__(client=client, timeout_seconds=timeout_seconds, enabled=enabled)
        self.base_url = base_url.rstrip("/")
        self.limit = limit

    async def _fetch(self, query: str) -> Tuple[List[NormalizedListing], int]:
        query = query.strip()
        if not query:
            return [], 0

        payload = await self._request_json(
            "GET",
            f"{self.base_url}/products/search",
            params={"q": query, "limit": self.limit},
        )
        if not isinstance(payload, dict):
            raise ValueError("DummyJSON response is not an object")

        items = payload.get("products") or []
        if not isinstance(items, list):
            raise ValueError("DummyJSON 'products' is not a list")

        listings = self._build_listings(items, self._to_listings)
        logger.info(f"[DummyJsonAdapter] query={query!r} items={len(items)} listings={len(listings)}")
        return listings, len(items)

    def _to_listings(self, item: Dict[str, Any]) -> List[NormalizedListing]:
        product_id = item["id"]
        images = item.get("images") or []
        image_url = item.get("thumbnail") or (images[0] if images else None)

        delivery_days = parse_delivery_days(item.get("shippingInformation")) or DEFAULT_DELIVERY_DAYS
        stock = item.get("stock")
        reviews = item.get("reviews")

        return [
            NormalizedListing(
                source=self.name,
                external_id=f"dummyjson-{product_id}",
                title=item["title"],
                brand=item.get("brand"),
                category=item.get("category"),
                description=item.get("description"),
                image_url=image_url,
                store_id="dummyjson",
                store_name="DummyJSON Store",
                url=f"{self.base_url}/products/{product_id}",
                price=float(item["price"]),
                currency="USD",
                shipping_cost=0.0,
                delivery_days=delivery_days,
                fast_delivery=delivery_days <= 2,
                in_stock=stock > 0 if isinstance(stock, int) else True,
                rating=item.get("rating"),
                review_count=len(reviews) if isinstance(reviews, list) else None,
            )
        ]
