"""Real-time product search aggregator (RapidAPI "Real-Time Product Search").

Each upstream product carries a list of store offers. Offers are parsed from
display strings ("$272.00", "$14.95 delivery") and deduplicated per
``store|url``.

Required env vars:
  REALSTORE_API_KEY: RapidAPI key
Optional:
  REALSTORE_API_HOST: RapidAPI host (default real-time-product-search.p.rapidapi.com)
  REALSTORE_COUNTRY: two-letter market code (default us)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from exceptions import ProviderConfigError
from providers.base import HttpProviderAdapter
from providers.models import NormalizedListing
from providers.utils import (
    infer_currency,
    is_fast_delivery_text,
    normalize_url,
    parse_delivery_days,
    parse_price,
)

logger = logging.getLogger(__name__)

MAX_OFFERS_PER_PRODUCT = 5


class RealStoreAdapter(HttpProviderAdapter):
    name = "realstore"

    def __init__(
        self,
        api_key: Optional[str],
        *,
        api_host: str = "real-time-product-search.p.rapidapi.com",
        country: str = "us",
        limit: int = 10,
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = 8.0,
        enabled: bool = True,
    ):
        super().__init__(client=client, timeout_seconds=timeout_seconds, enabled=enabled)
        self.api_key = api_key
        self.api_host = api_host
        self.country = country
        self.limit = limit

    async def _fetch(self, query: str) -> Tuple[List[NormalizedListing], int]:
        if not self.api_key:
            raise ProviderConfigError("Missing RapidAPI key (REALSTORE_API_KEY)", provider=self.name)

        query = query.strip()
        if not query:
            return [], 0

        payload = await self._request_json(
            "GET",
            f"https://{self.api_host}/search-v2",
            params={
                "q": query,
                "country": self.country,
                "language": "en",
                "page": 1,
                "limit": self.limit,
                "sort_by": "BEST_MATCH",
                "product_condition": "ANY",
            },
            headers={"X-RapidAPI-Key": self.api_key, "X-RapidAPI-Host": self.api_host},
        )
        items = self._extract_items(payload)
        listings = self._build_listings(items, self._to_listings)
        logger.info(f"[RealStoreAdapter] query={query!r} items={len(items)} listings={len(listings)}")
        return listings, len(items)

    @staticmethod
    def _extract_items(payload: Any) -> List[Dict[str, Any]]:
        if not isinstance(payload, dict):
            raise ValueError("Aggregator response is not an object")
        data = payload.get("data")
        if isinstance(data, dict):
            candidates = data.get("products")
        else:
            candidates = data
        if candidates is None:
            candidates = payload.get("products") or payload.get("items") or []
        return candidates if isinstance(candidates, list) else []

    def _to_listings(self, item: Dict[str, Any]) -> List[NormalizedListing]:
        title = item["product_title"]
        photos = item.get("product_photos") or []
        image_url = photos[0] if photos else None
        price_range = item.get("typical_price_range") or []
        fallback_price = price_range[0] if price_range else None

        raw_offers = item.get("offers") or item.get("offer_list") or []
        if not raw_offers and isinstance(item.get("offer"), dict):
            raw_offers = [item["offer"]]

        seen = set()
        listings: List[NormalizedListing] = []
        for offer in raw_offers:
            if not isinstance(offer, dict):
                continue
            raw_price = offer.get("price") or fallback_price
            price = parse_price(raw_price)
            url = normalize_url(
                offer.get("offer_page_url")
                or item.get("product_offers_page_url")
                or item.get("product_page_url")
            )
            if price is None or not url:
                continue

            store_name = (offer.get("store_name") or "Unknown store").strip()
            key = f"{store_name}|{url}"
            if key in seen:
                continue
            seen.add(key)

            rating = offer.get("store_rating")
            if not isinstance(rating, (int, float)):
                rating = item.get("product_rating")
            review_count = item.get("product_num_reviews")
            delivery_text = offer.get("delivery_tag") or offer.get("shipping")

            listings.append(
                NormalizedListing(
                    source=self.name,
                    external_id=item.get("product_id"),
                    title=title,
                    image_url=image_url,
                    store_name=store_name,
                    url=url,
                    price=price,
                    currency=infer_currency(raw_price),
                    shipping_cost=parse_price(offer.get("shipping")),
                    delivery_days=parse_delivery_days(delivery_text),
                    fast_delivery=is_fast_delivery_text(delivery_text),
                    rating=rating if isinstance(rating, (int, float)) and rating <= 5 else None,
                    review_count=review_count if isinstance(review_count, int) else None,
                )
            )
            if len(listings) >= MAX_OFFERS_PER_PRODUCT:
                break

        return listings
