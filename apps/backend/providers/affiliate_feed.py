"""Affiliate network product feed adapter.

Talks to an affiliate network's product-feed API using the OAuth2
client-credentials flow. The bearer token is kept in a ``TokenCache`` owned by
the adapter instance and refreshed 60 seconds before it expires.

Required env vars (when PROVIDER_AFFILIATE_ENABLED=true):
  AFFILIATE_FEED_URL    : product feed search endpoint
  AFFILIATE_TOKEN_URL   : OAuth2 token endpoint
  AFFILIATE_CLIENT_ID   : OAuth2 client ID
  AFFILIATE_CLIENT_SECRET: OAuth2 client secret
Optional:
  AFFILIATE_NETWORK     : network tag stored on offers (default profitshare)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from exceptions import ProviderConfigError, ProviderError
from providers.base import HttpProviderAdapter, TokenCache
from providers.models import NormalizedListing
from providers.utils import normalize_url, parse_price, store_from_url

logger = logging.getLogger(__name__)

_OUT_OF_STOCK = {"out of stock", "out_of_stock", "indisponibil", "stoc epuizat", "0", "false", "no"}


class AffiliateFeedAdapter(HttpProviderAdapter):
    name = "affiliate"

    def __init__(
        self,
        *,
        feed_url: Optional[str],
        token_url: Optional[str],
        client_id: Optional[str],
        client_secret: Optional[str],
        network: str = "profitshare",
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = 8.0,
        enabled: bool = True,
    ):
        super().__init__(client=client, timeout_seconds=timeout_seconds, enabled=enabled)
        self.feed_url = feed_url
        self.token_url = token_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.network = network
        self.token_cache = TokenCache()

    # ------------------------------------------------------------------
    # OAuth2 client-credentials flow
    # ------------------------------------------------------------------

    async def _request_token(self) -> Tuple[str, Optional[float]]:
        payload = await self._request_json(
            "POST",
            self.token_url,
            data={"grant_type": "client_credentials"},
            auth=(self.client_id, self.client_secret),
        )
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise ProviderError("No access_token in OAuth response", kind="http_error", provider=self.name)
        logger.info("[AffiliateFeedAdapter] Obtained access token")
        return token, payload.get("expires_in")

    async def _fetch(self, query: str) -> Tuple[List[NormalizedListing], int]:
        missing = [
            name
            for name, value in (
                ("AFFILIATE_FEED_URL", self.feed_url),
                ("AFFILIATE_TOKEN_URL", self.token_url),
                ("AFFILIATE_CLIENT_ID", self.client_id),
                ("AFFILIATE_CLIENT_SECRET", self.client_secret),
            )
            if not value
        ]
        if missing:
            raise ProviderConfigError(f"Missing {', '.join(missing)}", provider=self.name)

        query = query.strip()
        if not query:
            return [], 0

        token = await self.token_cache.get(self._request_token)
        try:
            payload = await self._search_feed(query, token)
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code != 401:
                raise
            # Token revoked server-side before its advertised expiry
            self.token_cache.invalidate()
            token = await self.token_cache.get(self._request_token)
            payload = await self._search_feed(query, token)

        items = payload.get("products") if isinstance(payload, dict) else None
        if not isinstance(items, list):
            raise ValueError("Affiliate feed response has no 'products' list")

        listings = self._build_listings(items, self._to_listings)
        logger.info(f"[AffiliateFeedAdapter] query={query!r} items={len(items)} listings={len(listings)}")
        return listings, len(items)

    async def _search_feed(self, query: str, token: str) -> Any:
        return await self._request_json(
            "GET",
            self.feed_url,
            params={"q": query},
            headers={"Authorization": f"Bearer {token}"},
        )

    def _to_listings(self, item: Dict[str, Any]) -> List[NormalizedListing]:
        url = normalize_url(item.get("affiliate_url") or item.get("url"))
        price = parse_price(item.get("price"))
        if price is None:
            raise ValueError(f"unparseable price {item.get('price')!r}")

        merchant = item.get("merchant") if isinstance(item.get("merchant"), dict) else {}
        store_name = merchant.get("name") or item.get("store") or store_from_url(item.get("url")) or "unknown"
        availability = str(item.get("availability", "")).strip().lower()

        return [
            NormalizedListing(
                source=self.name,
                external_id=item.get("sku") or item.get("product_id"),
                title=item["title"],
                brand=item.get("brand"),
                category=item.get("category"),
                image_url=item.get("image"),
                gtin=item.get("gtin") or item.get("ean"),
                store_id=str(merchant["id"]) if merchant.get("id") is not None else None,
                store_name=store_name,
                url=url,
                price=price,
                currency=item.get("currency"),
                shipping_cost=parse_price(item.get("shipping_cost")),
                delivery_days=item.get("delivery_days") if isinstance(item.get("delivery_days"), int) else None,
                in_stock=availability not in _OUT_OF_STOCK,
                provider=self.network,
                affiliate_program=item.get("program") or merchant.get("program"),
            )
        ]
