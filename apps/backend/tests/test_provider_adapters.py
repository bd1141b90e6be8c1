"""Tests for provider adapters against mocked upstreams."""

import httpx
import pytest

from exceptions import ProviderError
from providers import build_adapters
from providers.affiliate_feed import AffiliateFeedAdapter
from providers.base import TokenCache, classify_error
from providers.dummyjson import DummyJsonAdapter
from providers.realstore import RealStoreAdapter
from providers.static_catalog import StaticCatalogAdapter
from config import Settings


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestStaticCatalogAdapter:
    @pytest.mark.asyncio
    async def test_every_token_must_match(self):
        adapter = StaticCatalogAdapter()
        result = await adapter.search("apple laptop")

        assert result.error is None
        assert result.payload_count == 1
        assert {listing.external_id for listing in result.listings} == {"static-laptop-macbook-air"}
        assert {listing.store_name for listing in result.listings} == {"eMAG", "PC Garage"}

    @pytest.mark.asyncio
    async def test_one_listing_per_offer_with_history(self):
        result = await StaticCatalogAdapter().search("laptop")

        assert result.payload_count == 3
        assert len(result.listings) == 5
        xps = [l for l in result.listings if l.external_id == "static-laptop-xps13"]
        assert len(xps[0].price_history) == 2
        assert xps[0].currency == "RON"

    @pytest.mark.asyncio
    async def test_malformed_product_is_skipped(self):
        products = [
            {"id": "ok", "name": "Good laptop", "offers": [{"store_name": "Shop", "price": 10.0}]},
            {"id": "bad", "name": "Broken laptop", "offers": [{"store_name": "Shop", "price": -1}]},
        ]
        result = await StaticCatalogAdapter(products).search("laptop")

        assert result.error is None
        assert result.payload_count == 2
        assert [l.external_id for l in result.listings] == ["ok"]


class TestDummyJsonAdapter:
    @pytest.mark.asyncio
    async def test_maps_products(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["q"] = request.url.params.get("q")
            return httpx.Response(
                200,
                json={
                    "products": [
                        {
                            "id": 7,
                            "title": "Essence Mascara",
                            "brand": "Essence",
                            "category": "beauty",
                            "price": 9.99,
                            "rating": 4.1,
                            "stock": 0,
                            "thumbnail": "https://cdn.dummyjson.com/7.png",
                            "shippingInformation": "Ships overnight",
                            "reviews": [{}, {}],
                        },
                        {"id": 8, "price": 5},
                    ]
                },
            )

        adapter = DummyJsonAdapter("https://dummyjson.test/", client=_client(handler))
        result = await adapter.search("mascara")

        assert seen == {"path": "/products/search", "q": "mascara"}
        assert result.error is None
        assert result.payload_count == 2
        assert len(result.listings) == 1
        listing = result.listings[0]
        assert listing.external_id == "dummyjson-7"
        assert listing.url == "https://dummyjson.test/products/7"
        assert listing.delivery_days == 1
        assert listing.fast_delivery is True
        assert listing.in_stock is False
        assert listing.review_count == 2

    @pytest.mark.asyncio
    async def test_http_error_is_classified(self):
        adapter = DummyJsonAdapter(
            "https://dummyjson.test", client=_client(lambda request: httpx.Response(503, text="down"))
        )
        result = await adapter.search("phone")

        assert result.listings == []
        assert result.error.kind == "http_error"
        assert "503" in result.error.message

    @pytest.mark.asyncio
    async def test_non_json_is_parse_error(self):
        adapter = DummyJsonAdapter(
            "https://dummyjson.test", client=_client(lambda request: httpx.Response(200, text="<html>"))
        )
        result = await adapter.search("phone")
        assert result.error.kind == "parse_error"

    @pytest.mark.asyncio
    async def test_network_error_is_classified(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        adapter = DummyJsonAdapter("https://dummyjson.test", client=_client(handler))
        result = await adapter.search("phone")
        assert result.error.kind == "network_error"


class TestRealStoreAdapter:
    @pytest.mark.asyncio
    async def test_missing_key_is_config_missing(self):
        result = await RealStoreAdapter(None).search("laptop")
        assert result.error.kind == "config_missing"
        assert "REALSTORE_API_KEY" in result.error.message

    @pytest.mark.asyncio
    async def test_parses_offers_and_dedupes(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["X-RapidAPI-Key"] == "secret"
            return httpx.Response(
                200,
                json={
                    "data": {
                        "products": [
                            {
                                "product_id": "987",
                                "product_title": "Dell XPS 13",
                                "product_photos": ["https://img.test/xps.jpg"],
                                "product_rating": 4.5,
                                "product_num_reviews": 120,
                                "offers": [
                                    {"store_name": "Best Buy", "price": "$999.00",
                                     "offer_page_url": "https://bestbuy.test/xps", "shipping": "$14.95 delivery"},
                                    {"store_name": "Best Buy", "price": "$999.00",
                                     "offer_page_url": "https://bestbuy.test/xps"},
                                    {"store_name": "Walmart", "price": "€899,00",
                                     "offer_page_url": "https://walmart.test/xps", "delivery_tag": "Next-day delivery"},
                                    {"store_name": "NoPrice", "offer_page_url": "https://x.test"},
                                ],
                            },
                            {"product_id": "bad"},
                        ]
                    }
                },
            )

        adapter = RealStoreAdapter("secret", client=_client(handler))
        result = await adapter.search("dell xps")

        assert result.error is None
        assert result.payload_count == 2
        assert [l.store_name for l in result.listings] == ["Best Buy", "Walmart"]
        best_buy, walmart = result.listings
        assert best_buy.external_id == "987"
        assert best_buy.shipping_cost == 14.95
        assert best_buy.rating == 4.5
        assert walmart.currency == "EUR"
        assert walmart.price == 899.0
        assert walmart.fast_delivery is True
        assert walmart.delivery_days == 1


class TestAffiliateFeedAdapter:
    def _adapter(self, handler) -> AffiliateFeedAdapter:
        return AffiliateFeedAdapter(
            feed_url="https://feed.test/products",
            token_url="https://feed.test/oauth/token",
            client_id="id",
            client_secret="secret",
            client=_client(handler),
        )

    @pytest.mark.asyncio
    async def test_missing_config_lists_env_names(self):
        adapter = AffiliateFeedAdapter(feed_url=None, token_url=None, client_id="id", client_secret=None)
        result = await adapter.search("laptop")

        assert result.error.kind == "config_missing"
        assert "AFFILIATE_FEED_URL" in result.error.message
        assert "AFFILIATE_CLIENT_SECRET" in result.error.message
        assert "AFFILIATE_CLIENT_ID" not in result.error.message

    @pytest.mark.asyncio
    async def test_token_is_cached_between_calls(self):
        calls = {"token": 0, "feed": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/oauth/token":
                calls["token"] += 1
                return httpx.Response(200, json={"access_token": "tok-1", "expires_in": 3600})
            calls["feed"] += 1
            assert request.headers["Authorization"] == "Bearer tok-1"
            return httpx.Response(
                200,
                json={
                    "products": [
                        {
                            "sku": "A1",
                            "title": "Lenovo IdeaPad",
                            "price": "2.499,99 lei",
                            "currency": "RON",
                            "affiliate_url": "https://l.profitshare.ro/l/123",
                            "merchant": {"id": 42, "name": "eMAG", "program": "profitshare-emag"},
                            "gtin": "0195235123456",
                            "availability": "in stock",
                        },
                        {"sku": "A2", "title": "No price"},
                    ]
                },
            )

        adapter = self._adapter(handler)
        first = await adapter.search("laptop")
        second = await adapter.search("laptop")

        assert calls == {"token": 1, "feed": 2}
        assert first.error is None and second.error is None
        listing = first.listings[0]
        assert len(first.listings) == 1
        assert listing.price == 2499.99
        assert listing.provider == "profitshare"
        assert listing.affiliate_program == "profitshare-emag"
        assert listing.store_id == "42"
        assert listing.gtin == "0195235123456"

    @pytest.mark.asyncio
    async def test_revoked_token_is_refreshed_once(self):
        tokens = iter(["stale", "fresh"])

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/oauth/token":
                return httpx.Response(200, json={"access_token": next(tokens), "expires_in": 3600})
            if request.headers["Authorization"] == "Bearer stale":
                return httpx.Response(401)
            return httpx.Response(200, json={"products": []})

        adapter = self._adapter(handler)
        result = await adapter.search("laptop")

        assert result.error is None
        assert adapter.token_cache.value == "fresh"

    @pytest.mark.asyncio
    async def test_token_without_access_token_is_http_error(self):
        adapter = self._adapter(lambda request: httpx.Response(200, json={"error": "invalid_client"}))
        result = await adapter.search("laptop")
        assert result.error.kind == "http_error"


class TestTokenCache:
    def test_refreshes_inside_margin(self):
        cache = TokenCache(refresh_margin_seconds=60)
        cache.store("abc", expires_in=100, now=1000.0)

        assert cache.is_valid(now=1030.0)
        assert not cache.is_valid(now=1041.0)

    def test_invalidate(self):
        cache = TokenCache()
        cache.store("abc", expires_in=None, now=0.0)
        assert cache.expires_at == 1800.0
        cache.invalidate()
        assert not cache.is_valid(now=0.0)

    @pytest.mark.asyncio
    async def test_get_calls_refresh_only_when_needed(self):
        cache = TokenCache()
        calls = []

        async def refresh():
            calls.append(1)
            return "tok", 3600

        assert await cache.get(refresh) == "tok"
        assert await cache.get(refresh) == "tok"
        assert len(calls) == 1

    def test_each_adapter_owns_its_cache(self):
        first = AffiliateFeedAdapter(feed_url="a", token_url="b", client_id="c", client_secret="d")
        second = AffiliateFeedAdapter(feed_url="a", token_url="b", client_id="c", client_secret="d")
        assert first.token_cache is not second.token_cache


class TestErrorClassification:
    @pytest.mark.parametrize(
        "exc,kind",
        [
            (ProviderError("boom", kind="parse_error"), "parse_error"),
            (httpx.ReadTimeout("slow"), "timeout"),
            (ValueError("bad"), "parse_error"),
            (KeyError("title"), "parse_error"),
            (RuntimeError("???"), "unknown"),
        ],
    )
    def test_classify_error(self, exc, kind):
        assert classify_error(exc) == kind


def test_build_adapters_keeps_disabled_adapters():
    adapters = build_adapters(Settings(realstore_enabled=False, affiliate_enabled=False))

    assert [a.name for a in adapters] == ["static", "dummyjson", "realstore", "affiliate"]
    assert [a.enabled for a in adapters] == [True, True, False, False]
