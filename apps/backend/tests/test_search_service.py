"""End-to-end tests for the search pipeline against a SQLite catalog."""

import asyncio
from typing import List, Optional, Tuple

import pytest
from sqlalchemy.exc import OperationalError

from config import Settings
from exceptions import ProviderError, ValidationError
from providers.base import ProviderAdapter
from providers.models import NormalizedListing
from providers.static_catalog import StaticCatalogAdapter
from search.service import SearchFilters, SearchRequest, SearchService


def _listing(source: str, external_id: str, title: str, **kwargs) -> NormalizedListing:
    data = dict(
        source=source,
        external_id=external_id,
        title=title,
        store_name="Shop",
        url=f"https://{source}.test/{external_id}",
        price=100.0,
    )
    data.update(kwargs)
    return NormalizedListing(**data)


class DummyProvider(ProviderAdapter):
    def __init__(self, name: str, listings=None, *, error: Optional[Exception] = None, delay: float = 0.0, enabled=True):
        super().__init__(enabled=enabled)
        self.name = name
        self.listings = listings or []
        self.error = error
        self.delay = delay
        self.queries: List[str] = []

    async def _fetch(self, query: str) -> Tuple[List[NormalizedListing], int]:
        self.queries.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return list(self.listings), len(self.listings)


def _service(session_factory, adapters, **settings_overrides) -> SearchService:
    settings = Settings(**settings_overrides)
    return SearchService.from_settings(settings, session_factory, adapters)


async def _seed(service: SearchService, listings: List[NormalizedListing]) -> None:
    await service.store.upsert(listings)


class TestSearchScenario:
    @pytest.mark.asyncio
    async def test_laptop_below_threshold_enriches_from_all_enabled_adapters(self, session_factory):
        dummy = DummyProvider(
            "dummyjson",
            [_listing("dummyjson", "dj-1", "Budget laptop 15"), _listing("dummyjson", "dj-2", "Gaming laptop 17")],
        )
        disabled = DummyProvider("affiliate", [_listing("affiliate", "af-1", "Affiliate laptop")], enabled=False)
        service = _service(session_factory, [StaticCatalogAdapter(), dummy, disabled])
        await _seed(service, [_listing("seed", f"seed-{i}", f"Laptop model {i}") for i in range(3)])

        response = await service.search(SearchRequest(query="laptop"))

        assert response.status == "ok"
        assert response.meta.total_count == 8
        assert response.meta.fallback_query_used is None
        assert response.provider_status == {
            "catalog": "ok",
            "static": "ok",
            "dummyjson": "ok",
            "affiliate": "disabled",
        }
        assert dummy.queries == ["laptop"]
        assert disabled.queries == []

    @pytest.mark.asyncio
    async def test_failed_provider_yields_ok_db_only(self, session_factory):
        broken = DummyProvider("realstore", error=ProviderError("quota exceeded", kind="http_error"))
        service = _service(session_factory, [broken])
        await _seed(service, [_listing("seed", f"seed-{i}", f"Laptop model {i}") for i in range(3)])

        response = await service.search(SearchRequest(query="laptop"))

        assert response.status == "ok-db-only"
        assert response.provider_status["realstore"] == "error"
        assert response.meta.total_count == 3
        assert response.meta.data_status == "provider_error"

    @pytest.mark.asyncio
    async def test_enough_catalog_results_skip_providers(self, session_factory):
        provider = DummyProvider("dummyjson", [_listing("dummyjson", "dj-1", "Laptop extra")])
        service = _service(session_factory, [provider], enrich_threshold=2)
        await _seed(service, [_listing("seed", f"seed-{i}", f"Laptop model {i}") for i in range(2)])

        response = await service.search(SearchRequest(query="laptop"))

        assert provider.queries == []
        assert response.status == "ok"
        assert response.provider_status["dummyjson"] == "ok"
        assert response.meta.total_count == 2

    @pytest.mark.asyncio
    async def test_empty_query_short_circuits(self, session_factory):
        provider = DummyProvider("dummyjson", [_listing("dummyjson", "dj-1", "Anything")])
        service = _service(session_factory, [provider])

        response = await service.search(SearchRequest(query="   "))

        assert response.status == "no-results"
        assert response.products == []
        assert response.meta.total_count == 0
        assert response.meta.page_count == 0
        assert provider.queries == []

    @pytest.mark.asyncio
    async def test_fallback_query_used_when_primary_finds_nothing(self, session_factory):
        service = _service(session_factory, [])
        await _seed(service, [_listing("seed", "s24", "Samsung Galaxy S24", category="smartphones")])

        response = await service.search(SearchRequest(query="Samsung Galaxy S99 Ultra"))

        assert response.status == "ok"
        assert response.meta.normalized_query == "samsung galaxy s99 ultra"
        assert response.meta.fallback_query_used == "samsung galaxy"
        assert [p.name for p in response.products] == ["Samsung Galaxy S24"]
        assert response.meta.data_status == "no_providers"

    @pytest.mark.asyncio
    async def test_synonym_query_matches_category(self, session_factory):
        service = _service(session_factory, [])
        await _seed(service, [_listing("seed", "s24", "Galaxy S24", category="smartphones")])

        response = await service.search(SearchRequest(query="Phones"))

        assert response.meta.normalized_query == "smartphone"
        assert response.meta.category_hint == "smartphones"
        assert response.meta.total_count == 1

    @pytest.mark.asyncio
    async def test_no_results_anywhere(self, session_factory):
        service = _service(session_factory, [DummyProvider("dummyjson")])

        response = await service.search(SearchRequest(query="unobtainium"))

        assert response.status == "no-results"
        assert response.products == []

    @pytest.mark.asyncio
    async def test_catalog_failure_is_error_status(self, session_factory, monkeypatch):
        provider = DummyProvider("dummyjson", [_listing("dummyjson", "dj-1", "Laptop extra")])
        service = _service(session_factory, [provider])

        async def broken_search(filters):
            raise OperationalError("SELECT", {}, Exception("connection refused"))

        monkeypatch.setattr(service.store, "_search", broken_search)
        response = await service.search(SearchRequest(query="laptop"))

        assert response.status == "error"
        assert response.provider_status["catalog"] == "error"
        assert response.products == []
        assert provider.queries == []


class TestPaginationAndRanking:
    @pytest.mark.asyncio
    async def test_pagination(self, session_factory):
        service = _service(session_factory, [], enrich_threshold=5)
        await _seed(
            service, [_listing("seed", f"seed-{i}", f"Laptop model {i}", price=100.0 + i) for i in range(12)]
        )

        page_one = await service.search(SearchRequest(query="laptop", page_size=5, sort="price"))
        page_three = await service.search(SearchRequest(query="laptop", page=3, page_size=5, sort="price"))
        beyond = await service.search(SearchRequest(query="laptop", page=4, page_size=5))

        assert page_one.meta.total_count == 12
        assert page_one.meta.page_count == 3
        assert [p.best_offers.cheapest.price for p in page_one.products] == [100.0, 101.0, 102.0, 103.0, 104.0]
        assert len(page_three.products) == 2
        assert beyond.products == []
        assert beyond.meta.total_count == 12

    @pytest.mark.asyncio
    async def test_total_count_is_not_capped_by_candidate_window(self, session_factory):
        service = _service(session_factory, [], enrich_threshold=1, max_candidates=3)
        await _seed(
            service, [_listing("seed", f"seed-{i}", f"Laptop model {i}", price=100.0 + i) for i in range(5)]
        )

        first = await service.search(SearchRequest(query="laptop", page_size=2, sort="price"))
        last = await service.search(SearchRequest(query="laptop", page=3, page_size=2, sort="price"))

        assert first.meta.total_count == 5
        assert first.meta.page_count == 3
        assert len(first.products) == 2
        assert last.meta.total_count == 5
        assert len(last.products) == 1

    @pytest.mark.asyncio
    async def test_page_size_is_clamped(self, session_factory):
        service = _service(session_factory, [])

        assert (await service.search(SearchRequest(query="x", page_size=500))).meta.page_size == 50
        assert (await service.search(SearchRequest(query="x", page_size=0))).meta.page_size == 1
        assert (await service.search(SearchRequest(query="x"))).meta.page_size == 10

    @pytest.mark.asyncio
    async def test_invalid_requests_raise(self, session_factory):
        service = _service(session_factory, [])

        with pytest.raises(ValidationError):
            await service.search(SearchRequest(query="laptop", page=0))
        with pytest.raises(ValidationError):
            await service.search(SearchRequest(query="a" * 201))

    @pytest.mark.asyncio
    async def test_products_carry_best_offers_and_deal_info(self, session_factory):
        service = _service(session_factory, [])
        await _seed(
            service,
            [
                _listing(
                    "seed", "xps", "Dell XPS 13", store_name="eMAG", url="https://emag.test/xps",
                    price=80.0, delivery_days=1,
                    price_history=[{"recorded_at": "2024-01-01T00:00:00", "price": 100.0}],
                ),
                _listing(
                    "seed", "xps", "Dell XPS 13", store_name="Altex", url="https://altex.test/xps",
                    price=75.0, shipping_cost=10.0, delivery_days=4,
                ),
            ],
        )

        response = await service.search(
            SearchRequest(query="dell xps", filters=SearchFilters(location="Bucharest"))
        )

        product = response.products[0]
        assert [o.store_name for o in product.offers] == ["eMAG", "Altex"]
        assert product.best_offers.cheapest.store_name == "eMAG"
        assert product.best_offers.fastest.store_name == "eMAG"
        assert product.best_offers.best_overall.store_name == "eMAG"
        assert product.deal_info.discount_percent == 20.0
        assert product.deal_info.freshness == "fresh"

    @pytest.mark.asyncio
    async def test_store_and_fast_filters(self, session_factory):
        service = _service(session_factory, [])
        await _seed(
            service,
            [
                _listing("seed", "a", "Laptop A", store_name="eMAG", delivery_days=1),
                _listing("seed", "b", "Laptop B", store_name="Altex", delivery_days=5),
            ],
        )

        fast = await service.search(SearchRequest(query="laptop", filters=SearchFilters(fast_only=True)))
        altex = await service.search(SearchRequest(query="laptop", filters=SearchFilters(store="altex")))

        assert [p.name for p in fast.products] == ["Laptop A"]
        assert [p.name for p in altex.products] == ["Laptop B"]

    @pytest.mark.asyncio
    async def test_disabled_network_offers_are_hidden(self, session_factory):
        service = _service(session_factory, [], disabled_networks=("profitshare",))
        await _seed(
            service,
            [
                _listing("affiliate", "aff-1", "Laptop via network", provider="profitshare"),
                _listing("seed", "direct", "Laptop direct"),
            ],
        )

        response = await service.search(SearchRequest(query="laptop"))

        assert [p.name for p in response.products] == ["Laptop direct"]
