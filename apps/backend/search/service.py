"""Search pipeline: normalize, look up, enrich, fall back, rank, paginate.

``SearchService.search`` is the single inbound operation. It never raises for
provider or catalog failures; those surface through ``status`` and
``provider_status`` on the response. Only malformed requests raise
``ValidationError``.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Literal, Optional, Sequence

from pydantic import BaseModel, Field
from sqlalchemy.orm import sessionmaker

from catalog.schemas import CatalogFilter, CatalogSearchResult, OfferView, ProductView
from catalog.store import CatalogStore
from catalog.visibility import VisibilityPolicy
from config import Settings
from exceptions import ValidationError
from observability.metrics import search_requests_total
from providers.base import ProviderAdapter
from providers.models import ProviderCallOutcome
from search.deals import DealEvaluator, DealInfo
from search.enrichment import EnrichmentOrchestrator
from search.metrics import SearchMetricsCollector
from search.query import NormalizedQuery, QueryNormalizer, category_for
from search.ranking import BestOfferRanker, BestOffers, rank_offers_by_total, sort_key_for
from search.status import (
    DataStatus,
    SearchStatus,
    SourceStatus,
    aggregate_status,
    compute_data_status,
)

logger = logging.getLogger(__name__)

MAX_QUERY_LENGTH = 200

SortOrder = Literal["relevance", "price", "delivery"]


class SearchFilters(BaseModel):
    category: Optional[str] = None
    store: Optional[str] = None
    fast_only: bool = False
    location: Optional[str] = None


class SearchRequest(BaseModel):
    query: str = ""
    filters: SearchFilters = Field(default_factory=SearchFilters)
    page: int = 1
    page_size: Optional[int] = None
    sort: SortOrder = "relevance"


class RankedProduct(BaseModel):
    id: int
    name: str
    display_name: Optional[str] = None
    brand: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    source_name: str
    offers: List[OfferView] = Field(default_factory=list)
    best_offers: BestOffers = Field(default_factory=BestOffers)
    deal_info: DealInfo = Field(default_factory=DealInfo)


class SearchMeta(BaseModel):
    page: int
    page_size: int
    page_count: int
    total_count: int
    fallback_query_used: Optional[str] = None
    normalized_query: str = ""
    category_hint: Optional[str] = None
    data_status: DataStatus = "ok"


class SearchResponse(BaseModel):
    status: SearchStatus
    provider_status: Dict[str, SourceStatus] = Field(default_factory=dict)
    products: List[RankedProduct] = Field(default_factory=list)
    meta: SearchMeta


class SearchService:
    def __init__(
        self,
        store: CatalogStore,
        orchestrator: EnrichmentOrchestrator,
        *,
        normalizer: Optional[QueryNormalizer] = None,
        ranker: Optional[BestOfferRanker] = None,
        evaluator: Optional[DealEvaluator] = None,
        default_page_size: int = 10,
        max_page_size: int = 50,
        max_candidates: int = 200,
    ):
        self.store = store
        self.orchestrator = orchestrator
        self.normalizer = normalizer or QueryNormalizer()
        self.ranker = ranker or BestOfferRanker()
        self.evaluator = evaluator or DealEvaluator()
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size
        self.max_candidates = max_candidates

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session_factory: sessionmaker,
        adapters: Sequence[ProviderAdapter],
    ) -> "SearchService":
        store = CatalogStore(
            session_factory,
            visibility=VisibilityPolicy.from_names(settings.disabled_networks),
            timeout_seconds=settings.store_timeout_seconds,
        )
        orchestrator = EnrichmentOrchestrator(
            store,
            adapters,
            threshold=settings.enrich_threshold,
            max_products_per_provider=settings.max_products_per_provider,
            provider_timeout_seconds=settings.provider_timeout_seconds,
            deadline_seconds=settings.enrich_deadline_seconds,
        )
        return cls(
            store,
            orchestrator,
            ranker=BestOfferRanker(settings.ranking_weights),
            evaluator=DealEvaluator(
                stale_after_days=settings.stale_after_days,
                great_deal_threshold_percent=settings.great_deal_threshold_percent,
            ),
            default_page_size=settings.default_page_size,
            max_page_size=settings.max_page_size,
            max_candidates=settings.max_candidates,
        )

    def _page_size(self, requested: Optional[int]) -> int:
        if requested is None:
            return self.default_page_size
        return max(1, min(requested, self.max_page_size))

    def _validate(self, request: SearchRequest) -> None:
        if request.page < 1:
            raise ValidationError("page must be >= 1", detail={"page": request.page})
        if len(request.query) > MAX_QUERY_LENGTH:
            raise ValidationError(
                f"query must be at most {MAX_QUERY_LENGTH} characters",
                detail={"length": len(request.query)},
            )

    def _catalog_filter(
        self, query: str, category: Optional[str], filters: SearchFilters, window: int
    ) -> CatalogFilter:
        return CatalogFilter(
            text_terms=query.split(),
            category_hint=category,
            store=filters.store or None,
            fast_only=filters.fast_only,
            limit=window,
        )

    async def search(self, request: SearchRequest) -> SearchResponse:
        self._validate(request)
        page_size = self._page_size(request.page_size)
        normalized = self.normalizer.normalize(request.query)

        collector = SearchMetricsCollector()
        with collector.track_search(query=normalized.normalized):
            response = await self._run(request, normalized, page_size, collector)
        search_requests_total.labels(status=response.status).inc()
        return response

    async def _run(
        self,
        request: SearchRequest,
        normalized: NormalizedQuery,
        page_size: int,
        collector: SearchMetricsCollector,
    ) -> SearchResponse:
        enabled = [a.name for a in self.orchestrator.enabled_adapters]
        disabled = [a.name for a in self.orchestrator.adapters if not a.enabled]

        outcomes: List[ProviderCallOutcome] = []
        store_error: Optional[str] = None
        fallback_used: Optional[str] = None
        found = CatalogSearchResult()

        if normalized.is_empty:
            logger.info("[Search] empty query, skipping lookup")
        else:
            category = category_for(request.filters.category)
            attempts = [normalized.normalized] + normalized.fallbacks
            # Ranking runs over the newest matches; widen the window so the requested page is reachable
            window = max(self.max_candidates, request.page * page_size)
            for index, query in enumerate(attempts):
                catalog_filter = self._catalog_filter(query, category, request.filters, window)
                current = await self.store.search(catalog_filter)
                collector.record_query(query, current.count)
                if current.error:
                    store_error = current.error

                enrichment, found = await self.orchestrator.run(query, catalog_filter, current)
                outcomes.extend(enrichment.outcomes)
                if enrichment.store_error:
                    store_error = enrichment.store_error
                if found.error:
                    store_error = found.error

                if found.count > 0:
                    if index > 0:
                        fallback_used = query
                        logger.info(f"[Search] fallback {query!r} matched {found.count} products")
                    break
                if found.error:
                    # Catalog unavailable; further fallbacks would fail the same way
                    break

        ranked = self._rank(found.products, request)
        total = max(found.total, len(ranked))
        start = (request.page - 1) * page_size
        page_items = ranked[start:start + page_size]

        status, provider_status = aggregate_status(
            total,
            outcomes,
            provider_names=enabled,
            disabled_names=disabled,
            store_error=store_error,
        )

        for outcome in outcomes:
            collector.record_provider(
                outcome.provider,
                outcome.error_kind or "ok",
                outcome.payload_count,
                float(outcome.latency_ms or 0),
                ingested_count=outcome.ingested_count,
                error_message=outcome.error_message,
            )
        collector.record_results(
            total,
            len(page_items),
            status,
            fallback_query_used=fallback_used,
            store_error=store_error,
        )

        return SearchResponse(
            status=status,
            provider_status=provider_status,
            products=page_items,
            meta=SearchMeta(
                page=request.page,
                page_size=page_size,
                page_count=math.ceil(total / page_size) if total else 0,
                total_count=total,
                fallback_query_used=fallback_used,
                normalized_query=normalized.normalized,
                category_hint=normalized.category_hint,
                data_status=compute_data_status(outcomes, len(enabled)),
            ),
        )

    def _rank(self, products: Sequence[ProductView], request: SearchRequest) -> List[RankedProduct]:
        location = request.filters.location
        keyed = []
        for product in products:
            best = self.ranker.rank(product.offers, location)
            current_price = best.cheapest.total_price if best.cheapest else None
            deal = self.evaluator.evaluate(product.offers, product.price_history, current_price=current_price)
            ranked = RankedProduct(
                id=product.id,
                name=product.name,
                display_name=product.display_name,
                brand=product.brand,
                category=product.category,
                description=product.description,
                image_url=product.image_url,
                source_name=product.source_name,
                offers=rank_offers_by_total(product.offers),
                best_offers=best,
                deal_info=deal,
            )
            keyed.append((sort_key_for(request.sort, best, product.id), ranked))
        keyed.sort(key=lambda pair: pair[0])
        return [ranked for _, ranked in keyed]
