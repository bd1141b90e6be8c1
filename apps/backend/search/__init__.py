"""Search pipeline stages and the service that wires them together."""

from search.deals import DealEvaluator, DealInfo
from search.enrichment import EnrichmentOrchestrator, EnrichmentResult, EnrichmentState
from search.query import NormalizedQuery, QueryNormalizer, normalize_query
from search.ranking import BestOfferRanker, BestOffers, RankedOffer
from search.service import (
    RankedProduct,
    SearchFilters,
    SearchMeta,
    SearchRequest,
    SearchResponse,
    SearchService,
)
from search.status import aggregate_status, compute_data_status

__all__ = [
    "BestOfferRanker",
    "BestOffers",
    "DealEvaluator",
    "DealInfo",
    "EnrichmentOrchestrator",
    "EnrichmentResult",
    "EnrichmentState",
    "NormalizedQuery",
    "QueryNormalizer",
    "RankedOffer",
    "RankedProduct",
    "SearchFilters",
    "SearchMeta",
    "SearchRequest",
    "SearchResponse",
    "SearchService",
    "aggregate_status",
    "compute_data_status",
    "normalize_query",
]
