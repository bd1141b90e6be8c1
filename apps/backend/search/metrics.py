"""Search pipeline observability.

One ``SearchMetricsCollector`` is created per request; it accumulates
provider outcomes and result counts and emits a single structured
``search_complete`` log line when the tracked block exits.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import List, Optional

logger = logging.getLogger("search.metrics")


@dataclass
class ProviderMetrics:
    """Metrics for a single provider call."""
    provider: str
    status: str  # ok, timeout, network_error, http_error, parse_error, config_missing, unknown
    result_count: int
    ingested_count: int
    latency_ms: float
    error_message: Optional[str] = None


@dataclass
class SearchMetrics:
    """Aggregated metrics for one search request."""
    query: str = ""
    fallback_query_used: Optional[str] = None
    catalog_results: int = 0
    total_results: int = 0
    returned_results: int = 0
    queries_attempted: int = 0
    providers_called: int = 0
    providers_succeeded: int = 0
    providers_failed: int = 0
    store_error: Optional[str] = None
    status: str = ""
    total_latency_ms: float = 0.0
    provider_metrics: List[ProviderMetrics] = field(default_factory=list)

    def success_rate(self) -> float:
        if self.providers_called == 0:
            return 0.0
        return self.providers_succeeded / self.providers_called

    def has_results(self) -> bool:
        return self.total_results > 0


class SearchMetricsCollector:
    """Collector for a single search operation."""

    def __init__(self):
        self._current: Optional[SearchMetrics] = None
        self._start_time: Optional[float] = None

    @contextmanager
    def track_search(self, query: str = ""):
        self._current = SearchMetrics(query=query)
        self._start_time = time.perf_counter()
        try:
            yield self._current
        finally:
            if self._current and self._start_time is not None:
                self._current.total_latency_ms = (time.perf_counter() - self._start_time) * 1000
                self._log_metrics()
            self._current = None
            self._start_time = None

    def record_query(self, query: str, catalog_results: int):
        """Record one attempted query (primary or fallback) and its pre-enrichment count."""
        if not self._current:
            return
        self._current.queries_attempted += 1
        if self._current.queries_attempted == 1:
            self._current.catalog_results = catalog_results

    def record_provider(
        self,
        provider: str,
        status: str,
        result_count: int,
        latency_ms: float,
        ingested_count: int = 0,
        error_message: Optional[str] = None,
    ):
        if not self._current:
            return
        self._current.provider_metrics.append(
            ProviderMetrics(
                provider=provider,
                status=status,
                result_count=result_count,
                ingested_count=ingested_count,
                latency_ms=latency_ms,
                error_message=error_message,
            )
        )
        self._current.providers_called += 1
        if status == "ok":
            self._current.providers_succeeded += 1
        else:
            self._current.providers_failed += 1

    def record_results(
        self,
        total: int,
        returned: int,
        status: str,
        fallback_query_used: Optional[str] = None,
        store_error: Optional[str] = None,
    ):
        if not self._current:
            return
        self._current.total_results = total
        self._current.returned_results = returned
        self._current.status = status
        self._current.fallback_query_used = fallback_query_used
        self._current.store_error = store_error

    def _log_metrics(self):
        m = self._current
        if not m:
            return

        provider_summary = [
            {
                "id": pm.provider,
                "status": pm.status,
                "results": pm.result_count,
                "ingested": pm.ingested_count,
                "latency_ms": round(pm.latency_ms, 1),
            }
            for pm in m.provider_metrics
        ]

        log_data = {
            "event": "search_complete",
            "query_length": len(m.query),
            "status": m.status,
            "fallback_query_used": m.fallback_query_used,
            "queries_attempted": m.queries_attempted,
            "results": {
                "catalog": m.catalog_results,
                "total": m.total_results,
                "returned": m.returned_results,
            },
            "providers": {
                "called": m.providers_called,
                "succeeded": m.providers_succeeded,
                "failed": m.providers_failed,
                "success_rate": round(m.success_rate(), 2),
                "details": provider_summary,
            },
            "store_error": m.store_error,
            "latency_ms": round(m.total_latency_ms, 1),
            "success": m.has_results(),
        }

        if m.store_error:
            logger.error("Search completed with catalog failure", extra=log_data)
        elif m.providers_failed == m.providers_called and m.providers_called > 0:
            logger.error("Search enrichment failed - all providers failed", extra=log_data)
        elif m.providers_failed > 0:
            logger.warning("Search completed with provider failures", extra=log_data)
        elif not m.has_results():
            logger.warning("Search completed but no results", extra=log_data)
        else:
            logger.info("Search completed successfully", extra=log_data)
