"""On-demand enrichment: fetch from providers when the catalog has too little.

Per request the orchestrator moves through
``evaluating -> (skipped | calling) -> ingesting -> done``:

- evaluating: skip when the query is shorter than 2 characters or the
  catalog already returned at least ``threshold`` products.
- calling: every enabled adapter is called concurrently, each under its own
  timeout, and all of them under one overall deadline. Each call yields a
  ``ProviderCallOutcome`` whether it succeeded or not.
- ingesting: each adapter's listings (capped to ``max_products_per_provider``
  products) are merged into the catalog.
- done: the catalog is searched again with the same filters.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from catalog.ingestion import merge_key_for
from catalog.schemas import CatalogFilter, CatalogSearchResult
from catalog.store import CatalogStore
from observability.metrics import enrichment_runs_total
from providers.base import ProviderAdapter
from providers.executors import run_adapter_with_outcome
from providers.models import NormalizedListing, ProviderCallOutcome
from search.status import DataStatus, compute_data_status

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2


class EnrichmentState(str, Enum):
    EVALUATING = "evaluating"
    SKIPPED = "skipped"
    CALLING = "calling"
    INGESTING = "ingesting"
    DONE = "done"


class EnrichmentResult(BaseModel):
    query: str
    state: EnrichmentState = EnrichmentState.EVALUATING
    skip_reason: Optional[str] = None
    total_before: int = 0
    total_after: int = 0
    ingested_count: int = 0
    outcomes: List[ProviderCallOutcome] = Field(default_factory=list)
    data_status: DataStatus = "ok"
    had_timeout: bool = False
    had_error: bool = False
    store_error: Optional[str] = None


def cap_listings(listings: Sequence[NormalizedListing], max_products: int) -> List[NormalizedListing]:
    """Keep listings for at most ``max_products`` distinct products, in upstream order."""
    kept: List[NormalizedListing] = []
    products: set = set()
    for listing in listings:
        key = merge_key_for(listing)
        if key not in products:
            if len(products) >= max_products:
                continue
            products.add(key)
        kept.append(listing)
    return kept


class EnrichmentOrchestrator:
    def __init__(
        self,
        store: CatalogStore,
        adapters: Sequence[ProviderAdapter],
        *,
        threshold: int = 10,
        max_products_per_provider: int = 20,
        provider_timeout_seconds: float = 8.0,
        deadline_seconds: float = 15.0,
    ):
        self.store = store
        self.adapters = list(adapters)
        self.threshold = threshold
        self.max_products_per_provider = max_products_per_provider
        self.provider_timeout_seconds = provider_timeout_seconds
        self.deadline_seconds = deadline_seconds

    @property
    def enabled_adapters(self) -> List[ProviderAdapter]:
        return [adapter for adapter in self.adapters if adapter.enabled]

    def should_enrich(self, query: str, current_count: int) -> Tuple[bool, Optional[str]]:
        if len(query.strip()) < MIN_QUERY_LENGTH:
            return False, "query_too_short"
        if current_count >= self.threshold:
            return False, "enough_results"
        return True, None

    async def run(
        self,
        query: str,
        filters: CatalogFilter,
        current: CatalogSearchResult,
    ) -> Tuple[EnrichmentResult, CatalogSearchResult]:
        result = EnrichmentResult(query=query, total_before=current.count, total_after=current.count)

        if current.error:
            needed, reason = False, "catalog_error"
        else:
            needed, reason = self.should_enrich(query, current.count)
        if not needed:
            result.state = EnrichmentState.SKIPPED
            result.skip_reason = reason
            result.data_status = compute_data_status([], len(self.enabled_adapters))
            enrichment_runs_total.labels(state=result.state.value).inc()
            logger.info(f"[Enrichment] skipped query={query!r} count={current.count} reason={reason}")
            return result, current

        result.state = EnrichmentState.CALLING
        adapters = self.enabled_adapters
        collected = await self._call_adapters(adapters, query)
        result.outcomes = [outcome for _, outcome in collected]

        result.state = EnrichmentState.INGESTING
        for listings, outcome in collected:
            if not listings:
                continue
            capped = cap_listings(listings, self.max_products_per_provider)
            upserted = await self.store.upsert(capped)
            outcome.ingested_count = upserted.count
            result.ingested_count += upserted.count
            if upserted.error:
                logger.error(f"[Enrichment] stopping ingestion for query={query!r}: {upserted.error}")
                result.store_error = upserted.error
                break

        after = await self.store.search(filters)
        result.state = EnrichmentState.DONE
        result.total_after = after.count
        result.data_status = compute_data_status(result.outcomes, len(adapters))
        result.had_timeout = any(o.timed_out for o in result.outcomes)
        result.had_error = any(o.failed for o in result.outcomes)
        enrichment_runs_total.labels(state=result.state.value).inc()

        logger.info(
            f"[Enrichment] query={query!r} before={result.total_before} after={result.total_after} "
            f"ingested={result.ingested_count} data_status={result.data_status}",
            extra={"providers": [o.model_dump() for o in result.outcomes]},
        )
        return result, after

    async def _call_adapters(
        self, adapters: Sequence[ProviderAdapter], query: str
    ) -> List[Tuple[List[NormalizedListing], ProviderCallOutcome]]:
        if not adapters:
            return []

        tasks: Dict[asyncio.Task, ProviderAdapter] = {
            asyncio.ensure_future(
                run_adapter_with_outcome(adapter, query, timeout_seconds=self.provider_timeout_seconds)
            ): adapter
            for adapter in adapters
        }
        _, pending = await asyncio.wait(tasks.keys(), timeout=self.deadline_seconds)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        collected: List[Tuple[List[NormalizedListing], ProviderCallOutcome]] = []
        for task, adapter in tasks.items():
            if task in pending:
                outcome = ProviderCallOutcome(
                    provider=adapter.name,
                    error_kind="timeout",
                    error_message=f"Cancelled at enrichment deadline ({self.deadline_seconds}s)",
                )
                collected.append(([], outcome))
                continue
            exc = task.exception()
            if exc is not None:
                logger.error(f"[Enrichment] executor for {adapter.name} raised {type(exc).__name__}: {exc}")
                collected.append(
                    ([], ProviderCallOutcome(provider=adapter.name, error_kind="unknown", error_message=str(exc)[:200]))
                )
                continue
            collected.append(task.result())

        return collected
