"""Adapter executors with timeout and outcome instrumentation."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import List, Tuple

from observability.metrics import search_provider_duration_seconds, search_provider_errors_total
from providers.base import ProviderAdapter
from providers.models import NormalizedListing, ProviderCallOutcome

logger = logging.getLogger(__name__)


async def run_adapter_with_outcome(
    adapter: ProviderAdapter,
    query: str,
    *,
    timeout_seconds: float = 8.0,
) -> Tuple[List[NormalizedListing], ProviderCallOutcome]:
    started = time.monotonic()
    try:
        result = await asyncio.wait_for(adapter.search(query), timeout=timeout_seconds)
    except asyncio.TimeoutError:
        elapsed = time.monotonic() - started
        search_provider_duration_seconds.labels(provider=adapter.name).observe(elapsed)
        search_provider_errors_total.labels(provider=adapter.name, error_type="timeout").inc()
        logger.warning(f"[{adapter.name}] Search timed out after {timeout_seconds}s")
        return [], ProviderCallOutcome(
            provider=adapter.name,
            error_kind="timeout",
            error_message=f"Search timed out after {timeout_seconds}s",
            latency_ms=int(elapsed * 1000),
        )

    elapsed = time.monotonic() - started
    search_provider_duration_seconds.labels(provider=adapter.name).observe(elapsed)
    outcome = ProviderCallOutcome(
        provider=adapter.name,
        payload_count=result.payload_count,
        latency_ms=int(elapsed * 1000),
    )
    if result.error is not None:
        search_provider_errors_total.labels(provider=adapter.name, error_type=result.error.kind).inc()
        outcome.error_kind = result.error.kind
        outcome.error_message = result.error.message
    return result.listings, outcome
