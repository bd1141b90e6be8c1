"""Pure reductions from per-call outcomes to response-level status.

Nothing here performs I/O, so every rule can be checked against a table of
outcome combinations.
"""

from __future__ import annotations

from typing import Dict, Literal, Optional, Sequence, Tuple

from providers.models import ProviderCallOutcome

SearchStatus = Literal["ok", "ok-db-only", "no-results", "error"]
DataStatus = Literal["ok", "partial", "provider_timeout", "provider_error", "no_providers"]
SourceStatus = Literal["ok", "error", "disabled"]

CATALOG_SOURCE = "catalog"


def compute_data_status(outcomes: Sequence[ProviderCallOutcome], enabled_count: int) -> DataStatus:
    if enabled_count == 0:
        return "no_providers"
    failed = [o for o in outcomes if o.failed]
    if outcomes and len(failed) == len(outcomes):
        if any(o.timed_out for o in failed):
            return "provider_timeout"
        return "provider_error"
    if failed:
        return "partial"
    return "ok"


def aggregate_status(
    total_count: int,
    outcomes: Sequence[ProviderCallOutcome],
    *,
    provider_names: Sequence[str] = (),
    disabled_names: Sequence[str] = (),
    store_error: Optional[str] = None,
) -> Tuple[SearchStatus, Dict[str, SourceStatus]]:
    """Reduce catalog health and provider outcomes to ``(status, provider_status)``.

    - 0 results: ``no-results``, or ``error`` when the catalog itself failed
    - any provider error or timeout: ``ok-db-only``
    - otherwise ``ok``

    A provider appearing in several outcomes (one enrichment per attempted
    query) is ``error`` if any of its calls failed.
    """
    provider_status: Dict[str, SourceStatus] = {CATALOG_SOURCE: "error" if store_error else "ok"}
    for name in provider_names:
        provider_status[name] = "ok"
    for name in disabled_names:
        provider_status[name] = "disabled"
    for outcome in outcomes:
        if outcome.failed:
            provider_status[outcome.provider] = "error"
        else:
            provider_status.setdefault(outcome.provider, "ok")

    if total_count == 0:
        status: SearchStatus = "error" if store_error else "no-results"
    elif any(o.failed for o in outcomes):
        status = "ok-db-only"
    else:
        status = "ok"
    return status, provider_status
