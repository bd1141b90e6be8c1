"""
Observability infrastructure for the offer search backend.

Provides:
- Structured logging with correlation IDs
- Sentry error tracking
- Prometheus metrics
"""

from .logging import get_logger, correlation_id_context, get_correlation_id, setup_logging
from .metrics import (
    metrics_registry,
    search_provider_duration_seconds,
    search_provider_errors_total,
    search_requests_total,
    enrichment_runs_total,
    catalog_ingested_rows_total,
)

__all__ = [
    "get_logger",
    "correlation_id_context",
    "get_correlation_id",
    "setup_logging",
    "metrics_registry",
    "search_provider_duration_seconds",
    "search_provider_errors_total",
    "search_requests_total",
    "enrichment_runs_total",
    "catalog_ingested_rows_total",
]
