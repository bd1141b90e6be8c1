"""
Prometheus metrics for the offer search backend.

HTTP RED metrics plus pipeline metrics for providers, enrichment and ingestion.
"""

from prometheus_client import Counter, Gauge, Histogram, REGISTRY

metrics_registry = REGISTRY

# HTTP
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
    registry=metrics_registry,
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=metrics_registry,
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests in progress",
    ["method", "endpoint"],
    registry=metrics_registry,
)

# Search providers
search_provider_duration_seconds = Histogram(
    "search_provider_duration_seconds",
    "Search provider call duration in seconds",
    ["provider"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
    registry=metrics_registry,
)

search_provider_errors_total = Counter(
    "search_provider_errors_total",
    "Total search provider errors",
    ["provider", "error_type"],
    registry=metrics_registry,
)

# Pipeline
search_requests_total = Counter(
    "search_requests_total",
    "Search requests by final status",
    ["status"],
    registry=metrics_registry,
)

enrichment_runs_total = Counter(
    "enrichment_runs_total",
    "Enrichment evaluations by terminal state",
    ["state"],
    registry=metrics_registry,
)

catalog_ingested_rows_total = Counter(
    "catalog_ingested_rows_total",
    "Listings processed by the ingestion engine",
    ["result"],  # created, updated, failed
    registry=metrics_registry,
)
