"""Tests for search pipeline observability metrics."""

import logging

from search.metrics import ProviderMetrics, SearchMetrics, SearchMetricsCollector


class TestSearchMetrics:
    """Tests for SearchMetrics dataclass."""

    def test_success_rate_with_all_succeeded(self):
        metrics = SearchMetrics(providers_called=3, providers_succeeded=3)
        assert metrics.success_rate() == 1.0

    def test_success_rate_with_partial_failure(self):
        metrics = SearchMetrics(providers_called=4, providers_succeeded=2, providers_failed=2)
        assert metrics.success_rate() == 0.5

    def test_success_rate_with_no_providers(self):
        assert SearchMetrics(providers_called=0).success_rate() == 0.0

    def test_has_results(self):
        assert SearchMetrics(total_results=5).has_results() is True
        assert SearchMetrics(total_results=0).has_results() is False


class TestProviderMetrics:
    def test_provider_metrics_with_error(self):
        pm = ProviderMetrics(
            provider="realstore",
            status="timeout",
            result_count=0,
            ingested_count=0,
            latency_ms=100.0,
            error_message="Read timed out",
        )
        assert pm.status == "timeout"
        assert pm.error_message == "Read timed out"


class TestSearchMetricsCollector:
    """Tests for SearchMetricsCollector."""

    def test_track_search_context_manager(self):
        collector = SearchMetricsCollector()

        with collector.track_search(query="laptop") as metrics:
            assert metrics.query == "laptop"
            collector.record_query("laptop", 3)
            collector.record_query("lapto", 7)
            collector.record_provider("static", "ok", 5, 12.0, ingested_count=5)
            collector.record_provider("dummyjson", "timeout", 0, 8000.0, error_message="timed out")
            collector.record_results(8, 8, "ok-db-only", fallback_query_used="lapto")

        assert metrics.queries_attempted == 2
        assert metrics.catalog_results == 3
        assert metrics.providers_called == 2
        assert metrics.providers_succeeded == 1
        assert metrics.providers_failed == 1
        assert metrics.total_results == 8
        assert metrics.fallback_query_used == "lapto"
        assert metrics.total_latency_ms > 0

    def test_recording_outside_tracking_is_ignored(self):
        collector = SearchMetricsCollector()
        collector.record_query("laptop", 3)
        collector.record_provider("static", "ok", 5, 12.0)
        collector.record_results(5, 5, "ok")

    def test_logs_success_at_info(self, caplog):
        collector = SearchMetricsCollector()

        with caplog.at_level(logging.INFO, logger="search.metrics"):
            with collector.track_search(query="laptop"):
                collector.record_provider("static", "ok", 3, 5.0)
                collector.record_results(3, 3, "ok")

        record = caplog.records[-1]
        assert record.levelno == logging.INFO
        assert record.event == "search_complete"
        assert record.providers["details"][0]["id"] == "static"
        assert record.success is True

    def test_logs_all_providers_failed_at_error(self, caplog):
        collector = SearchMetricsCollector()

        with caplog.at_level(logging.INFO, logger="search.metrics"):
            with collector.track_search(query="laptop"):
                collector.record_provider("dummyjson", "http_error", 0, 5.0, error_message="503")
                collector.record_results(0, 0, "no-results")

        assert caplog.records[-1].levelno == logging.ERROR

    def test_logs_partial_failure_at_warning(self, caplog):
        collector = SearchMetricsCollector()

        with caplog.at_level(logging.INFO, logger="search.metrics"):
            with collector.track_search(query="laptop"):
                collector.record_provider("static", "ok", 3, 5.0)
                collector.record_provider("dummyjson", "timeout", 0, 5.0)
                collector.record_results(3, 3, "ok-db-only")

        assert caplog.records[-1].levelno == logging.WARNING

    def test_logs_catalog_failure_at_error(self, caplog):
        collector = SearchMetricsCollector()

        with caplog.at_level(logging.INFO, logger="search.metrics"):
            with collector.track_search(query="laptop"):
                collector.record_results(0, 0, "error", store_error="OperationalError: db down")

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert record.store_error == "OperationalError: db down"
