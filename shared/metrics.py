"""
Self-instrumentation for the metrics push gateway.

These are the gateway's own operational metrics, kept in a private
registry so they never mix with the metric files clients push.
"""

from typing import Dict, Any, Optional
import time
from contextlib import contextmanager

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)


class MetricsCollector:
    """Centralized metrics collector for a service."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry or CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common and gateway metrics."""

        self._metrics["service_info"] = Info(
            "service",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        # HTTP metrics
        self._metrics["http_requests_total"] = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry
        )

        self._metrics["http_request_duration_seconds"] = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=self.registry
        )

        self._metrics["health_check_total"] = Counter(
            "health_check_total",
            "Total health check requests",
            ["status"],
            registry=self.registry
        )

        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Total errors",
            ["error_type"],
            registry=self.registry
        )

        # Ingest / read path
        self._metrics["metric_files_ingested_total"] = Counter(
            "metric_files_ingested_total",
            "Total metric files stored",
            registry=self.registry
        )

        self._metrics["aggregation_objects"] = Gauge(
            "aggregation_objects",
            "Objects merged by the most recent aggregation",
            registry=self.registry
        )

        self._metrics["aggregation_duration_seconds"] = Histogram(
            "aggregation_duration_seconds",
            "Time spent aggregating stored metric files",
            registry=self.registry
        )

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Record HTTP request metrics."""
        self._metrics["http_requests_total"].labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        self._metrics["http_request_duration_seconds"].labels(
            method=method,
            endpoint=endpoint
        ).observe(duration)

    def record_health_check(self, status: str):
        """Record health check metrics."""
        self._metrics["health_check_total"].labels(status=status).inc()

    def record_error(self, error_type: str):
        """Record error metrics."""
        self._metrics["errors_total"].labels(error_type=error_type).inc()

    def record_ingest(self):
        self._metrics["metric_files_ingested_total"].inc()

    def record_aggregation(self, object_count: int):
        self._metrics["aggregation_objects"].set(object_count)

    @contextmanager
    def time_aggregation(self):
        """Context manager to time an aggregation."""
        start_time = time.time()
        try:
            yield
        finally:
            self._metrics["aggregation_duration_seconds"].observe(time.time() - start_time)

    def export(self) -> bytes:
        """Render the registry in Prometheus text format."""
        return generate_latest(self.registry)


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
