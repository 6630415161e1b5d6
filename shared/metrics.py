"""
Shared metrics configuration for the Catalog Access Layer.
"""

from prometheus_client import Counter, Histogram, Gauge, Info, CollectorRegistry
from typing import Dict, Any, Optional
import threading


class MetricsCollector:
    """Centralized metrics collector for services."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        # Each collector owns its registry so several services (or tests) can coexist
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""

        self._metrics["service_info"] = Info(
            "service_info",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

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
            ["error_type", "service"],
            registry=self.registry
        )

        if self.service_name == "catalog":
            self._setup_catalog_metrics()

    def _setup_catalog_metrics(self):
        """Set up catalog lookup metrics."""
        self._metrics["catalog_lookups_total"] = Counter(
            "catalog_lookups_total",
            "Successful catalog lookups by satisfying path",
            ["source"],
            registry=self.registry
        )

        self._metrics["catalog_lookup_failures_total"] = Counter(
            "catalog_lookup_failures_total",
            "Catalog lookups that failed",
            ["reason"],
            registry=self.registry
        )

        self._metrics["catalog_source_fetch_total"] = Counter(
            "catalog_source_fetch_total",
            "Remote book source fetches by outcome",
            ["outcome"],
            registry=self.registry
        )

        self._metrics["catalog_repository_errors_total"] = Counter(
            "catalog_repository_errors_total",
            "Local store failures by operation",
            ["operation"],
            registry=self.registry
        )

        self._metrics["catalog_write_back_total"] = Counter(
            "catalog_write_back_total",
            "Background write-backs by status",
            ["status"],
            registry=self.registry
        )

        self._metrics["catalog_lookup_duration_seconds"] = Histogram(
            "catalog_lookup_duration_seconds",
            "Catalog lookup duration in seconds",
            ["source"],
            registry=self.registry
        )

        self._metrics["catalog_pending_write_backs"] = Gauge(
            "catalog_pending_write_backs",
            "Write-backs scheduled but not yet finished",
            registry=self.registry
        )

    def get_value(self, sample_name: str, **labels) -> Optional[float]:
        """Read a sample value from this collector's registry."""
        return self.registry.get_sample_value(sample_name, labels or None)

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

    def record_error(self, error_type: str, service: Optional[str] = None):
        """Record error metrics."""
        service_name = service or self.service_name
        self._metrics["errors_total"].labels(error_type=error_type, service=service_name).inc()

    def increment_counter(self, metric_name: str, **labels):
        """Increment a counter metric."""
        metric = self._metrics.get(metric_name)
        if metric is None:
            return
        with self._lock:
            (metric.labels(**labels) if labels else metric).inc()

    def set_gauge(self, metric_name: str, value: float, **labels):
        """Set a gauge metric value."""
        metric = self._metrics.get(metric_name)
        if metric is None:
            return
        (metric.labels(**labels) if labels else metric).set(value)

    def observe_histogram(self, metric_name: str, value: float, **labels):
        """Observe a histogram metric."""
        metric = self._metrics.get(metric_name)
        if metric is None:
            return
        (metric.labels(**labels) if labels else metric).observe(value)


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
