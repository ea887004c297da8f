"""
Metrics context
---------------

Prometheus instruments for one service instance, living in their own
CollectorRegistry. Created once at startup and handed to the API middleware
and the metrics server; nothing is registered on the process-global registry.
"""

from __future__ import annotations

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest

from utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.METRICS)

# Product metric outcomes
SUCCESS = "success"
MALFORMED = "malformed"
REJECTED = "rejected"

REQUEST_LABELS = ("method", "host", "tls")
RESPONSE_LABELS = REQUEST_LABELS + ("status_code",)

DURATION_BUCKETS_MS = (1, 5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000)


class MetricsContext:
    """HTTP request and product metrics backed by a private registry."""

    def __init__(self, service_name: str = "build-submodule-demo", registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self._registry = registry or CollectorRegistry()

        self._request_started = Counter(
            "http_request_started",
            "Total number of http requests started.",
            REQUEST_LABELS,
            registry=self._registry,
        )
        self._request_completed = Counter(
            "http_request_completed",
            "Total number of http requests completed.",
            RESPONSE_LABELS,
            registry=self._registry,
        )
        self._request_duration = Histogram(
            "http_request_duration_ms",
            "Time between receiving and responding to an http request.",
            RESPONSE_LABELS,
            buckets=DURATION_BUCKETS_MS,
            registry=self._registry,
        )
        self._product_metric_submitted = Counter(
            "prodmetric_submitted",
            "Total number of product metrics submitted.",
            ("account", "repository", "success"),
            registry=self._registry,
        )
        self._service_info = Gauge(
            "service_info",
            "Service metadata.",
            ("service_name",),
            registry=self._registry,
        )
        self._service_info.labels(service_name=service_name).set(1)

        log.debug(f"Metrics context created for {service_name}")

    # ----------------------------------------------------------------------
    # HTTP
    # ----------------------------------------------------------------------
    def request_started(self, method: str, host: str, tls: bool) -> None:
        self._request_started.labels(method=method, host=host, tls=_flag(tls)).inc()

    def request_completed(self, method: str, host: str, tls: bool, status_code: int, duration_ms: float) -> None:
        labels = dict(method=method, host=host, tls=_flag(tls), status_code=str(status_code))
        self._request_completed.labels(**labels).inc()
        self._request_duration.labels(**labels).observe(duration_ms)

    # ----------------------------------------------------------------------
    # PRODUCT
    # ----------------------------------------------------------------------
    def product_metric_submit(self, account: str, repository: str, success: bool) -> None:
        """Record a product metric submission."""
        self._product_metric_submitted.labels(
            account=account, repository=repository, success=_flag(success)
        ).inc()

    # ----------------------------------------------------------------------
    # EXPORT
    # ----------------------------------------------------------------------
    @property
    def registry(self) -> CollectorRegistry:
        """Expose the Prometheus registry for HTTP export."""
        return self._registry

    def render(self) -> bytes:
        """Current metrics in the Prometheus text format."""
        return generate_latest(self._registry)

    def sample(self, name: str, **labels: str) -> Optional[float]:
        """Current value of one sample, None if it was never recorded."""
        return self._registry.get_sample_value(name, labels)


def _flag(value: bool) -> str:
    return "true" if value else "false"
