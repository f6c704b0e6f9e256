"""
Metrics Collection with Prometheus.

Exposes workflow and HTTP metrics for monitoring.
"""

from enum import Enum

from prometheus_client import Counter, Gauge, Histogram, Info

from app.config import settings


class MetricLabels(str, Enum):
    """Standard metric label names."""

    ENDPOINT = "endpoint"
    METHOD = "method"
    STATUS_CODE = "status_code"
    OPERATION = "operation"
    OUTCOME = "outcome"
    ERROR_TYPE = "error_type"


class SalesBoardMetrics:
    """
    Centralized metrics for the SalesBoard API.

    - HTTP requests (rate, duration, errors)
    - Sale submissions by outcome (created, invalid, brand missing, cap reached)
    - Moderation decisions
    - Engagement counter updates
    """

    def __init__(self) -> None:
        self.service_info = Info(
            "salesboard_service",
            "Service information",
        )
        self.service_info.info(
            {
                "version": settings.api_version,
                "service_name": settings.service_name,
            }
        )

        # ====================================================================
        # HTTP Metrics
        # ====================================================================
        self.http_requests_total = Counter(
            "salesboard_http_requests_total",
            "Total HTTP requests",
            [MetricLabels.ENDPOINT, MetricLabels.METHOD, MetricLabels.STATUS_CODE],
        )

        self.http_request_duration_seconds = Histogram(
            "salesboard_http_request_duration_seconds",
            "HTTP request duration in seconds",
            [MetricLabels.ENDPOINT, MetricLabels.METHOD],
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
        )

        self.http_requests_in_progress = Gauge(
            "salesboard_http_requests_in_progress",
            "Number of HTTP requests currently being processed",
            [MetricLabels.ENDPOINT, MetricLabels.METHOD],
        )

        # ====================================================================
        # Workflow Metrics
        # ====================================================================
        self.sale_submissions_total = Counter(
            "salesboard_sale_submissions_total",
            "Sale submissions by outcome",
            [MetricLabels.OUTCOME],
        )

        self.moderation_decisions_total = Counter(
            "salesboard_moderation_decisions_total",
            "Admin moderation decisions",
            ["decision"],
        )

        self.counter_updates_total = Counter(
            "salesboard_counter_updates_total",
            "View/favorite counter updates",
            ["counter", "direction"],
        )

        # ====================================================================
        # Error Metrics
        # ====================================================================
        self.errors_total = Counter(
            "salesboard_errors_total",
            "Total errors by type",
            [MetricLabels.ERROR_TYPE, MetricLabels.OPERATION],
        )

    def record_http_request(
        self, endpoint: str, method: str, status_code: int, duration: float
    ) -> None:
        """Record HTTP request metrics."""
        self.http_requests_total.labels(
            endpoint=endpoint, method=method, status_code=status_code
        ).inc()
        self.http_request_duration_seconds.labels(endpoint=endpoint, method=method).observe(
            duration
        )

    def record_sale_submission(self, outcome: str) -> None:
        self.sale_submissions_total.labels(outcome=outcome).inc()

    def record_moderation(self, decision: str) -> None:
        self.moderation_decisions_total.labels(decision=decision).inc()

    def record_counter_update(self, counter: str, direction: str) -> None:
        self.counter_updates_total.labels(counter=counter, direction=direction).inc()

    def record_error(self, error_type: str, operation: str) -> None:
        """Record error occurrence."""
        self.errors_total.labels(error_type=error_type, operation=operation).inc()


# Global metrics instance
metrics = SalesBoardMetrics()
