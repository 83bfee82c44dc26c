"""
Prometheus metrics module for the booking engine.

Booking outcome counters, status transition counters and the booking
duration histogram are recorded by the booking services; service operation
timings are fed by the @measure_operation decorator.
"""

from threading import Lock
from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Custom registry to avoid conflicts with default process metrics
REGISTRY = CollectorRegistry()

bookings_operations_total = Counter(
    "barberbook_bookings_operations_total",
    "Booking operations by outcome",
    ["operation", "result"],
    registry=REGISTRY,
)

bookings_status_transitions_total = Counter(
    "barberbook_bookings_status_transitions_total",
    "Accepted booking status transitions",
    ["from_status", "to_status", "actor"],
    registry=REGISTRY,
)

booking_duration_minutes = Histogram(
    "barberbook_booking_duration_minutes",
    "Scheduled duration of created bookings in minutes",
    registry=REGISTRY,
    buckets=(15, 30, 45, 60, 90, 120, 180, 240, 360, 480),
)

bookings_errors_total = Counter(
    "barberbook_bookings_errors_total",
    "Rejected booking operations by error code",
    ["operation", "error_code"],
    registry=REGISTRY,
)

service_operation_duration_seconds = Histogram(
    "barberbook_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation", "status"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)


class PrometheusMetrics:
    """Manages Prometheus metrics collection and exposure."""

    _cache_lock: Lock = Lock()
    _cache_payload: Optional[bytes] = None

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
    ) -> None:
        """
        Record service operation metrics from @measure_operation decorator.

        Args:
            service: Service name (e.g., 'BookingService')
            operation: Operation/method name (e.g., 'create_booking')
            duration: Operation duration in seconds
            status: Operation status ('success' or 'error')
        """
        service_operation_duration_seconds.labels(
            service=service, operation=operation, status=status
        ).observe(max(duration, 0.0))
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_booking_operation(operation: str, result: str) -> None:
        bookings_operations_total.labels(operation=operation, result=result).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_status_transition(from_status: str, to_status: str, actor: str) -> None:
        bookings_status_transitions_total.labels(
            from_status=from_status, to_status=to_status, actor=actor
        ).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def observe_booking_duration(minutes: float) -> None:
        booking_duration_minutes.observe(max(minutes, 0.0))
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_booking_error(operation: str, error_code: str) -> None:
        bookings_errors_total.labels(operation=operation, error_code=error_code).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def get_metrics() -> bytes:
        """
        Generate Prometheus metrics in exposition format.

        The payload is cached until the next recorded metric.
        """
        with PrometheusMetrics._cache_lock:
            if PrometheusMetrics._cache_payload is None:
                PrometheusMetrics._cache_payload = cast(bytes, generate_latest(REGISTRY))
            return PrometheusMetrics._cache_payload

    @staticmethod
    def get_content_type() -> str:
        """Get the content type for Prometheus metrics."""
        return cast(str, CONTENT_TYPE_LATEST)

    @staticmethod
    def _invalidate_cache() -> None:
        with PrometheusMetrics._cache_lock:
            PrometheusMetrics._cache_payload = None


# Singleton instance
prometheus_metrics = PrometheusMetrics()
