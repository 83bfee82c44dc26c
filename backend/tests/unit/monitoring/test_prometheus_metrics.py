# backend/tests/unit/monitoring/test_prometheus_metrics.py
from barberbook.monitoring.prometheus_metrics import REGISTRY, PrometheusMetrics, prometheus_metrics


def _value(name, labels=None):
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


def test_booking_operation_counter():
    labels = {"operation": "create", "result": "error"}
    before = _value("barberbook_bookings_operations_total", labels)

    prometheus_metrics.record_booking_operation("create", "error")

    assert _value("barberbook_bookings_operations_total", labels) == before + 1


def test_error_counter_by_code():
    labels = {"operation": "update", "error_code": "TOO_EARLY"}
    before = _value("barberbook_bookings_errors_total", labels)

    prometheus_metrics.record_booking_error("update", "TOO_EARLY")

    assert _value("barberbook_bookings_errors_total", labels) == before + 1


def test_duration_histogram_clamps_negative_values():
    before_count = _value("barberbook_booking_duration_minutes_count")
    before_sum = _value("barberbook_booking_duration_minutes_sum")

    prometheus_metrics.observe_booking_duration(-5)

    assert _value("barberbook_booking_duration_minutes_count") == before_count + 1
    assert _value("barberbook_booking_duration_minutes_sum") == before_sum


def test_exposition_payload_is_refreshed_after_recording():
    first = prometheus_metrics.get_metrics()
    prometheus_metrics.record_status_transition("pending", "confirmed", "admin")
    second = prometheus_metrics.get_metrics()

    assert b"barberbook_bookings_status_transitions_total" in second
    assert first != second
    assert PrometheusMetrics.get_content_type().startswith("text/plain")
