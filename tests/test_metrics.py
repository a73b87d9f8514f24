from __future__ import annotations

from fluenthttp.metrics import metrics_payload, record_request, request_count


def test_record_request_increments_counter():
    before = request_count("OPTIONS", "success")

    record_request("OPTIONS", "success", 0.2)

    assert request_count("OPTIONS", "success") == before + 1


def test_metrics_payload_exposes_registry():
    record_request("GET", "error", 0.01)

    payload, content_type = metrics_payload()

    assert b"fluenthttp_requests_total" in payload
    assert b"fluenthttp_request_duration_seconds" in payload
    assert content_type.startswith("text/plain")
