import logging

from fastapi.testclient import TestClient

from supplier_onboarding.main import app
from supplier_onboarding.middleware.correlation import (
    CorrelationIdFilter,
    correlation_id_var,
    propagation_headers,
    resolve_trace_id,
)


def test_correlation_header_is_returned():
    client = TestClient(app)
    response = client.get("/health", headers={"X-Correlation-Id": "corr_test_1"})
    assert response.status_code == 200
    assert response.headers.get("X-Correlation-Id") == "corr_test_1"
    assert response.headers.get("X-Request-Id")
    assert response.headers.get("X-Trace-Id")


def test_legacy_correlation_header_alias_is_supported():
    client = TestClient(app)
    response = client.get("/health", headers={"X-Correlation-ID": "corr_test_legacy"})
    assert response.headers.get("X-Correlation-Id") == "corr_test_legacy"


def test_trace_id_taken_from_valid_traceparent():
    client = TestClient(app)
    trace = "4bf92f3577b34da6a3ce929d0e0e4736"
    response = client.get("/health", headers={"traceparent": f"00-{trace}-00f067aa0ba902b7-01"})
    assert response.headers.get("X-Trace-Id") == trace


def test_trace_id_falls_back_to_x_trace_id_when_traceparent_invalid():
    client = TestClient(app)
    response = client.get(
        "/health",
        headers={"traceparent": "invalid-traceparent", "X-Trace-Id": "trace-from-header"},
    )
    assert response.headers.get("X-Trace-Id") == "trace-from-header"


def test_resolve_trace_id_generates_value_for_invalid_traceparent_without_fallback():
    class _FakeHeaders:
        def __init__(self, values: dict[str, str]):
            self._values = values

        def get(self, key: str):
            return self._values.get(key)

    class _FakeRequest:
        headers = _FakeHeaders({"traceparent": "invalid"})

    assert len(resolve_trace_id(_FakeRequest())) == 32


def test_propagation_headers_use_current_correlation_id():
    token = correlation_id_var.set("corr_ctx")
    try:
        assert propagation_headers()["X-Correlation-Id"] == "corr_ctx"
        assert propagation_headers("corr_explicit")["X-Correlation-Id"] == "corr_explicit"
    finally:
        correlation_id_var.reset(token)


def test_log_records_carry_correlation_id():
    record = logging.LogRecord("test", logging.INFO, __file__, 1, "msg", None, None)
    token = correlation_id_var.set("corr_log")
    try:
        CorrelationIdFilter().filter(record)
    finally:
        correlation_id_var.reset(token)
    assert record.correlation_id == "corr_log"
    assert record.trace_id == "-"
