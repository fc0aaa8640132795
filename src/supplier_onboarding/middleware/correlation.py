import logging
import re
from contextvars import ContextVar
from uuid import uuid4

from fastapi import Request

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")
request_id_var: ContextVar[str] = ContextVar("request_id", default="")
trace_id_var: ContextVar[str] = ContextVar("trace_id", default="")

_TRACEPARENT = re.compile(r"^[0-9a-f]{2}-([0-9a-f]{32})-[0-9a-f]{16}-[0-9a-f]{2}$")
_LOG_FORMAT = (
    "%(asctime)s %(levelname)s %(name)s "
    "[correlation_id=%(correlation_id)s trace_id=%(trace_id)s] %(message)s"
)


def resolve_correlation_id(request: Request) -> str:
    incoming = request.headers.get("X-Correlation-Id") or request.headers.get("X-Correlation-ID")
    return incoming if incoming else f"corr_{uuid4().hex[:12]}"


def resolve_trace_id(request: Request) -> str:
    traceparent = request.headers.get("traceparent")
    if traceparent:
        match = _TRACEPARENT.match(traceparent.strip().lower())
        if match:
            return match.group(1)
    fallback = request.headers.get("X-Trace-Id")
    return fallback if fallback else uuid4().hex


def propagation_headers(correlation_id: str | None = None) -> dict[str, str]:
    headers = {"X-Correlation-Id": correlation_id or correlation_id_var.get()}
    if request_id_var.get():
        headers["X-Request-Id"] = request_id_var.get()
    if trace_id_var.get():
        headers["X-Trace-Id"] = trace_id_var.get()
    return headers


class CorrelationIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get() or "-"
        record.trace_id = trace_id_var.get() or "-"
        return True


def setup_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if any(isinstance(f, CorrelationIdFilter) for h in root.handlers for f in h.filters):
        return
    handler = logging.StreamHandler()
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(level.upper())


async def correlation_middleware(request: Request, call_next):
    correlation_id = resolve_correlation_id(request)
    request_id = f"req_{uuid4().hex[:12]}"
    trace_id = resolve_trace_id(request)
    correlation_token = correlation_id_var.set(correlation_id)
    request_token = request_id_var.set(request_id)
    trace_token = trace_id_var.set(trace_id)
    try:
        response = await call_next(request)
    finally:
        correlation_id_var.reset(correlation_token)
        request_id_var.reset(request_token)
        trace_id_var.reset(trace_token)
    response.headers["X-Correlation-Id"] = correlation_id
    response.headers["X-Request-Id"] = request_id
    response.headers["X-Trace-Id"] = trace_id
    return response
