"""
Observability Middleware

Per-request tracing and structured access logging. Once a route has
authenticated the caller, the user id and role are attached to the active
span and to the access log line so credit movements can be traced back to
the request that caused them.
"""

import time
import logging
from flask import Flask, request, g
from opentelemetry import trace
from opentelemetry.instrumentation.flask import FlaskInstrumentor

logger = logging.getLogger(__name__)

# Health probes are polled constantly; keep them out of the access log
QUIET_PATHS = frozenset({"/api/healthz"})


def _caller_fields():
    user_context = g.get('user_context')
    if user_context is None:
        return {"user_id": None, "user_type": None}
    return {"user_id": user_context.user_id, "user_type": user_context.user_type}


def add_observability_middleware(app: Flask, instrument: bool = True):
    """Attach tracing and access logging to ``app``.

    ``instrument`` is False when tracing is disabled, so tests and local
    runs do not install the Flask instrumentor.
    """
    if instrument:
        FlaskInstrumentor().instrument_app(app)

    @app.before_request
    def start_request_timer():
        g.start_time = time.perf_counter()
        g.trace_id = None

        span = trace.get_current_span()
        if span.is_recording():
            g.trace_id = format(span.get_span_context().trace_id, "032x")
            span.set_attributes({
                "http.method": request.method,
                "http.target": request.path,
                "http.user_agent": request.headers.get("User-Agent", ""),
            })

    @app.after_request
    def log_request(response):
        duration_ms = round((time.perf_counter() - g.get('start_time', time.perf_counter())) * 1000, 2)
        caller = _caller_fields()

        span = trace.get_current_span()
        if span.is_recording():
            span.set_attribute("http.status_code", response.status_code)
            span.set_attribute("http.duration_ms", duration_ms)
            if caller["user_id"]:
                span.set_attribute("user.id", caller["user_id"])
                span.set_attribute("user.type", caller["user_type"])

        if request.path not in QUIET_PATHS:
            level = logging.ERROR if response.status_code >= 500 else logging.INFO
            logger.log(
                level,
                f"{request.method} {request.path} -> {response.status_code}",
                extra={
                    "extra_fields": {
                        "method": request.method,
                        "path": request.path,
                        "status_code": response.status_code,
                        "duration_ms": duration_ms,
                        "trace_id": g.get('trace_id'),
                        **caller,
                    }
                }
            )

        if g.get('trace_id'):
            response.headers['X-Trace-Id'] = g.trace_id

        return response
