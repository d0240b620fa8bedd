"""
OpenTelemetry Configuration

Sets up distributed tracing and structured JSON logging for the volunteer
portal API.
"""

import os
import json
import logging
from datetime import datetime, timezone
from typing import Optional
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

SERVICE_NAME = 'volunteer-portal-api'

# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED_RECORD_ATTRS = frozenset(vars(logging.LogRecord('', 0, '', 0, '', (), None))) | {'message', 'asctime'}

_tracing_configured = False
_logging_configured = False


class StructuredFormatter(logging.Formatter):
    """Render log records as single-line JSON with trace correlation."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            entry['trace_id'] = format(span_context.trace_id, '032x')
            entry['span_id'] = format(span_context.span_id, '016x')

        for key, value in vars(record).items():
            if key in _RESERVED_RECORD_ATTRS or key.startswith('_'):
                continue
            if key == 'extra_fields' and isinstance(value, dict):
                entry.update(value)
            else:
                entry[key] = value

        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_observability(environment: Optional[str] = None, otel_enabled: Optional[bool] = None) -> bool:
    """
    Initialize OpenTelemetry instrumentation based on environment configuration.

    Safe to call more than once; the tracer provider is installed on the
    first enabled call only. Returns whether tracing is active.
    """
    global _tracing_configured

    environment = environment or os.getenv('ENVIRONMENT', 'development')
    if otel_enabled is None:
        otel_enabled = os.getenv('OTEL_ENABLED', 'true').lower() == 'true'
    service_version = os.getenv('SERVICE_VERSION', '1.0.0')

    setup_structured_logging(environment)

    if not otel_enabled:
        return False
    if _tracing_configured:
        return True

    # Environment-specific sampling
    if environment == 'production':
        sampler = TraceIdRatioBased(0.1)  # 10% sampling in production
    elif environment == 'staging':
        sampler = TraceIdRatioBased(0.5)  # 50% sampling in staging
    else:
        sampler = TraceIdRatioBased(1.0)  # 100% sampling in development

    resource = Resource.create({
        "service.name": SERVICE_NAME,
        "service.version": service_version,
        "deployment.environment": environment
    })

    tracer_provider = TracerProvider(
        sampler=sampler,
        resource=resource
    )

    otlp_endpoint = os.getenv('OTEL_EXPORTER_OTLP_ENDPOINT')
    if otlp_endpoint:
        headers = None
        if os.getenv('OTEL_API_KEY'):
            headers = {"Authorization": f"Bearer {os.getenv('OTEL_API_KEY')}"}
        otlp_exporter = OTLPSpanExporter(endpoint=otlp_endpoint, headers=headers)
        tracer_provider.add_span_processor(
            BatchSpanProcessor(otlp_exporter, max_export_batch_size=512)
        )
    elif environment == 'development':
        tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(tracer_provider)
    _tracing_configured = True

    logging.getLogger(__name__).info(
        "OpenTelemetry tracing enabled",
        extra={"environment": environment, "otlp_endpoint": otlp_endpoint}
    )
    return True


def setup_structured_logging(environment: str):
    """Configure structured JSON logging with trace correlation."""
    global _logging_configured
    if _logging_configured:
        return

    log_level = {
        'production': logging.WARNING,
        'staging': logging.INFO,
        'development': logging.INFO,
        'test': logging.WARNING
    }.get(environment, logging.INFO)

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.addHandler(handler)

    # Environment-specific logger configuration
    if environment == 'production':
        logging.getLogger('urllib3').setLevel(logging.WARNING)
        logging.getLogger('werkzeug').setLevel(logging.WARNING)
        logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)

    elif environment == 'development':
        logging.getLogger('domain').setLevel(logging.DEBUG)
        logging.getLogger('services').setLevel(logging.DEBUG)

    _logging_configured = True
