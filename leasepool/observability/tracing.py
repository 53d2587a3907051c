"""
OpenTelemetry tracing setup.

Lease operations are wrapped in spans named after the operation, with
``lease.*`` attributes. Until setup_tracing() runs, the globally registered
provider is the no-op one and the spans cost nothing.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Span, Tracer

from leasepool import __version__
from leasepool.config import Settings, get_settings

logger = logging.getLogger(__name__)

_tracer: Tracer | None = None


def setup_tracing(
    settings: Settings | None = None,
    enable_console_export: bool = False,
) -> Tracer:
    """
    Install a tracer provider exporting to the configured OTLP endpoint.

    Args:
        settings: Optional settings. Uses cached settings if not provided.
        enable_console_export: If True, also print spans to stdout.

    Returns:
        Tracer: The process tracer.
    """
    global _tracer

    settings = settings or get_settings()
    provider = TracerProvider(
        resource=Resource.create(
            {
                "service.name": settings.otel_service_name,
                "service.version": __version__,
            }
        )
    )

    try:
        exporter = OTLPSpanExporter(
            endpoint=settings.otel_exporter_otlp_endpoint,
            insecure=True,
        )
    except Exception as e:
        logger.warning(
            "OTLP exporter unavailable, spans will not be exported",
            extra={"endpoint": settings.otel_exporter_otlp_endpoint, "error": str(e)},
        )
    else:
        provider.add_span_processor(BatchSpanProcessor(exporter))

    if enable_console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    _tracer = trace.get_tracer(settings.otel_service_name)

    logger.info(
        "Tracing enabled",
        extra={"endpoint": settings.otel_exporter_otlp_endpoint},
    )
    return _tracer


def instrument_sqlalchemy(engine: Any) -> None:
    """
    Trace every statement sent to the lease store.

    Args:
        engine: The sync engine behind an AsyncEngine.
    """
    SQLAlchemyInstrumentor().instrument(engine=engine)


def get_tracer() -> Tracer:
    """Get the process tracer, or the global provider's tracer before setup."""
    if _tracer is None:
        return trace.get_tracer(__name__)
    return _tracer


@contextmanager
def lease_span(name: str, holder_id: str, **attributes: Any) -> Iterator[Span]:
    """
    Open a span for a lease operation.

    Args:
        name: Span name, one of the SPAN_* constants.
        holder_id: The instance performing the operation.
        **attributes: Extra attributes, recorded as ``lease.<key>``.
            None values are skipped.

    Yields:
        Span: The current span, for recording the outcome.
    """
    with get_tracer().start_as_current_span(name) as span:
        span.set_attribute("lease.holder_id", holder_id)
        for key, value in attributes.items():
            if value is not None:
                span.set_attribute(f"lease.{key}", value)
        yield span
