"""
OpenTelemetry Distributed Tracing

Configures OpenTelemetry for the order lifecycle. Spans are created around
placement, status transitions and cancellations; exporting is opt-in.
"""

import logging

from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

logger = logging.getLogger(__name__)

_initialized = False


def setup_tracing(service_name: str = "marketplace-service", enable: bool = True, console_export: bool = False) -> None:
    """
    Initialize OpenTelemetry tracing.

    Args:
        service_name: Name of the service for tracing
        enable: Enable/disable tracing
        console_export: Print finished spans to stdout
    """
    global _initialized

    if _initialized:
        logger.warning("Tracing already initialized. Skipping.")
        return

    if not enable:
        logger.info("Tracing disabled via configuration")
        return

    tracer_provider = TracerProvider(resource=Resource(attributes={SERVICE_NAME: service_name}))
    if console_export:
        tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(tracer_provider)

    from opentelemetry.instrumentation.django import DjangoInstrumentor

    DjangoInstrumentor().instrument()
    logger.info("Django auto-instrumentation enabled")

    _initialized = True
    logger.info(f"OpenTelemetry tracing initialized for service: {service_name}")


def get_tracer(name: str = "marketplace") -> trace.Tracer:
    """
    Get tracer instance for creating custom spans.

    Example:
        tracer = get_tracer(__name__)

        with tracer.start_as_current_span("place_order"):
            ...
    """
    return trace.get_tracer(name)


def add_span_attributes(span: trace.Span, **attributes) -> None:
    for key, value in attributes.items():
        if value is not None:
            span.set_attribute(key, str(value))


tracer = get_tracer("marketplace.ordering")

__all__ = ["setup_tracing", "get_tracer", "add_span_attributes", "tracer"]
