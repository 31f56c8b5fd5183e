"""OpenTelemetry tracing for supervised transfer jobs."""

import logging

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from kubexfer.core.config import Settings

logger = logging.getLogger(__name__)

# Provider installed by setup_telemetry; OpenTelemetry allows setting it once
_tracer_provider: TracerProvider | None = None


def setup_telemetry(settings: Settings) -> bool:
    """Install a tracer provider for supervision spans, once per process.

    Spans go to the console when debugging and to the OTLP endpoint otherwise.

    Args:
        settings: Library settings

    Returns:
        Whether tracing is active
    """
    global _tracer_provider
    if not settings.otel_enabled:
        logger.info("OpenTelemetry disabled")
        return False
    if _tracer_provider is not None:
        return True

    resource = Resource.create(
        {
            "service.name": settings.otel_service_name,
            "service.version": "0.1.0",
        }
    )
    provider = TracerProvider(resource=resource)

    if settings.debug:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    else:
        try:
            otlp_exporter = OTLPSpanExporter(endpoint=settings.otel_exporter_endpoint)
            provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
        except Exception as e:
            logger.warning("Failed to configure OTLP exporter: %s", e)

    trace.set_tracer_provider(provider)
    _tracer_provider = provider
    logger.info(
        "OpenTelemetry configured: service=%s, endpoint=%s",
        settings.otel_service_name,
        "console" if settings.debug else settings.otel_exporter_endpoint,
    )
    return True


def flush_telemetry() -> None:
    """Export pending spans; a supervised run is often the whole process."""
    if _tracer_provider is not None:
        _tracer_provider.force_flush()


def reset_telemetry() -> None:
    """Forget the installed provider (for testing)."""
    global _tracer_provider
    _tracer_provider = None


def get_tracer(name: str) -> trace.Tracer:
    """Get a tracer for the given module name.

    Args:
        name: Module name (typically __name__)

    Returns:
        Tracer instance
    """
    return trace.get_tracer(name)
