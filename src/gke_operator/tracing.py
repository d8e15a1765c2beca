"""OpenTelemetry spans for reconcile cycles and external operations.

Configured from the standard OTEL_* environment variables:

    OTEL_TRACES_ENABLED          "false" turns tracing off (default: true)
    OTEL_EXPORTER_OTLP_ENDPOINT  OTLP gRPC endpoint (default: http://localhost:4317)
    OTEL_SERVICE_NAME            service.name resource attribute
    OTEL_SERVICE_VERSION         service.version resource attribute
    OTEL_TRACES_SAMPLER_ARG      fraction of cycles sampled (default: 1.0)
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Any, Iterator

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.trace import Span, Tracer

from .utils.context import get_correlation_id

logger = logging.getLogger(__name__)

_tracer: Tracer | None = None
_provider: TracerProvider | None = None


def _sample_ratio() -> float:
    try:
        ratio = float(os.getenv("OTEL_TRACES_SAMPLER_ARG", "1.0"))
    except ValueError:
        logger.warning("Ignoring non-numeric OTEL_TRACES_SAMPLER_ARG")
        return 1.0
    return min(max(ratio, 0.0), 1.0)


def initialize_tracing(service_name: str = "gke-operator") -> None:
    """Install an OTLP exporting tracer provider unless tracing is disabled."""
    global _tracer, _provider

    if os.getenv("OTEL_TRACES_ENABLED", "true").lower() == "false":
        logger.info("Tracing disabled")
        return

    service_name = os.getenv("OTEL_SERVICE_NAME", service_name)
    endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4317")
    try:
        provider = TracerProvider(
            resource=Resource.create(
                {
                    "service.name": service_name,
                    "service.version": os.getenv("OTEL_SERVICE_VERSION", "unknown"),
                }
            ),
            sampler=ParentBased(TraceIdRatioBased(_sample_ratio())),
        )
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
        trace.set_tracer_provider(provider)
    except Exception as e:
        # a broken exporter must not stop the operator
        logger.warning(f"Failed to initialize tracing: {e}")
        return

    _provider = provider
    _tracer = trace.get_tracer(service_name)
    logger.info(f"Tracing enabled, exporting to {endpoint}")


def shutdown_tracing() -> None:
    """Flush pending spans and drop the tracer."""
    global _tracer, _provider

    if _provider is not None:
        _provider.shutdown()
    _provider = None
    _tracer = None


def get_tracer() -> Tracer | None:
    return _tracer


@contextmanager
def trace_span(
    name: str,
    kind: str | None = None,
    attributes: dict[str, Any] | None = None,
) -> Iterator[Span | None]:
    """Open a span around a block.

    The span carries the resource kind and the current correlation ID, and
    records any exception raised inside the block before re-raising it.

    Args:
        name: Span name
        kind: Resource kind, e.g. "NodePool"
        attributes: Extra span attributes

    Yields:
        The span, or None when tracing is not initialized
    """
    tracer = get_tracer()
    if tracer is None:
        yield None
        return

    attrs = dict(attributes or {})
    if kind:
        attrs["resource.kind"] = kind
    corr_id = get_correlation_id()
    if corr_id:
        attrs["correlation_id"] = corr_id

    with tracer.start_as_current_span(name, attributes=attrs, record_exception=False) as span:
        try:
            yield span
        except Exception as e:
            if span.is_recording():
                span.record_exception(e)
                span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
            raise


def add_span_attribute(key: str, value: Any) -> None:
    """Set an attribute on the current span, if one is recording."""
    span = trace.get_current_span()
    if span.is_recording():
        span.set_attribute(key, value)
