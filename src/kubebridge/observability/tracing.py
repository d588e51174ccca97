"""
OpenTelemetry distributed tracing for kubebridge.

This module provides:
- Tracer provider setup with an OTLP exporter and ratio sampling
- Automatic instrumentation of urllib3, which the kubernetes client uses
- A decorator that wraps each CRUD verb in a span

Usage:
    from kubebridge.observability.tracing import setup_tracing, traced_operation

    # Initialize at startup
    setup_tracing(enabled=True)

    class ResourceCRUD:
        @traced_operation("kubebridge.create")
        def create(self, kind, api_version, model, **kwargs):
            ...

Without setup_tracing(enabled=True) the global no-op tracer is used and spans
cost nothing.
"""

import contextlib
import functools
import logging
from collections.abc import Callable
from typing import Concatenate, ParamSpec, TypeVar

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.urllib3 import URLLib3Instrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SimpleSpanProcessor
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.trace import SpanKind, Status, StatusCode, Tracer

logger = logging.getLogger(__name__)

# Module-level state
_tracer_provider: TracerProvider | None = None
_initialized: bool = False

# Type variables for decorator
P = ParamSpec("P")
R = TypeVar("R")
S = TypeVar("S")


def setup_tracing(
    enabled: bool = False,
    endpoint: str = "http://localhost:4317",
    service_name: str = "kubebridge",
    sample_rate: float = 1.0,
    insecure: bool = True,
    use_simple_processor: bool = False,
) -> TracerProvider | None:
    """
    Initialize OpenTelemetry tracing.

    Args:
        enabled: Enable tracing (if False, returns None and does nothing)
        endpoint: OTLP collector endpoint (gRPC)
        service_name: Service name for traces
        sample_rate: Sampling rate (0.0-1.0, 1.0 = 100% of traces)
        insecure: Use insecure connection (no TLS)
        use_simple_processor: Use SimpleSpanProcessor instead of BatchSpanProcessor
                              (useful for testing to ensure immediate export)

    Returns:
        TracerProvider if enabled, None otherwise
    """
    global _tracer_provider, _initialized

    if _initialized:
        logger.debug("Tracing already initialized, skipping")
        return _tracer_provider

    if not enabled:
        logger.debug("OpenTelemetry tracing is disabled")
        _initialized = True
        return None

    logger.info(
        f"Initializing OpenTelemetry tracing: endpoint={endpoint}, "
        f"service={service_name}, sample_rate={sample_rate}"
    )

    resource = Resource.create({"service.name": service_name})

    # ParentBased respects parent sampling decisions
    sampler = ParentBased(root=TraceIdRatioBased(sample_rate))
    _tracer_provider = TracerProvider(resource=resource, sampler=sampler)

    exporter = OTLPSpanExporter(endpoint=endpoint, insecure=insecure)
    if use_simple_processor:
        processor = SimpleSpanProcessor(exporter)
    else:
        processor = BatchSpanProcessor(exporter)
    _tracer_provider.add_span_processor(processor)

    trace.set_tracer_provider(_tracer_provider)

    URLLib3Instrumentor().instrument()
    logger.debug("Instrumented urllib3")

    _initialized = True
    return _tracer_provider


def shutdown_tracing() -> None:
    """Shutdown tracing and flush any pending spans."""
    global _tracer_provider, _initialized

    if _tracer_provider is not None:
        logger.info("Shutting down OpenTelemetry tracing")
        _tracer_provider.shutdown()
        _tracer_provider = None

    # Ignore errors if urllib3 was never instrumented
    with contextlib.suppress(Exception):
        URLLib3Instrumentor().uninstrument()

    _initialized = False


def get_tracer(name: str = __name__) -> Tracer:
    """Get a tracer instance (no-op if tracing is disabled)."""
    return trace.get_tracer(name)


def is_tracing_enabled() -> bool:
    """Check if tracing is currently enabled and initialized."""
    return _initialized and _tracer_provider is not None


def traced_operation(
    operation_name: str,
    span_kind: SpanKind = SpanKind.CLIENT,
) -> Callable[
    [Callable[Concatenate[S, str, str, P], R]],
    Callable[Concatenate[S, str, str, P], R],
]:
    """
    Decorator for CRUD methods taking ``(self, kind, api_version, ...)``.

    The span carries the kind and apiVersion, records exceptions, and sets
    its status from the outcome. Exceptions are re-raised unchanged.

    Args:
        operation_name: Span name (e.g., "kubebridge.create")
        span_kind: Kind of span

    Returns:
        Decorated method
    """

    def decorator(
        func: Callable[Concatenate[S, str, str, P], R],
    ) -> Callable[Concatenate[S, str, str, P], R]:
        @functools.wraps(func)
        def wrapper(
            self: S, kind: str, api_version: str, *args: P.args, **kwargs: P.kwargs
        ) -> R:
            tracer = get_tracer(func.__module__ or __name__)
            attributes = {
                "k8s.kind": kind,
                "k8s.api_version": api_version,
            }

            with tracer.start_as_current_span(
                operation_name,
                kind=span_kind,
                attributes=attributes,
            ) as span:
                try:
                    result = func(self, kind, api_version, *args, **kwargs)
                    span.set_status(Status(StatusCode.OK))
                    return result
                except Exception as e:
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    span.record_exception(e)
                    raise

        return wrapper

    return decorator
