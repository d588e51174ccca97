"""Startup wiring of logging and tracing from Settings."""

from opentelemetry.sdk.trace import TracerProvider

from kubebridge.observability.logging import setup_structured_logging
from kubebridge.observability.tracing import setup_tracing
from kubebridge.settings import Settings, settings


def configure_logging(config: Settings | None = None) -> None:
    """Configure structured logging based on settings."""
    config = config or settings
    setup_structured_logging(
        log_level=config.log_level.upper(),
        enable_json_formatting=config.json_logs,
        correlation_id_enabled=config.correlation_ids,
    )


def configure_tracing(config: Settings | None = None) -> TracerProvider | None:
    """Configure OpenTelemetry tracing based on settings."""
    config = config or settings
    return setup_tracing(
        enabled=config.tracing_enabled,
        endpoint=config.tracing_endpoint,
        service_name=config.tracing_service_name,
        sample_rate=config.tracing_sample_rate,
    )


def configure_observability(config: Settings | None = None) -> TracerProvider | None:
    """
    Set up logging and tracing for a process hosting the engine.

    Call once at startup, before the first CRUD operation.

    Returns:
        The tracer provider when tracing is enabled, None otherwise
    """
    configure_logging(config)
    return configure_tracing(config)
