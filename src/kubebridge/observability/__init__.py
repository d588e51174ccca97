"""
Observability package - logging and tracing for kubebridge.

Provides:
- Structured JSON logging with correlation IDs
- OpenTelemetry spans around CRUD operations
- Startup wiring of both from Settings
"""

from kubebridge.observability.logging import (
    BridgeLogger,
    get_correlation_id,
    set_correlation_id,
    setup_structured_logging,
)
from kubebridge.observability.startup import (
    configure_logging,
    configure_observability,
    configure_tracing,
)
from kubebridge.observability.tracing import (
    get_tracer,
    setup_tracing,
    shutdown_tracing,
    traced_operation,
)

__all__ = [
    "BridgeLogger",
    "configure_logging",
    "configure_observability",
    "configure_tracing",
    "get_correlation_id",
    "set_correlation_id",
    "setup_structured_logging",
    "get_tracer",
    "setup_tracing",
    "shutdown_tracing",
    "traced_operation",
]
