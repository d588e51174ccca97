"""
Structured logging utilities for kubebridge.

This module provides correlation ID tracking and structured log formatting
so that each CRUD call can be followed through discovery, requests and
mapping in aggregated logs.
"""

import json
import logging
import uuid
from contextvars import ContextVar
from datetime import UTC, datetime

# Context variable for tracking correlation IDs across calls
correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")

STRUCTURED_FIELDS = (
    "kind",
    "api_version",
    "resource_name",
    "namespace",
    "operation",
    "duration",
    "error_type",
    "identity",
)


class CorrelationIDFilter(logging.Filter):
    """Logging filter that adds correlation ID to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        """
        Add correlation ID to the log record.

        Args:
            record: The log record to process

        Returns:
            True to allow the record to be processed
        """
        current_correlation_id = correlation_id.get()
        if not current_correlation_id:
            current_correlation_id = generate_correlation_id()
            correlation_id.set(current_correlation_id)

        record.correlation_id = current_correlation_id
        return True


class StructuredFormatter(logging.Formatter):
    """
    Structured JSON formatter for logs with correlation ID support.

    Formats log records as structured JSON for better parsing and analysis
    in production monitoring systems.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", ""),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # extra= fields land as attributes on the record
        for field in STRUCTURED_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        return json.dumps(log_data)


def generate_correlation_id() -> str:
    """Generate a short correlation ID."""
    return str(uuid.uuid4())[:8]


def set_correlation_id(corr_id: str) -> str:
    """Set the correlation ID for the current context and return it."""
    correlation_id.set(corr_id)
    return corr_id


def get_correlation_id() -> str:
    """Get the current correlation ID, or empty string if none set."""
    return correlation_id.get("")


def setup_structured_logging(
    log_level: str = "INFO",
    enable_json_formatting: bool = True,
    correlation_id_enabled: bool = True,
) -> None:
    """
    Set up structured logging on the root logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        enable_json_formatting: Whether to use JSON formatting
        correlation_id_enabled: Whether to enable correlation ID tracking
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()

    if enable_json_formatting:
        formatter = StructuredFormatter()
    elif correlation_id_enabled:
        formatter = logging.Formatter(
            "%(asctime)s - %(correlation_id)s - %(name)s - %(levelname)s - %(message)s"
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    handler.setFormatter(formatter)

    if correlation_id_enabled:
        handler.addFilter(CorrelationIDFilter())

    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # The kubernetes client and urllib3 are chatty at DEBUG
    logging.getLogger("kubernetes").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


class BridgeLogger:
    """
    Logger for CRUD operations with structured logging support.

    Records the start, completion and failure of operations at DEBUG level.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def log_operation_start(
        self,
        operation: str,
        kind: str,
        api_version: str,
        identity: str | None = None,
        correlation_id: str | None = None,
    ) -> str:
        """
        Log the start of a CRUD operation.

        Args:
            operation: create, read, update or delete
            kind: Object kind
            api_version: Object apiVersion
            identity: Identity token, when known up front
            correlation_id: Optional correlation ID (reuses or generates one)

        Returns:
            The correlation ID used for this operation
        """
        if correlation_id is None:
            correlation_id = get_correlation_id() or generate_correlation_id()

        set_correlation_id(correlation_id)

        self.logger.debug(
            f"Starting {operation} for {kind} {identity or ''}".rstrip(),
            extra={
                "kind": kind,
                "api_version": api_version,
                "operation": f"{operation}_start",
                "identity": identity or "",
            },
        )
        return correlation_id

    def log_operation_success(
        self,
        operation: str,
        kind: str,
        api_version: str,
        identity: str,
        duration: float,
    ) -> None:
        """
        Log successful completion of a CRUD operation.

        Args:
            operation: create, read, update or delete
            kind: Object kind
            api_version: Object apiVersion
            identity: Identity token of the object
            duration: Operation duration in seconds
        """
        self.logger.debug(
            f"Completed {operation} for {kind} {identity}",
            extra={
                "kind": kind,
                "api_version": api_version,
                "operation": f"{operation}_success",
                "identity": identity,
                "duration": duration,
            },
        )

    def log_operation_error(
        self,
        operation: str,
        kind: str,
        api_version: str,
        identity: str,
        error: Exception,
        duration: float | None = None,
    ) -> None:
        """
        Log a failed CRUD operation.

        Failures are raised to the caller, who decides how loudly to report
        them, so this logs at DEBUG only.

        Args:
            operation: create, read, update or delete
            kind: Object kind
            api_version: Object apiVersion
            identity: Identity token, empty when not yet known
            error: The exception being raised
            duration: Seconds spent before the failure
        """
        extra = {
            "kind": kind,
            "api_version": api_version,
            "operation": f"{operation}_error",
            "identity": identity,
            "error_type": type(error).__name__,
        }
        if duration is not None:
            extra["duration"] = duration

        self.logger.debug(
            f"Failed {operation} for {kind} {identity}".rstrip() + f": {error}",
            extra=extra,
        )

    def debug(self, message: str, **kwargs) -> None:
        """Log debug message with extra data."""
        self.logger.debug(message, extra=kwargs)

    def info(self, message: str, **kwargs) -> None:
        """Log info message with extra data."""
        self.logger.info(message, extra=kwargs)
