"""Centralized kubebridge settings using pydantic-settings.

This module provides a single source of truth for engine configuration
loaded from environment variables. Uses pydantic for automatic validation,
type coercion, and documentation.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from kubebridge.constants import (
    DEFAULT_DELETE_POLL_ATTEMPTS,
    DEFAULT_DELETE_POLL_INTERVAL,
    DEFAULT_DISCOVERY_TIMEOUT,
    DEFAULT_NAMESPACE,
    DEFAULT_OPERATION_TIMEOUT,
    DEFAULT_PROPAGATION_POLICY,
    OPERATIONS,
)


class Settings(BaseSettings):
    """Engine configuration loaded from environment variables.

    All settings have sensible defaults. Override via environment variables
    as documented per field.
    """

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Resolution
    default_namespace: str = Field(
        default=DEFAULT_NAMESPACE,
        validation_alias="KUBEBRIDGE_DEFAULT_NAMESPACE",
        description="Namespace used for namespaced kinds addressed without one",
    )
    discovery_timeout: float = Field(
        default=DEFAULT_DISCOVERY_TIMEOUT,
        validation_alias="KUBEBRIDGE_DISCOVERY_TIMEOUT",
        description="Upper bound in seconds for a single discovery request",
    )

    # Operation timeouts
    create_timeout: float = Field(
        default=DEFAULT_OPERATION_TIMEOUT,
        validation_alias="KUBEBRIDGE_CREATE_TIMEOUT",
        description="Default timeout in seconds for create operations",
    )
    read_timeout: float = Field(
        default=DEFAULT_OPERATION_TIMEOUT,
        validation_alias="KUBEBRIDGE_READ_TIMEOUT",
        description="Default timeout in seconds for read operations",
    )
    update_timeout: float = Field(
        default=DEFAULT_OPERATION_TIMEOUT,
        validation_alias="KUBEBRIDGE_UPDATE_TIMEOUT",
        description="Default timeout in seconds for update operations",
    )
    delete_timeout: float = Field(
        default=DEFAULT_OPERATION_TIMEOUT,
        validation_alias="KUBEBRIDGE_DELETE_TIMEOUT",
        description="Default timeout in seconds for delete operations",
    )

    # Deletion behavior
    delete_poll_interval: float = Field(
        default=DEFAULT_DELETE_POLL_INTERVAL,
        validation_alias="KUBEBRIDGE_DELETE_POLL_INTERVAL",
        description="Seconds between reads while waiting for deletion",
    )
    delete_poll_attempts: int = Field(
        default=DEFAULT_DELETE_POLL_ATTEMPTS,
        validation_alias="KUBEBRIDGE_DELETE_POLL_ATTEMPTS",
        description="Maximum number of reads while waiting for deletion",
    )
    delete_propagation_policy: str = Field(
        default=DEFAULT_PROPAGATION_POLICY,
        validation_alias="KUBEBRIDGE_DELETE_PROPAGATION_POLICY",
        description="Propagation policy sent with delete requests (Background, Foreground, Orphan)",
    )

    # Manifest handling
    strip_server_fields: bool = Field(
        default=False,
        validation_alias="KUBEBRIDGE_STRIP_SERVER_FIELDS",
        description="Remove server-managed metadata from read responses before mapping",
    )

    # Logging configuration
    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=True,
        validation_alias="JSON_LOGS",
        description="Enable JSON formatted logging for structured log aggregation",
    )
    correlation_ids: bool = Field(
        default=True,
        validation_alias="CORRELATION_IDS",
        description="Enable correlation IDs in logs for request tracing",
    )

    # Tracing
    tracing_enabled: bool = Field(
        default=False,
        validation_alias="TRACING_ENABLED",
        description="Enable OpenTelemetry tracing of CRUD operations",
    )
    tracing_endpoint: str = Field(
        default="http://localhost:4317",
        validation_alias="OTEL_EXPORTER_OTLP_ENDPOINT",
        description="OTLP collector endpoint (gRPC)",
    )
    tracing_service_name: str = Field(
        default="kubebridge",
        validation_alias="OTEL_SERVICE_NAME",
        description="Service name reported on spans",
    )
    tracing_sample_rate: float = Field(
        default=1.0,
        validation_alias="TRACING_SAMPLE_RATE",
        description="Sampling rate for root spans (0.0-1.0)",
    )

    def timeout_for(self, operation: str) -> float:
        """Return the configured default timeout for a CRUD operation.

        Args:
            operation: One of create, read, update, delete

        Returns:
            Timeout in seconds

        Raises:
            ValueError: If the operation name is unknown
        """
        if operation not in OPERATIONS:
            raise ValueError(f"Unknown operation '{operation}'")
        return getattr(self, f"{operation}_timeout")


# Global settings instance - initialized once at module import
settings = Settings()
