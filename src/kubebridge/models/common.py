"""
Common models shared by typed resource models.

This module defines the building blocks most resource models embed: object
metadata and the per-operation timeouts block.
"""

from pydantic import BaseModel, Field, field_validator

from kubebridge.utils.deadline import parse_duration


class ObjectMetadata(BaseModel):
    """Standard Kubernetes object metadata."""

    model_config = {"populate_by_name": True}

    name: str | None = Field(None, description="Object name")
    namespace: str | None = Field(None, description="Object namespace")
    generate_name: str | None = Field(
        None, alias="generateName", description="Prefix for server-generated names"
    )
    labels: dict[str, str] | None = Field(None, description="Object labels")
    annotations: dict[str, str] | None = Field(None, description="Object annotations")
    generation: int | None = Field(
        None, description="Sequence number of the desired state (server-set)"
    )
    resource_version: str | None = Field(
        None,
        alias="resourceVersion",
        description="Opaque version used for optimistic concurrency (server-set)",
    )
    uid: str | None = Field(None, description="Unique object ID (server-set)")


class OperationTimeouts(BaseModel):
    """
    Per-operation timeouts, as Go-style duration strings (e.g. "20m", "1h30m").

    Unset operations fall back to the configured defaults.
    """

    model_config = {"populate_by_name": True}

    create: str | None = Field(None, description="Timeout for create")
    read: str | None = Field(None, description="Timeout for read")
    update: str | None = Field(None, description="Timeout for update")
    delete: str | None = Field(None, description="Timeout for delete")

    @field_validator("create", "read", "update", "delete")
    @classmethod
    def validate_duration(cls, v):
        if v is not None:
            parse_duration(v)
        return v

    def timeout_for(self, operation: str) -> float | None:
        """Return the timeout for an operation in seconds, or None if unset."""
        value = getattr(self, operation, None)
        if value is None:
            return None
        return parse_duration(value)
