"""
Typed models for core/v1 kinds.

These models show the mapping contract on two common kinds: ConfigMap
(namespaced) and Namespace (cluster-scoped).
"""

from pydantic import BaseModel, Field

from kubebridge.mapping.schema import IdentityField, UnmappedField
from kubebridge.models.common import ObjectMetadata, OperationTimeouts


class ConfigMapModel(BaseModel):
    """core/v1 ConfigMap."""

    model_config = {"populate_by_name": True}

    id: str | None = IdentityField(description="Identity token (name/namespace)")
    timeouts: OperationTimeouts | None = UnmappedField(None)

    metadata: ObjectMetadata = Field(default_factory=ObjectMetadata)
    data: dict[str, str] | None = Field(None, description="UTF-8 configuration data")
    binary_data: dict[str, str] | None = Field(
        None, alias="binaryData", description="Base64-encoded binary data"
    )
    immutable: bool | None = Field(
        None, description="Whether the data can be changed after creation"
    )


class NamespaceSpec(BaseModel):
    finalizers: list[str] | None = None


class NamespaceStatus(BaseModel):
    phase: str | None = None


class NamespaceModel(BaseModel):
    """core/v1 Namespace."""

    model_config = {"populate_by_name": True}

    id: str | None = IdentityField(description="Identity token (name)")
    timeouts: OperationTimeouts | None = UnmappedField(None)

    metadata: ObjectMetadata = Field(default_factory=ObjectMetadata)
    spec: NamespaceSpec | None = None
    status: NamespaceStatus | None = None
