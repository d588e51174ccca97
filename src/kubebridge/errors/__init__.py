"""
Error handling module for kubebridge.

This module provides the error hierarchy raised by the resolver, the value
mapper and the CRUD orchestrator, with clear categorization for callers that
need to branch on the outcome (most importantly, not-found).
"""

from .bridge_errors import (
    BridgeError,
    ConflictError,
    IdentityError,
    KubernetesAPIError,
    MappingError,
    ModelDefinitionError,
    NoMatchError,
    OperationTimeoutError,
    ResolutionError,
    ResourceNotFoundError,
    ShapeMismatchError,
    UnsupportedValueError,
    api_error_from_exception,
)

__all__ = [
    "BridgeError",
    "ResolutionError",
    "NoMatchError",
    "ResourceNotFoundError",
    "MappingError",
    "ShapeMismatchError",
    "UnsupportedValueError",
    "ModelDefinitionError",
    "IdentityError",
    "KubernetesAPIError",
    "ConflictError",
    "OperationTimeoutError",
    "api_error_from_exception",
]
