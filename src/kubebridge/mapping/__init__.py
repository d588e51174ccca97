"""
Mapping package - conversion between typed models and unstructured manifests.

Contains:
- Field metadata inferred from pydantic models (schema)
- Model to manifest conversion (expand)
- Manifest to model conversion (flatten)
"""

from kubebridge.mapping.expand import expand_model
from kubebridge.mapping.flatten import flatten_model
from kubebridge.mapping.schema import (
    UNKNOWN,
    IdentityField,
    UnknownValue,
    UnmappedField,
    describe_model,
    get_identity,
    set_identity,
)

__all__ = [
    "UNKNOWN",
    "IdentityField",
    "UnknownValue",
    "UnmappedField",
    "describe_model",
    "expand_model",
    "flatten_model",
    "get_identity",
    "set_identity",
]
