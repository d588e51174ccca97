"""
Service layer for kubebridge.

This module provides the REST resolver and the CRUD orchestrator built on
top of it.
"""

from .crud import ResourceCRUD
from .rest_resolver import RESTMapping, RESTResolver, ResolvedResource

__all__ = [
    "RESTMapping",
    "RESTResolver",
    "ResolvedResource",
    "ResourceCRUD",
]
