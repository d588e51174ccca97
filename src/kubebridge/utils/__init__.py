"""
Utils package - Helper modules for kubebridge.

Contains helper modules for:
- Identity token encoding and decoding
- Deadlines and duration parsing
- Kubernetes client, discovery and dynamic resource handles
- Unstructured manifest helpers
"""

from kubebridge.utils.identity import (
    ResourceIdentity,
    decode_identity,
    encode_identity,
)

__all__ = [
    "ResourceIdentity",
    "decode_identity",
    "encode_identity",
]
