"""Helpers for unstructured manifests (plain nested dicts)."""

import copy
from typing import Any, TypeAlias

from kubebridge.constants import (
    MANIFEST_API_VERSION,
    MANIFEST_KIND,
    MANIFEST_METADATA,
    MANIFEST_STATUS,
    SERVER_MANAGED_METADATA_FIELDS,
)
from kubebridge.utils.identity import ResourceIdentity

Manifest: TypeAlias = dict[str, Any]


def get_metadata(manifest: Manifest) -> dict[str, Any]:
    """Return the metadata mapping, or an empty dict when absent or malformed."""
    metadata = manifest.get(MANIFEST_METADATA)
    return metadata if isinstance(metadata, dict) else {}


def identity_of(manifest: Manifest) -> ResourceIdentity:
    """Read name and namespace from a manifest's metadata."""
    metadata = get_metadata(manifest)
    return ResourceIdentity(
        name=metadata.get("name") or "",
        namespace=metadata.get("namespace") or "",
    )


def stamp_type_meta(manifest: Manifest, kind: str, api_version: str) -> Manifest:
    """Set apiVersion and kind on a manifest in place and return it."""
    manifest[MANIFEST_API_VERSION] = api_version
    manifest[MANIFEST_KIND] = kind
    return manifest


def set_namespace(manifest: Manifest, namespace: str) -> Manifest:
    """Set metadata.namespace in place, or drop it for cluster scope."""
    metadata = manifest.setdefault(MANIFEST_METADATA, {})
    if namespace:
        metadata["namespace"] = namespace
    else:
        metadata.pop("namespace", None)
    return manifest


def strip_server_side_fields(
    manifest: Manifest, remove_status: bool = False
) -> Manifest:
    """
    Return a copy of a manifest without server-populated fields.

    Removes ``uid``, ``creationTimestamp``, ``resourceVersion``,
    ``generation`` and ``managedFields`` from metadata, and the ``status``
    block when requested. The input is not modified.

    Args:
        manifest: Manifest as returned by the server
        remove_status: Also drop the top-level status block

    Returns:
        Cleaned deep copy of the manifest
    """
    cleaned = copy.deepcopy(manifest)

    if remove_status:
        cleaned.pop(MANIFEST_STATUS, None)

    metadata = cleaned.get(MANIFEST_METADATA)
    if isinstance(metadata, dict):
        for key in SERVER_MANAGED_METADATA_FIELDS:
            metadata.pop(key, None)

    return cleaned
