"""
Constants used throughout kubebridge.

This module defines the constant values shared by the resolver, the value
mapper and the CRUD orchestrator:
- Namespace defaulting for namespaced kinds
- Operation timeouts and deletion polling defaults
- Manifest keys and server-managed metadata fields
- Error message templates
"""

# Namespace used when a namespaced kind is addressed without one
DEFAULT_NAMESPACE = "default"

# Scope names reported by REST mappings
SCOPE_NAMESPACE = "namespace"
SCOPE_CLUSTER = "root"

# CRUD operation names
OPERATION_CREATE = "create"
OPERATION_READ = "read"
OPERATION_UPDATE = "update"
OPERATION_DELETE = "delete"
OPERATIONS = (OPERATION_CREATE, OPERATION_READ, OPERATION_UPDATE, OPERATION_DELETE)

# Timeout constants (in seconds)
DEFAULT_OPERATION_TIMEOUT = 1200  # 20 minutes
DEFAULT_DISCOVERY_TIMEOUT = 30

# Wait-for-deletion polling
DEFAULT_DELETE_POLL_INTERVAL = 1.0
DEFAULT_DELETE_POLL_ATTEMPTS = 60
DEFAULT_PROPAGATION_POLICY = "Background"

# Identity token separator between name and namespace
IDENTITY_SEPARATOR = "/"

# Manifest keys
MANIFEST_API_VERSION = "apiVersion"
MANIFEST_KIND = "kind"
MANIFEST_METADATA = "metadata"
MANIFEST_STATUS = "status"

# Metadata fields populated by the API server
SERVER_MANAGED_METADATA_FIELDS = (
    "uid",
    "creationTimestamp",
    "resourceVersion",
    "generation",
    "managedFields",
)

# Marker key stored in pydantic ``json_schema_extra`` to override manifest paths
MANIFEST_PATH_KEY = "manifest"

# Range of integers the API server accepts (int64)
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

# Error message templates
ERROR_NO_MATCH = "no matches for kind '{}' in version '{}'"
ERROR_DISCOVERY_FAILED = "Failed to fetch API group resources: {}"
ERROR_NOT_FOUND = "{} '{}' not found"
ERROR_DEADLINE_EXCEEDED = "Deadline exceeded during {} after {:.1f} seconds"
