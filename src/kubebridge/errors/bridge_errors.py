"""
Error hierarchy with categorization and retry hints.

This module defines the error types raised by kubebridge. Errors carry a
category, a retryable flag and a suggested delay so that host frameworks can
branch on them, and convert cleanly into kopf's retry exceptions when the
engine runs inside an operator.
"""

from typing import Any

from kubernetes.client.rest import ApiException

from kubebridge.constants import (
    ERROR_DEADLINE_EXCEEDED,
    ERROR_NO_MATCH,
    ERROR_NOT_FOUND,
)


class BridgeError(Exception):
    """
    Base error class for all kubebridge exceptions.

    Provides categorization, retry behavior, and user guidance for resolution.
    """

    def __init__(
        self,
        message: str,
        category: str,
        retryable: bool = True,
        delay: int = 30,
        user_action: str | None = None,
        cause: Exception | None = None,
    ):
        """
        Initialize a kubebridge error.

        Args:
            message: Human-readable error description
            category: Error category (resolution, not_found, mapping, api, timeout)
            retryable: Whether the caller may retry this operation
            delay: Suggested retry delay in seconds
            user_action: What the user should do to resolve the issue
            cause: Underlying exception that caused this error
        """
        super().__init__(message)
        self.category = category
        self.retryable = retryable
        self.delay = delay
        self.user_action = user_action
        self.cause = cause

    def as_kopf_error(self):
        """
        Convert to appropriate kopf exception type.

        Requires the ``operator`` extra, which installs kopf.
        """
        import kopf

        if self.retryable:
            return kopf.TemporaryError(str(self), delay=self.delay)
        else:
            return kopf.PermanentError(str(self))

    def __str__(self) -> str:
        """Enhanced string representation with user guidance."""
        base_msg = super().__str__()
        if self.user_action:
            return f"{base_msg}\nAction required: {self.user_action}"
        return base_msg


class ResolutionError(BridgeError):
    """Discovery metadata could not be fetched from the API server."""

    def __init__(
        self,
        message: str,
        retryable: bool = True,
        delay: int = 30,
        cause: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category="resolution",
            retryable=retryable,
            delay=delay,
            user_action="Check cluster connectivity and discovery permissions",
            cause=cause,
        )


class NoMatchError(ResolutionError):
    """No REST resource serves the requested Kind/APIVersion."""

    def __init__(self, kind: str, api_version: str):
        self.kind = kind
        self.api_version = api_version
        super().__init__(
            message=ERROR_NO_MATCH.format(kind, api_version),
            retryable=True,
            delay=10,
        )
        self.user_action = (
            "Install the CustomResourceDefinition serving this kind, "
            "or verify the apiVersion"
        )


class ResourceNotFoundError(BridgeError):
    """The addressed object does not exist on the server."""

    def __init__(
        self,
        kind: str,
        name: str,
        namespace: str = "",
        cause: Exception | None = None,
    ):
        self.kind = kind
        self.name = name
        self.namespace = namespace
        target = f"{namespace}/{name}" if namespace else name
        super().__init__(
            message=ERROR_NOT_FOUND.format(kind, target),
            category="not_found",
            retryable=False,
            cause=cause,
        )


class MappingError(BridgeError):
    """Error converting between a typed model and a manifest."""

    def __init__(self, message: str, path: str):
        self.path = path
        super().__init__(
            message=f"Mapping error at '{path}': {message}",
            category="mapping",
            retryable=False,
            user_action="Check that the model matches the manifest returned by the server",
        )


class ShapeMismatchError(MappingError):
    """A manifest value disagrees with the declared field type."""

    def __init__(self, path: str, expected: str, actual: Any):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"expected {expected}, got {type(actual).__name__}", path=path
        )


class UnsupportedValueError(MappingError):
    """A model value cannot be represented on the wire."""

    def __init__(self, path: str, value: Any, reason: str):
        self.value = value
        super().__init__(f"unsupported value {value!r}: {reason}", path=path)


class ModelDefinitionError(BridgeError):
    """A model class declares fields the mapper cannot handle."""

    def __init__(self, model: type, field: str, message: str):
        self.model = model
        self.field = field
        super().__init__(
            message=f"Invalid field '{model.__name__}.{field}': {message}",
            category="definition",
            retryable=False,
            user_action="Fix the model declaration",
        )


class IdentityError(BridgeError):
    """An identity token or one of its parts is malformed."""

    def __init__(self, message: str, token: str | None = None):
        self.token = token
        super().__init__(
            message=message,
            category="identity",
            retryable=False,
            user_action="Use an identity of the form 'name' or 'name/namespace'",
        )


class KubernetesAPIError(BridgeError):
    """Error returned by the Kubernetes API."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        reason: str | None = None,
        retryable: bool = True,
        cause: Exception | None = None,
    ):
        if reason:
            message = f"{message} (reason: {reason})"
        if status:
            message = f"HTTP {status}: {message}"

        # 4xx errors are client errors, except throttling
        if status and 400 <= status < 500 and status != 429:
            retryable = False

        self.status = status
        self.reason = reason
        super().__init__(
            message=message,
            category="api",
            retryable=retryable,
            delay=60,
            user_action="Check RBAC permissions and cluster connectivity",
            cause=cause,
        )


class ConflictError(KubernetesAPIError):
    """The server rejected a write because of a resourceVersion conflict."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message, status=409, reason="Conflict", cause=cause)
        self.user_action = "Refresh the resource and retry the update"


class OperationTimeoutError(BridgeError):
    """The operation deadline expired before the call completed."""

    def __init__(self, operation: str, elapsed: float, cause: Exception | None = None):
        self.operation = operation
        self.elapsed = elapsed
        super().__init__(
            message=ERROR_DEADLINE_EXCEEDED.format(operation, elapsed),
            category="timeout",
            retryable=True,
            delay=30,
            user_action="Increase the operation timeout or check API server latency",
            cause=cause,
        )


def api_error_from_exception(
    exc: ApiException, kind: str, name: str = "", namespace: str = ""
) -> BridgeError:
    """
    Translate an ApiException into the matching kubebridge error.

    Args:
        exc: Exception raised by the kubernetes client
        kind: Kind of the addressed object
        name: Name of the addressed object
        namespace: Namespace of the addressed object

    Returns:
        ResourceNotFoundError for 404, ConflictError for 409, and
        KubernetesAPIError for everything else
    """
    if exc.status == 404:
        return ResourceNotFoundError(kind, name, namespace, cause=exc)
    if exc.status == 409:
        return ConflictError(
            f"{kind} '{name}' was modified concurrently", cause=exc
        )
    return KubernetesAPIError(
        f"Request for {kind} '{name}' failed",
        status=exc.status,
        reason=exc.reason,
        cause=exc,
    )
