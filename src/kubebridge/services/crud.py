"""
CRUD orchestration for typed models.

ResourceCRUD composes the REST resolver, the value mapper and the identity
codec into Create/Read/Update/Delete against whatever endpoint serves a
Kind/APIVersion pair. Each call:

1. derives a deadline from the explicit timeout, the model's own timeouts
   block, or the configured default
2. resolves the endpoint from fresh discovery data
3. expands the model into a manifest (create, update)
4. issues the request with the remaining budget as its timeout
5. flattens the response back into the model and stores the identity token

Calls share no mutable state and may run concurrently for different objects.
Errors are raised to the caller; a missing object is reported as
ResourceNotFoundError so callers can branch on it.
"""

import contextlib
import logging
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, TypeVar

import urllib3
from kubernetes import client
from kubernetes.client.rest import ApiException
from pydantic import BaseModel

from kubebridge.constants import (
    MANIFEST_METADATA,
    OPERATION_CREATE,
    OPERATION_DELETE,
    OPERATION_READ,
    OPERATION_UPDATE,
)
from kubebridge.errors import (
    IdentityError,
    ResourceNotFoundError,
    api_error_from_exception,
)
from kubebridge.mapping.expand import expand_model
from kubebridge.mapping.flatten import flatten_model
from kubebridge.mapping.schema import get_identity, set_identity
from kubebridge.models.common import OperationTimeouts
from kubebridge.observability.logging import BridgeLogger
from kubebridge.observability.tracing import traced_operation
from kubebridge.services.rest_resolver import RESTResolver, ResolvedResource
from kubebridge.settings import Settings, settings
from kubebridge.utils.deadline import Deadline
from kubebridge.utils.identity import ResourceIdentity, decode_identity
from kubebridge.utils.kubernetes import (
    DynamicClient,
    KubernetesDiscovery,
    is_timeout_error,
)
from kubebridge.utils.manifest import (
    get_metadata,
    identity_of,
    set_namespace,
    stamp_type_meta,
    strip_server_side_fields,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

Timeout = float | int | timedelta | str


@dataclass
class TrackedOperation:
    """Mutable record of an operation in progress."""

    identity: str = ""


def model_timeout(model: BaseModel, operation: str) -> float | None:
    """Return the timeout a model's own timeouts block sets for an operation."""
    for name in type(model).model_fields:
        value = getattr(model, name, None)
        if isinstance(value, OperationTimeouts):
            return value.timeout_for(operation)
    return None


class ResourceCRUD:
    """
    Create, read, update and delete typed models on a Kubernetes API server.

    Example:
        crud = ResourceCRUD.from_api_client(get_kubernetes_client())
        cm = ConfigMapModel(metadata=ObjectMetadata(name="cm1"), data={"k": "v"})
        crud.create("ConfigMap", "v1", cm)
        cm.id  # "cm1/default"
    """

    def __init__(
        self,
        resolver: RESTResolver,
        config: Settings | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.resolver = resolver
        self.config = config or settings
        self._sleep = sleep
        self.log = BridgeLogger(__name__)

    @classmethod
    def from_api_client(
        cls, api_client: client.ApiClient, config: Settings | None = None
    ) -> "ResourceCRUD":
        """Build an orchestrator backed by discovery and dynamic handles."""
        config = config or settings
        resolver = RESTResolver(
            KubernetesDiscovery(api_client),
            DynamicClient(api_client),
            default_namespace=config.default_namespace,
        )
        return cls(resolver, config)

    @traced_operation("kubebridge.create")
    def create(
        self,
        kind: str,
        api_version: str,
        model: M,
        *,
        timeout: Timeout | None = None,
        deadline: Deadline | None = None,
    ) -> M:
        """
        Create the object described by a model.

        The namespace comes from the manifest's metadata, defaulting for
        namespaced kinds. On success the model is refreshed from the server
        response and its identity field is set.

        Args:
            kind: Object kind
            api_version: Object apiVersion
            model: Typed model, updated in place
            timeout: Operation timeout (seconds, timedelta or duration string)
            deadline: Explicit deadline, overrides timeout

        Returns:
            The same model instance
        """
        deadline = self._deadline(OPERATION_CREATE, model, timeout, deadline)

        with self.track_operation(OPERATION_CREATE, kind, api_version, deadline) as op:
            manifest = stamp_type_meta(expand_model(model), kind, api_version)
            requested = identity_of(manifest)
            resolved = self._resolve(kind, api_version, requested.namespace, deadline)
            set_namespace(manifest, resolved.namespace)

            response = self._request(
                deadline,
                kind,
                ResourceIdentity(requested.name, resolved.namespace),
                resolved.handle.create,
                manifest,
            )

            flatten_model(response, model)
            op.identity = identity_of(response).token
            set_identity(model, op.identity)

        return model

    @traced_operation("kubebridge.read")
    def read(
        self,
        kind: str,
        api_version: str,
        identity: str,
        model: M,
        *,
        timeout: Timeout | None = None,
        deadline: Deadline | None = None,
    ) -> M:
        """
        Read an object into a model.

        Args:
            kind: Object kind
            api_version: Object apiVersion
            identity: Identity token from a previous create
            model: Typed model, updated in place
            timeout: Operation timeout
            deadline: Explicit deadline, overrides timeout

        Returns:
            The same model instance

        Raises:
            ResourceNotFoundError: If the object does not exist
        """
        deadline = self._deadline(OPERATION_READ, model, timeout, deadline)

        with self.track_operation(
            OPERATION_READ, kind, api_version, deadline, identity
        ):
            target = decode_identity(identity)
            resolved = self._resolve(kind, api_version, target.namespace, deadline)
            response = self._request(
                deadline,
                kind,
                ResourceIdentity(target.name, resolved.namespace),
                resolved.handle.get,
                target.name,
            )

            if self.config.strip_server_fields:
                response = strip_server_side_fields(response)

            flatten_model(response, model)
            set_identity(model, identity)

        return model

    @traced_operation("kubebridge.update")
    def update(
        self,
        kind: str,
        api_version: str,
        model: M,
        *,
        timeout: Timeout | None = None,
        deadline: Deadline | None = None,
    ) -> M:
        """
        Replace the object described by a model.

        The target is the model's identity token, or the manifest's
        metadata name and namespace when the model has none. When the model
        carries no resourceVersion, the live object's is used. A conflicting
        concurrent write surfaces as ConflictError.

        Args:
            kind: Object kind
            api_version: Object apiVersion
            model: Typed model, updated in place
            timeout: Operation timeout
            deadline: Explicit deadline, overrides timeout

        Returns:
            The same model instance

        Raises:
            IdentityError: If neither an identity nor metadata.name is set
        """
        deadline = self._deadline(OPERATION_UPDATE, model, timeout, deadline)
        token = get_identity(model) or ""

        with self.track_operation(
            OPERATION_UPDATE, kind, api_version, deadline, token
        ) as op:
            manifest = stamp_type_meta(expand_model(model), kind, api_version)
            target = decode_identity(token) if token else identity_of(manifest)
            if not target.name:
                raise IdentityError(
                    f"Cannot update {kind}: model has no identity and no metadata.name"
                )

            resolved = self._resolve(kind, api_version, target.namespace, deadline)
            current = ResourceIdentity(target.name, resolved.namespace)
            op.identity = current.token

            set_namespace(manifest, resolved.namespace)
            metadata = manifest[MANIFEST_METADATA]
            metadata["name"] = target.name

            if not metadata.get("resourceVersion"):
                live = self._request(
                    deadline, kind, current, resolved.handle.get, target.name
                )
                resource_version = get_metadata(live).get("resourceVersion")
                if resource_version:
                    metadata["resourceVersion"] = resource_version

            response = self._request(
                deadline, kind, current, resolved.handle.update, target.name, manifest
            )

            flatten_model(response, model)
            op.identity = identity_of(response).token or current.token
            set_identity(model, op.identity)

        return model

    @traced_operation("kubebridge.delete")
    def delete(
        self,
        kind: str,
        api_version: str,
        identity: str,
        wait_for_deletion: bool = False,
        *,
        timeout: Timeout | None = None,
        deadline: Deadline | None = None,
    ) -> None:
        """
        Delete an object, optionally waiting until it is gone.

        Waiting reads the object until it is not found, up to the configured
        number of attempts and never past the deadline.

        Args:
            kind: Object kind
            api_version: Object apiVersion
            identity: Identity token from a previous create
            wait_for_deletion: Poll until the object no longer exists
            timeout: Operation timeout
            deadline: Explicit deadline, overrides timeout

        Raises:
            ResourceNotFoundError: If the object does not exist
            OperationTimeoutError: If the deadline expires while waiting
        """
        deadline = self._deadline(OPERATION_DELETE, None, timeout, deadline)

        with self.track_operation(
            OPERATION_DELETE, kind, api_version, deadline, identity
        ):
            target = decode_identity(identity)
            resolved = self._resolve(kind, api_version, target.namespace, deadline)
            current = ResourceIdentity(target.name, resolved.namespace)

            self._request(
                deadline,
                kind,
                current,
                resolved.handle.delete,
                target.name,
                propagation_policy=self.config.delete_propagation_policy,
            )

            if wait_for_deletion:
                self._wait_for_deletion(kind, resolved, current, deadline)

    @contextlib.contextmanager
    def track_operation(
        self,
        operation: str,
        kind: str,
        api_version: str,
        deadline: Deadline,
        identity: str = "",
    ) -> Iterator[TrackedOperation]:
        """
        Context manager logging the start and outcome of a CRUD operation.

        The yielded record's ``identity`` may be updated once it is known.
        Exceptions are logged and re-raised unchanged.
        """
        tracked = TrackedOperation(identity=identity)
        self.log.log_operation_start(operation, kind, api_version, identity or None)
        try:
            yield tracked
        except Exception as e:
            self.log.log_operation_error(
                operation, kind, api_version, tracked.identity, e, deadline.elapsed()
            )
            raise
        self.log.log_operation_success(
            operation, kind, api_version, tracked.identity, deadline.elapsed()
        )

    def _wait_for_deletion(
        self,
        kind: str,
        resolved: ResolvedResource,
        target: ResourceIdentity,
        deadline: Deadline,
    ) -> None:
        attempts = self.config.delete_poll_attempts
        for attempt in range(1, attempts + 1):
            try:
                self._request(deadline, kind, target, resolved.handle.get, target.name)
            except ResourceNotFoundError:
                logger.debug(f"{kind} {target.token} deleted after {attempt} reads")
                return

            if attempt < attempts:
                self._sleep(min(self.config.delete_poll_interval, deadline.remaining()))

        logger.debug(f"{kind} {target.token} still present after {attempts} reads")

    def _deadline(
        self,
        operation: str,
        model: BaseModel | None,
        timeout: Timeout | None,
        deadline: Deadline | None,
    ) -> Deadline:
        if deadline is not None:
            return deadline
        if timeout is None and model is not None:
            timeout = model_timeout(model, operation)
        if timeout is None:
            timeout = self.config.timeout_for(operation)
        return Deadline.from_timeout(timeout, operation=operation)

    def _resolve(
        self, kind: str, api_version: str, namespace: str, deadline: Deadline
    ) -> ResolvedResource:
        deadline.check()
        request_timeout = min(deadline.remaining(), self.config.discovery_timeout)
        try:
            return self.resolver.resource_for(
                kind, api_version, namespace, timeout=request_timeout
            )
        except urllib3.exceptions.HTTPError as e:
            if not is_timeout_error(e):
                raise
            raise deadline.timeout_error(e) from e

    def _request(
        self,
        deadline: Deadline,
        kind: str,
        target: ResourceIdentity,
        func: Callable[..., Any],
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        deadline.check()
        try:
            return func(*args, timeout=deadline.remaining(), **kwargs)
        except ApiException as e:
            raise api_error_from_exception(
                e, kind, target.name, target.namespace
            ) from e
        except urllib3.exceptions.HTTPError as e:
            if not is_timeout_error(e):
                raise
            raise deadline.timeout_error(e) from e
