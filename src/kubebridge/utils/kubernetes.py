"""
Kubernetes utilities for kubebridge.

This module provides the collaborators the engine talks to the API server
through:

Key functionality:
- Kubernetes client management and configuration
- API group/resource discovery over ``/api`` and ``/apis``
- Dynamic, schemaless resource handles bound to a plural resource and
  optionally a namespace, exposing get/create/update/delete

Requests go through ``kubernetes.dynamic``. Its own discoverer is not used:
it caches the server layout, while kubebridge reads it on every call.

The engine depends only on the ``DiscoveryInterface`` and
``DynamicInterface`` protocols, so hosts and tests can supply their own.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import urllib3
from kubernetes import client, config, dynamic
from kubernetes.client.rest import ApiException
from kubernetes.dynamic.resource import Resource

logger = logging.getLogger(__name__)


def get_kubernetes_client(retries: bool | int = False) -> client.ApiClient:
    """
    Get configured Kubernetes API client.

    This function handles both in-cluster and local development configurations.

    Args:
        retries: urllib3 retry setting for the client's connection pool

    Returns:
        Configured Kubernetes API client
    """
    try:
        # Try in-cluster config first (when running in a pod)
        config.load_incluster_config()
        logger.debug("Loaded in-cluster Kubernetes configuration")
    except config.ConfigException:
        try:
            # Fall back to local kubeconfig (for development)
            config.load_kube_config()
            logger.debug("Loaded kubeconfig from local environment")
        except config.ConfigException as e:
            logger.error(f"Failed to load Kubernetes configuration: {e}")
            raise

    return build_api_client(client.Configuration.get_default_copy(), retries=retries)


def build_api_client(
    configuration: client.Configuration | None = None,
    retries: bool | int = False,
) -> client.ApiClient:
    """
    Build an ApiClient with an explicit transport retry policy.

    urllib3 gives every retry the full request timeout, so a retried request
    can outlive the operation's deadline. Retries are off by default.

    Args:
        configuration: Client configuration, the library default if omitted
        retries: urllib3 retry setting (False disables retries)

    Returns:
        ApiClient whose connection pool uses ``retries``
    """
    configuration = configuration or client.Configuration.get_default_copy()
    configuration.retries = retries
    return client.ApiClient(configuration)


def request_timeout(timeout: float | None) -> tuple[float, float] | None:
    """
    Convert a timeout in seconds to the client's ``_request_timeout`` form.

    The client ignores a bare float, so connect and read timeouts are passed
    as a pair.
    """
    if timeout is None:
        return None
    return (timeout, timeout)


def is_timeout_error(error: BaseException) -> bool:
    """True for urllib3 timeouts, including ones wrapped by exhausted retries."""
    if isinstance(error, urllib3.exceptions.MaxRetryError):
        return isinstance(error.reason, urllib3.exceptions.TimeoutError)
    return isinstance(error, urllib3.exceptions.TimeoutError)


class _NoDiscoverer:
    """Discoverer for ``dynamic.DynamicClient`` that makes no requests."""

    def __init__(self, client, cache_file=None):
        self.client = client


def dynamic_client_for(api_client: client.ApiClient) -> dynamic.DynamicClient:
    """Wrap an ApiClient in the library's dynamic client without discovery."""
    return dynamic.DynamicClient(api_client, discoverer=_NoDiscoverer)


def _as_dict(result: Any) -> Any:
    return result.to_dict() if hasattr(result, "to_dict") else result


@dataclass(frozen=True)
class APIResource:
    """A resource served under one group version, as listed by discovery."""

    name: str
    kind: str
    namespaced: bool
    verbs: tuple[str, ...] = ()
    singular_name: str = ""

    @property
    def is_subresource(self) -> bool:
        return "/" in self.name


@dataclass
class APIGroupResources:
    """
    One API group with the resources of each of its served versions.

    ``failed_versions`` holds the group versions whose resource lists could
    not be fetched, keyed by version, so resolution can report the real cause
    instead of a missing kind.
    """

    group: str
    versions: list[str]
    preferred_version: str
    resources: dict[str, list[APIResource]] = field(default_factory=dict)
    failed_versions: dict[str, Exception] = field(default_factory=dict)


@dataclass(frozen=True)
class GroupVersionResource:
    """Addresses a plural resource endpoint."""

    group: str
    version: str
    resource: str

    @property
    def group_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version


class ResourceInterface(Protocol):
    """Verbs available on a resolved resource endpoint."""

    def get(self, name: str, timeout: float | None = None) -> dict[str, Any]: ...

    def create(
        self, body: dict[str, Any], timeout: float | None = None
    ) -> dict[str, Any]: ...

    def update(
        self, name: str, body: dict[str, Any], timeout: float | None = None
    ) -> dict[str, Any]: ...

    def delete(
        self,
        name: str,
        propagation_policy: str | None = None,
        timeout: float | None = None,
    ) -> Any: ...


class NamespaceableResourceInterface(ResourceInterface, Protocol):
    """An unbound resource endpoint that can be bound to a namespace."""

    def namespace(self, namespace: str) -> ResourceInterface: ...


class DynamicInterface(Protocol):
    """Factory for resource handles."""

    def resource(
        self, gvr: GroupVersionResource, kind: str = ""
    ) -> NamespaceableResourceInterface: ...


class DiscoveryInterface(Protocol):
    """Enumerates the API groups and resources the server exposes."""

    def list_api_group_resources(
        self, timeout: float | None = None
    ) -> list[APIGroupResources]: ...


class KubernetesDiscovery:
    """
    Discovery over the API server's ``/api`` and ``/apis`` endpoints.

    Nothing is cached: every call reads the current server layout, so newly
    installed CustomResourceDefinitions are visible immediately.
    """

    def __init__(self, api_client: client.ApiClient):
        self.api_client = api_client
        self.dynamic = dynamic_client_for(api_client)

    def list_api_group_resources(
        self, timeout: float | None = None
    ) -> list[APIGroupResources]:
        """
        Enumerate every API group, version and resource the server serves.

        Failures of the root ``/api`` or ``/apis`` listings propagate. A group
        version whose resource list cannot be fetched (commonly an unavailable
        aggregated API) is recorded in ``failed_versions`` instead.

        Args:
            timeout: Request timeout in seconds for each discovery request

        Returns:
            List of groups with their per-version resources, core group first
        """
        versions = list(self._get("/api", timeout).get("versions") or [])
        core = APIGroupResources(
            group="",
            versions=versions,
            preferred_version=versions[0] if versions else "",
        )
        for version in versions:
            self._collect(core, version, f"/api/{version}", timeout)
        groups = [core]

        for api_group in self._get("/apis", timeout).get("groups") or []:
            group_versions = api_group.get("versions") or []
            names = [gv["version"] for gv in group_versions]
            preferred = (api_group.get("preferredVersion") or {}).get("version")
            group = APIGroupResources(
                group=api_group["name"],
                versions=names,
                preferred_version=preferred or (names[0] if names else ""),
            )
            for gv in group_versions:
                self._collect(
                    group, gv["version"], f"/apis/{gv['groupVersion']}", timeout
                )
            groups.append(group)

        logger.debug(f"Discovered {len(groups)} API groups")
        return groups

    def _get(self, path: str, timeout: float | None) -> dict[str, Any]:
        result = self.dynamic.request(
            "get", path, _request_timeout=request_timeout(timeout)
        )
        return _as_dict(result) or {}

    def _collect(
        self,
        group: APIGroupResources,
        version: str,
        path: str,
        timeout: float | None,
    ) -> None:
        try:
            data = self._get(path, timeout)
        except ApiException as e:
            logger.debug(f"Discovery of {path} failed with status {e.status}")
            group.failed_versions[version] = e
            return

        group.resources[version] = [
            APIResource(
                name=item["name"],
                kind=item["kind"],
                namespaced=bool(item.get("namespaced", False)),
                verbs=tuple(item.get("verbs") or ()),
                singular_name=item.get("singularName", ""),
            )
            for item in data.get("resources") or []
        ]


class ResourceHandle:
    """
    Schemaless CRUD against one plural resource endpoint.

    A handle is unbound (cluster scope) until :meth:`namespace` returns a copy
    bound to a namespace. Responses are plain dicts, exactly as decoded from
    the server's JSON.
    """

    def __init__(
        self,
        dynamic_client: dynamic.DynamicClient,
        gvr: GroupVersionResource,
        kind: str,
        namespace: str | None = None,
    ):
        self.dynamic = dynamic_client
        self.gvr = gvr
        self.kind = kind
        self.bound_namespace = namespace

    def namespace(self, namespace: str) -> "ResourceHandle":
        return ResourceHandle(self.dynamic, self.gvr, self.kind, namespace)

    @property
    def resource(self) -> Resource:
        return Resource(
            prefix="apis" if self.gvr.group else "api",
            group=self.gvr.group,
            api_version=self.gvr.version,
            kind=self.kind,
            name=self.gvr.resource,
            namespaced=self.bound_namespace is not None,
            client=self.dynamic,
        )

    def path(self, name: str | None = None) -> str:
        return self.resource.path(name=name, namespace=self.bound_namespace)

    def get(self, name: str, timeout: float | None = None) -> dict[str, Any]:
        return self._request(self.dynamic.get, "GET", timeout, name=name)

    def create(
        self, body: dict[str, Any], timeout: float | None = None
    ) -> dict[str, Any]:
        return self._request(self.dynamic.create, "POST", timeout, body=body)

    def update(
        self, name: str, body: dict[str, Any], timeout: float | None = None
    ) -> dict[str, Any]:
        return self._request(
            self.dynamic.replace, "PUT", timeout, name=name, body=body
        )

    def delete(
        self,
        name: str,
        propagation_policy: str | None = None,
        timeout: float | None = None,
    ) -> Any:
        options = {}
        if propagation_policy:
            options["propagation_policy"] = propagation_policy
        return self._request(
            self.dynamic.delete, "DELETE", timeout, name=name, **options
        )

    def _request(
        self, verb, method: str, timeout: float | None, **kwargs: Any
    ) -> Any:
        logger.debug(
            f"{method} {self.gvr.group_version}/{self.gvr.resource} "
            f"name={kwargs.get('name')} namespace={self.bound_namespace}"
        )
        result = verb(
            self.resource,
            namespace=self.bound_namespace,
            _request_timeout=request_timeout(timeout),
            **kwargs,
        )
        return _as_dict(result)

    def __repr__(self) -> str:
        return (
            f"ResourceHandle({self.gvr.group_version}/{self.gvr.resource}, "
            f"namespace={self.bound_namespace!r})"
        )


class DynamicClient:
    """Creates resource handles sharing one ApiClient."""

    def __init__(self, api_client: client.ApiClient):
        self.api_client = api_client
        self.dynamic = dynamic_client_for(api_client)

    def resource(self, gvr: GroupVersionResource, kind: str = "") -> ResourceHandle:
        return ResourceHandle(self.dynamic, gvr, kind or gvr.resource)
