"""
REST resolution for Kind/APIVersion pairs.

Maps a Kind and APIVersion onto the plural resource that serves it, its scope,
and a resource handle bound to the right namespace. Discovery is read from the
server on every call and never cached, so CustomResourceDefinitions installed
or removed between calls are seen immediately.
"""

import logging
from dataclasses import dataclass

import urllib3
from kubernetes.client.rest import ApiException

from kubebridge.constants import (
    DEFAULT_NAMESPACE,
    ERROR_DISCOVERY_FAILED,
    SCOPE_CLUSTER,
    SCOPE_NAMESPACE,
)
from kubebridge.errors import NoMatchError, ResolutionError
from kubebridge.utils.kubernetes import (
    APIGroupResources,
    DiscoveryInterface,
    DynamicInterface,
    GroupVersionResource,
    ResourceInterface,
    is_timeout_error,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RESTMapping:
    """The endpoint serving a kind: plural resource and scope."""

    gvr: GroupVersionResource
    kind: str
    scope: str

    @property
    def namespaced(self) -> bool:
        return self.scope == SCOPE_NAMESPACE

    @property
    def resource(self) -> str:
        return self.gvr.resource


@dataclass(frozen=True)
class ResolvedResource:
    """A resource handle ready for requests, with the mapping it came from."""

    handle: ResourceInterface
    mapping: RESTMapping
    namespace: str


def parse_api_version(api_version: str) -> tuple[str, str]:
    """
    Split an apiVersion into group and version.

    ``"apps/v1"`` gives ``("apps", "v1")`` and ``"v1"`` gives ``("", "v1")``.

    Raises:
        ResolutionError: If the apiVersion is empty or has more than one '/'
    """
    if not api_version:
        raise ResolutionError("apiVersion cannot be empty", retryable=False)

    parts = api_version.split("/")
    if len(parts) == 1:
        return "", parts[0]
    if len(parts) == 2 and parts[0] and parts[1]:
        return parts[0], parts[1]
    raise ResolutionError(
        f"Unexpected apiVersion '{api_version}'", retryable=False
    )


def find_rest_mapping(
    groups: list[APIGroupResources], kind: str, group: str, version: str
) -> RESTMapping:
    """
    Find the REST mapping for a group, version and kind in discovery data.

    The first matching resource wins; subresources are never matched.

    Raises:
        ResolutionError: If discovery failed for the requested group version
        NoMatchError: If no resource serves the kind
    """
    api_version = f"{group}/{version}" if group else version

    for api_group in groups:
        if api_group.group != group or version not in api_group.versions:
            continue

        if version in api_group.failed_versions:
            cause = api_group.failed_versions[version]
            raise ResolutionError(
                f"Discovery of {api_version} failed; cannot resolve kind '{kind}'",
                cause=cause,
            )

        for resource in api_group.resources.get(version, []):
            if resource.is_subresource or resource.kind != kind:
                continue
            return RESTMapping(
                gvr=GroupVersionResource(group, version, resource.name),
                kind=kind,
                scope=SCOPE_NAMESPACE if resource.namespaced else SCOPE_CLUSTER,
            )

    raise NoMatchError(kind, api_version)


class RESTResolver:
    """
    Resolves Kind/APIVersion pairs to bound resource handles.

    Holds no mutable state; concurrent calls are independent.
    """

    def __init__(
        self,
        discovery: DiscoveryInterface,
        dynamic_client: DynamicInterface,
        default_namespace: str = DEFAULT_NAMESPACE,
    ):
        self.discovery = discovery
        self.dynamic_client = dynamic_client
        self.default_namespace = default_namespace

    def resolve_mapping(
        self, kind: str, api_version: str, timeout: float | None = None
    ) -> RESTMapping:
        """
        Resolve the REST mapping for a kind from fresh discovery data.

        Args:
            kind: Object kind, e.g. "ConfigMap"
            api_version: "group/version", or "version" for the core group
            timeout: Request timeout for discovery requests

        Returns:
            RESTMapping with the plural resource and scope

        Raises:
            ResolutionError: If discovery fails
            NoMatchError: If the server does not serve the kind
        """
        group, version = parse_api_version(api_version)

        try:
            groups = self.discovery.list_api_group_resources(timeout=timeout)
        except ApiException as e:
            raise ResolutionError(
                ERROR_DISCOVERY_FAILED.format(f"HTTP {e.status} {e.reason}"), cause=e
            ) from e
        except urllib3.exceptions.HTTPError as e:
            if is_timeout_error(e):
                raise
            raise ResolutionError(ERROR_DISCOVERY_FAILED.format(e), cause=e) from e

        mapping = find_rest_mapping(groups, kind, group, version)
        logger.debug(
            f"Resolved {kind} {api_version} to {mapping.resource} ({mapping.scope})"
        )
        return mapping

    def resource_for(
        self,
        kind: str,
        api_version: str,
        namespace: str = "",
        timeout: float | None = None,
    ) -> ResolvedResource:
        """
        Resolve a kind and bind a resource handle to its endpoint.

        Namespaced kinds are bound to ``namespace``, or to the default
        namespace when none is given. Cluster-scoped kinds ignore
        ``namespace`` and get an unbound handle.

        Args:
            kind: Object kind
            api_version: "group/version", or "version" for the core group
            namespace: Requested namespace, may be empty
            timeout: Request timeout for discovery requests

        Returns:
            ResolvedResource with the handle, mapping and effective namespace
        """
        mapping = self.resolve_mapping(kind, api_version, timeout=timeout)
        resource = self.dynamic_client.resource(mapping.gvr, kind=mapping.kind)

        if mapping.namespaced:
            effective = namespace or self.default_namespace
            return ResolvedResource(
                handle=resource.namespace(effective),
                mapping=mapping,
                namespace=effective,
            )
        return ResolvedResource(handle=resource, mapping=mapping, namespace="")
