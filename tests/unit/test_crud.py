"""
Unit tests for the CRUD orchestrator.

These run ResourceCRUD against the in-memory cluster from conftest.py, so
resolution, mapping, identity handling and deadlines are exercised together.
"""

import time
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
import urllib3
from kubernetes.client.rest import ApiException

from kubebridge.errors import (
    ConflictError,
    IdentityError,
    KubernetesAPIError,
    NoMatchError,
    OperationTimeoutError,
    ResourceNotFoundError,
)
from kubebridge.models.common import ObjectMetadata, OperationTimeouts
from kubebridge.models.core import ConfigMapModel, NamespaceModel
from kubebridge.services.crud import ResourceCRUD, model_timeout
from kubebridge.services.rest_resolver import RESTResolver
from kubebridge.utils.deadline import Deadline
from kubebridge.utils.kubernetes import DynamicClient, is_timeout_error
from tests.utils.fake_cluster import FakeDiscovery
from tests.utils.local_api_server import api_client_for


def _config_map(name="cm1", namespace=None, data=None):
    return ConfigMapModel(
        metadata=ObjectMetadata(name=name, namespace=namespace),
        data=data if data is not None else {"k": "v"},
    )


class TestCreate:
    """Test cases for create."""

    def test_create_defaults_namespace_and_sets_identity(self, crud, cluster):
        """A namespaced kind without namespace lands in the default namespace."""
        model = _config_map()

        result = crud.create("ConfigMap", "v1", model)

        assert result is model
        assert model.id == "cm1/default"
        assert model.data == {"k": "v"}
        assert model.metadata.namespace == "default"
        assert ("configmaps", "default", "cm1") in cluster.objects

    def test_create_stamps_type_meta(self, crud, cluster):
        """apiVersion and kind are set on the submitted manifest."""
        crud.create("ConfigMap", "v1", _config_map())

        verb, resource, namespace, name, _, extra = cluster.calls[0]
        assert (verb, resource, namespace, name) == ("create", "configmaps", "default", "cm1")
        body = extra["body"]
        assert body["apiVersion"] == "v1"
        assert body["kind"] == "ConfigMap"
        assert body["metadata"] == {"name": "cm1", "namespace": "default"}
        assert body["data"] == {"k": "v"}
        assert "id" not in body
        assert "timeouts" not in body

    def test_create_honors_explicit_namespace(self, crud, cluster):
        """An explicit metadata namespace is used as given."""
        model = _config_map(namespace="team-a")

        crud.create("ConfigMap", "v1", model)

        assert model.id == "cm1/team-a"
        assert ("configmaps", "team-a", "cm1") in cluster.objects

    def test_create_cluster_scoped_ignores_namespace(self, crud, cluster):
        """Cluster-scoped kinds drop any namespace and get a name-only token."""
        model = NamespaceModel(metadata=ObjectMetadata(name="ns1", namespace="ignored"))

        crud.create("Namespace", "v1", model)

        assert model.id == "ns1"
        assert model.metadata.namespace is None
        _, _, namespace, _, _, extra = cluster.calls[0]
        assert namespace is None
        assert "namespace" not in extra["body"]["metadata"]

    def test_create_refreshes_server_fields(self, crud):
        """Server-populated metadata is flattened back into the model."""
        model = _config_map()

        crud.create("ConfigMap", "v1", model)

        assert model.metadata.resource_version == "1"
        assert model.metadata.uid == "uid-cm1"

    def test_create_unknown_kind_raises_no_match(self, crud, cluster):
        """An unserved kind surfaces as NoMatchError and sends no request."""
        with pytest.raises(NoMatchError) as exc_info:
            crud.create("Widget", "example.com/v1", _config_map())

        assert exc_info.value.kind == "Widget"
        assert cluster.calls == []

    def test_create_existing_object_raises_conflict(self, crud):
        """Creating an object twice surfaces the server's 409."""
        crud.create("ConfigMap", "v1", _config_map())

        with pytest.raises(ConflictError):
            crud.create("ConfigMap", "v1", _config_map())


class TestRead:
    """Test cases for read."""

    def test_read_round_trip(self, crud):
        """Reading a created object yields the same data and identity."""
        crud.create("ConfigMap", "v1", _config_map(data={"a": "1", "b": "2"}))

        model = crud.read("ConfigMap", "v1", "cm1/default", ConfigMapModel())

        assert model.id == "cm1/default"
        assert model.metadata.name == "cm1"
        assert model.data == {"a": "1", "b": "2"}
        assert model.binary_data is None
        assert model.immutable is None

    def test_read_missing_object_raises_not_found(self, crud):
        """A missing object is reported as ResourceNotFoundError."""
        with pytest.raises(ResourceNotFoundError) as exc_info:
            crud.read("ConfigMap", "v1", "missing/default", ConfigMapModel())

        error = exc_info.value
        assert error.kind == "ConfigMap"
        assert error.name == "missing"
        assert error.namespace == "default"
        assert error.retryable is False

    def test_read_name_only_token_uses_default_namespace(self, crud, cluster):
        """A token without namespace reads from the default namespace."""
        crud.create("ConfigMap", "v1", _config_map())

        model = crud.read("ConfigMap", "v1", "cm1", ConfigMapModel())

        assert model.metadata.namespace == "default"
        assert model.id == "cm1"

    def test_read_with_server_field_stripping(self, crud):
        """When enabled, server-managed metadata is removed before mapping."""
        crud.create("ConfigMap", "v1", _config_map())
        crud.config = crud.config.model_copy(update={"strip_server_fields": True})

        model = crud.read("ConfigMap", "v1", "cm1/default", ConfigMapModel())

        assert model.metadata.resource_version is None
        assert model.metadata.uid is None
        assert model.data == {"k": "v"}

    def test_read_rediscovers_every_call(self, crud, cluster):
        """Discovery is fetched again for each operation."""
        crud.create("ConfigMap", "v1", _config_map())
        crud.read("ConfigMap", "v1", "cm1/default", ConfigMapModel())
        crud.read("ConfigMap", "v1", "cm1/default", ConfigMapModel())

        assert len(cluster.discovery_calls) == 3

    def test_read_empty_identity_raises(self, crud):
        """An empty identity token is rejected before any request."""
        with pytest.raises(IdentityError):
            crud.read("ConfigMap", "v1", "", ConfigMapModel())


class TestUpdate:
    """Test cases for update."""

    def test_update_by_identity(self, crud, cluster):
        """Update replaces the object addressed by the identity field."""
        model = crud.create("ConfigMap", "v1", _config_map())
        model.data = {"k": "changed"}

        crud.update("ConfigMap", "v1", model)

        assert cluster.objects[("configmaps", "default", "cm1")]["data"] == {"k": "changed"}
        assert model.metadata.resource_version == "2"
        assert model.id == "cm1/default"

    def test_update_fetches_missing_resource_version(self, crud, cluster):
        """Without a resourceVersion the live one is fetched before the PUT."""
        crud.create("ConfigMap", "v1", _config_map())
        model = _config_map(data={"k": "fresh"})

        crud.update("ConfigMap", "v1", model)

        verbs = [call[0] for call in cluster.calls]
        assert verbs == ["create", "get", "update"]
        update_body = cluster.calls[-1][5]["body"]
        assert update_body["metadata"]["resourceVersion"] == "1"
        assert update_body["kind"] == "ConfigMap"
        assert model.id == "cm1/default"

    def test_update_stale_resource_version_raises_conflict(self, crud):
        """A stale resourceVersion surfaces as ConflictError."""
        model = crud.create("ConfigMap", "v1", _config_map())
        crud.update("ConfigMap", "v1", crud.read("ConfigMap", "v1", model.id, ConfigMapModel()))

        model.data = {"k": "late"}
        with pytest.raises(ConflictError) as exc_info:
            crud.update("ConfigMap", "v1", model)

        assert exc_info.value.status == 409

    def test_update_without_any_name_raises(self, crud):
        """A model with neither identity nor metadata.name cannot be updated."""
        with pytest.raises(IdentityError):
            crud.update("ConfigMap", "v1", ConfigMapModel(data={"k": "v"}))

    def test_update_missing_object_raises_not_found(self, crud):
        """Updating an absent object reports not found."""
        with pytest.raises(ResourceNotFoundError):
            crud.update("ConfigMap", "v1", _config_map())


class TestDelete:
    """Test cases for delete."""

    def test_delete_removes_object(self, crud, cluster):
        """Delete sends the configured propagation policy."""
        crud.create("ConfigMap", "v1", _config_map())

        crud.delete("ConfigMap", "v1", "cm1/default")

        assert cluster.objects == {}
        verb, _, _, name, _, extra = cluster.calls[-1]
        assert (verb, name) == ("delete", "cm1")
        assert extra["propagation_policy"] == "Background"

    def test_delete_missing_object_raises_not_found(self, crud):
        """Deleting an absent object is a distinguishable outcome."""
        with pytest.raises(ResourceNotFoundError):
            crud.delete("ConfigMap", "v1", "ghost/default")

    def test_delete_without_wait_does_not_poll(self, crud, cluster, sleeps):
        """Without waiting, no reads follow the delete."""
        crud.create("ConfigMap", "v1", _config_map())
        cluster.linger_reads = 3

        crud.delete("ConfigMap", "v1", "cm1/default")

        assert [call[0] for call in cluster.calls] == ["create", "delete"]
        assert sleeps == []

    def test_delete_wait_polls_until_gone(self, crud, cluster, sleeps):
        """Waiting reads until the object is not found."""
        crud.create("ConfigMap", "v1", _config_map())
        cluster.linger_reads = 2

        crud.delete("ConfigMap", "v1", "cm1/default", wait_for_deletion=True)

        assert [call[0] for call in cluster.calls] == [
            "create",
            "delete",
            "get",
            "get",
            "get",
        ]
        assert sleeps == [0.5, 0.5]

    def test_delete_wait_gives_up_after_attempts(self, crud, cluster, sleeps):
        """Polling is bounded by the configured number of attempts."""
        crud.create("ConfigMap", "v1", _config_map())
        cluster.linger_reads = 100

        crud.delete("ConfigMap", "v1", "cm1/default", wait_for_deletion=True)

        reads = [call for call in cluster.calls if call[0] == "get"]
        assert len(reads) == 5
        assert len(sleeps) == 4

    def test_delete_wait_respects_deadline(self, resolver, test_settings, cluster):
        """An expiring deadline stops polling with OperationTimeoutError."""
        now = [0.0]
        deadline = Deadline(3.0, operation="delete", clock=lambda: now[0])

        def advance(seconds):
            now[0] += seconds

        crud = ResourceCRUD(
            resolver,
            test_settings.model_copy(update={"delete_poll_interval": 2.0}),
            sleep=advance,
        )
        crud.create("ConfigMap", "v1", _config_map())
        cluster.linger_reads = 100

        with pytest.raises(OperationTimeoutError) as exc_info:
            crud.delete(
                "ConfigMap", "v1", "cm1/default", wait_for_deletion=True, deadline=deadline
            )

        assert exc_info.value.operation == "delete"
        assert now[0] == 3.0


class TestTimeouts:
    """Test cases for deadline selection and propagation."""

    def test_request_timeout_is_remaining_budget(self, crud, cluster):
        """Requests receive at most the operation timeout."""
        crud.create("ConfigMap", "v1", _config_map(), timeout=5)

        timeout = cluster.calls[0][4]
        assert 0 < timeout <= 5

    def test_discovery_timeout_is_capped(self, crud, cluster):
        """Discovery requests are bounded by the discovery timeout."""
        crud.create("ConfigMap", "v1", _config_map(), timeout=timedelta(hours=1))

        assert cluster.discovery_calls[0] <= crud.config.discovery_timeout

    def test_model_timeouts_block_is_used(self, crud, cluster):
        """A model's own timeouts block overrides the configured default."""
        model = _config_map()
        model.timeouts = OperationTimeouts(create="2s")

        crud.create("ConfigMap", "v1", model)

        assert cluster.calls[0][4] <= 2

    def test_settings_timeout_is_fallback(self, crud, cluster):
        """Without explicit or model timeouts the configured default applies."""
        crud.create("ConfigMap", "v1", _config_map())
        crud.read("ConfigMap", "v1", "cm1/default", ConfigMapModel())

        assert 0 < cluster.calls[-1][4] <= 60

    def test_expired_deadline_sends_no_request(self, crud, cluster):
        """An already expired deadline fails before discovery."""
        deadline = Deadline(0, operation="read")

        with pytest.raises(OperationTimeoutError):
            crud.read("ConfigMap", "v1", "cm1/default", ConfigMapModel(), deadline=deadline)

        assert cluster.discovery_calls == []

    def test_client_timeout_maps_to_operation_timeout(self, test_settings):
        """A urllib3 timeout on a request becomes OperationTimeoutError."""
        handle = MagicMock()
        handle.get.side_effect = urllib3.exceptions.ReadTimeoutError(None, "/", "timed out")
        resolver = MagicMock()
        resolver.resource_for.return_value = MagicMock(handle=handle, namespace="default")
        crud = ResourceCRUD(resolver, test_settings)

        with pytest.raises(OperationTimeoutError) as exc_info:
            crud.read("ConfigMap", "v1", "cm1/default", ConfigMapModel())

        assert isinstance(exc_info.value.cause, urllib3.exceptions.TimeoutError)

    def test_exhausted_retries_map_to_operation_timeout(self, test_settings):
        """Timeouts wrapped in MaxRetryError also become OperationTimeoutError."""
        timeout = urllib3.exceptions.ReadTimeoutError(None, "/", "timed out")
        handle = MagicMock()
        handle.get.side_effect = urllib3.exceptions.MaxRetryError(None, "/", reason=timeout)
        resolver = MagicMock()
        resolver.resource_for.return_value = MagicMock(handle=handle, namespace="default")
        crud = ResourceCRUD(resolver, test_settings)

        with pytest.raises(OperationTimeoutError) as exc_info:
            crud.read("ConfigMap", "v1", "cm1/default", ConfigMapModel())

        assert isinstance(exc_info.value.cause, urllib3.exceptions.MaxRetryError)

    def test_other_transport_errors_propagate(self, test_settings):
        handle = MagicMock()
        handle.get.side_effect = urllib3.exceptions.ProtocolError("connection reset")
        resolver = MagicMock()
        resolver.resource_for.return_value = MagicMock(handle=handle, namespace="default")
        crud = ResourceCRUD(resolver, test_settings)

        with pytest.raises(urllib3.exceptions.ProtocolError):
            crud.read("ConfigMap", "v1", "cm1/default", ConfigMapModel())

    def test_discovery_retries_exhausted_on_timeout(self, crud, cluster):
        timeout = urllib3.exceptions.ConnectTimeoutError("timed out")
        cluster.discovery_error = urllib3.exceptions.MaxRetryError(None, "/api", reason=timeout)

        with pytest.raises(OperationTimeoutError):
            crud.read("ConfigMap", "v1", "cm1/default", ConfigMapModel())

    def test_discovery_timeout_maps_to_operation_timeout(self, crud, cluster):
        """A urllib3 timeout during discovery becomes OperationTimeoutError."""
        cluster.discovery_error = urllib3.exceptions.ConnectTimeoutError("timed out")

        with pytest.raises(OperationTimeoutError):
            crud.read("ConfigMap", "v1", "cm1/default", ConfigMapModel())

    def test_server_error_maps_to_api_error(self, test_settings):
        """Other API errors surface as KubernetesAPIError with the status."""
        handle = MagicMock()
        handle.get.side_effect = ApiException(status=500, reason="Internal Server Error")
        resolver = MagicMock()
        resolver.resource_for.return_value = MagicMock(handle=handle, namespace="default")
        crud = ResourceCRUD(resolver, test_settings)

        with pytest.raises(KubernetesAPIError) as exc_info:
            crud.read("ConfigMap", "v1", "cm1/default", ConfigMapModel())

        assert exc_info.value.status == 500
        assert exc_info.value.retryable is True

    def test_model_timeout_helper(self):
        """model_timeout finds the timeouts block and parses durations."""
        model = _config_map()
        assert model_timeout(model, "create") is None

        model.timeouts = OperationTimeouts(read="1m30s")
        assert model_timeout(model, "read") == 90.0
        assert model_timeout(model, "delete") is None


class TestFromApiClient:
    """Test cases for building an orchestrator from an ApiClient."""

    def test_from_api_client_wires_collaborators(self, test_settings):
        """The resolver uses discovery and dynamic handles on the same client."""
        api_client = MagicMock()

        crud = ResourceCRUD.from_api_client(
            api_client, test_settings.model_copy(update={"default_namespace": "ops"})
        )

        assert crud.resolver.discovery.api_client is api_client
        assert crud.resolver.dynamic_client.api_client is api_client
        assert crud.resolver.default_namespace == "ops"


class TestRealClient:
    """CRUD through a real ApiClient against the local API server."""

    def test_lifecycle(self, cluster, local_api_client, test_settings):
        crud = ResourceCRUD.from_api_client(local_api_client, test_settings)
        model = _config_map()

        crud.create("ConfigMap", "v1", model, timeout=10)
        assert model.id == "cm1/default"

        fetched = crud.read("ConfigMap", "v1", model.id, ConfigMapModel(), timeout=10)
        assert fetched.data == {"k": "v"}
        assert fetched.metadata.resource_version == "1"

        fetched.data = {"k": "v2"}
        crud.update("ConfigMap", "v1", fetched, timeout=10)
        assert cluster.objects[("configmaps", "default", "cm1")]["data"] == {"k": "v2"}

        crud.delete("ConfigMap", "v1", model.id, wait_for_deletion=True, timeout=10)
        with pytest.raises(ResourceNotFoundError):
            crud.read("ConfigMap", "v1", model.id, ConfigMapModel(), timeout=10)

    def test_unknown_kind(self, local_api_client, test_settings):
        crud = ResourceCRUD.from_api_client(local_api_client, test_settings)

        with pytest.raises(NoMatchError):
            crud.read("Widget", "example.com/v1", "w1", ConfigMapModel(), timeout=10)


class TestRealClientDeadlines:
    """A server that never answers fails the operation within its budget."""

    def test_discovery_request(self, silent_server, test_settings):
        api_client = api_client_for(silent_server.url)
        crud = ResourceCRUD.from_api_client(api_client, test_settings)

        started = time.monotonic()
        with pytest.raises(OperationTimeoutError) as exc_info:
            crud.read("ConfigMap", "v1", "cm1/default", ConfigMapModel(), timeout=1)
        elapsed = time.monotonic() - started
        api_client.close()

        assert elapsed < 3
        assert is_timeout_error(exc_info.value.cause)

    def test_resource_request(self, cluster, silent_server, test_settings):
        api_client = api_client_for(silent_server.url)
        resolver = RESTResolver(FakeDiscovery(cluster), DynamicClient(api_client))
        crud = ResourceCRUD(resolver, test_settings)

        started = time.monotonic()
        with pytest.raises(OperationTimeoutError) as exc_info:
            crud.read("ConfigMap", "v1", "cm1/default", ConfigMapModel(), timeout=1)
        elapsed = time.monotonic() - started
        api_client.close()

        assert elapsed < 3
        assert is_timeout_error(exc_info.value.cause)

    def test_retried_request(self, cluster, silent_server, test_settings):
        """With transport retries on, the exhausted retries still map to a timeout."""
        api_client = api_client_for(silent_server.url, retries=1)
        resolver = RESTResolver(FakeDiscovery(cluster), DynamicClient(api_client))
        crud = ResourceCRUD(resolver, test_settings)

        started = time.monotonic()
        with pytest.raises(OperationTimeoutError) as exc_info:
            crud.read("ConfigMap", "v1", "cm1/default", ConfigMapModel(), timeout=0.5)
        elapsed = time.monotonic() - started
        api_client.close()

        assert elapsed < 3
        assert isinstance(exc_info.value.cause, urllib3.exceptions.MaxRetryError)
