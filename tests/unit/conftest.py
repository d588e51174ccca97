"""Shared pytest fixtures for kubebridge unit tests."""

import pytest

from kubebridge.services.crud import ResourceCRUD
from kubebridge.services.rest_resolver import RESTResolver
from kubebridge.settings import Settings
from tests.utils.fake_cluster import FakeCluster, FakeDiscovery, FakeDynamicClient
from tests.utils.local_api_server import LocalAPIServer, SilentServer, api_client_for


@pytest.fixture
def cluster():
    """An empty in-memory cluster serving core/v1 and apps/v1."""
    return FakeCluster()


@pytest.fixture
def resolver(cluster):
    """RESTResolver wired to the in-memory cluster."""
    return RESTResolver(FakeDiscovery(cluster), FakeDynamicClient(cluster))


@pytest.fixture
def test_settings():
    """Settings with fast deletion polling."""
    return Settings().model_copy(
        update={
            "delete_poll_interval": 0.5,
            "delete_poll_attempts": 5,
            "read_timeout": 60.0,
        }
    )


@pytest.fixture
def sleeps():
    """Records the pauses requested by deletion polling."""
    return []


@pytest.fixture
def crud(resolver, test_settings, sleeps):
    """ResourceCRUD over the in-memory cluster with a non-blocking sleep."""
    return ResourceCRUD(resolver, test_settings, sleep=sleeps.append)


@pytest.fixture
def local_api(cluster):
    """The in-memory cluster served over HTTP on a local port."""
    server = LocalAPIServer(cluster).start()
    yield server
    server.stop()


@pytest.fixture
def local_api_client(local_api):
    """A real ApiClient talking to the local API server."""
    api_client = api_client_for(local_api.url)
    yield api_client
    api_client.close()


@pytest.fixture
def silent_server():
    """An endpoint that accepts connections and never answers."""
    server = SilentServer()
    yield server
    server.close()
