"""
Test configuration and fixtures for pytest.

Fixtures include: a mocked KubernetesClient, factories for Strimzi Kafka
and KafkaNodePool resources, and an inline replacement for
asyncio.to_thread.
"""

import os
import pytest
from unittest.mock import AsyncMock, Mock, patch


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "kubernetes: mark test as exercising Kubernetes API calls (mocked)")


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Keep KEKSPOSE_* variables of the developer's shell out of the tests."""
    for key in list(os.environ):
        if key.upper().startswith("KEKSPOSE_"):
            monkeypatch.delenv(key)

    from kekspose.config import get_settings
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def inline_to_thread():
    """Run asyncio.to_thread targets inline on the event loop."""
    async def run_inline(func, *args, **kwargs):
        return func(*args, **kwargs)

    with patch("asyncio.to_thread", new=run_inline):
        yield


@pytest.fixture
def mock_k8s_client():
    """KubernetesClient with every API call mocked."""
    k8s = Mock()
    k8s.get_kafka = AsyncMock(return_value=None)
    k8s.list_kafka_node_pools = AsyncMock(return_value=[])
    k8s.create_config_map = AsyncMock()
    k8s.create_pod = AsyncMock()
    k8s.read_pod = AsyncMock(return_value=None)
    k8s.delete_pod = AsyncMock()
    k8s.delete_config_map = AsyncMock()
    k8s.is_pod_ready = Mock(return_value=False)
    k8s.default_namespace = Mock(return_value="my-namespace")
    return k8s


@pytest.fixture
def kafka_factory():
    """Build a Kafka custom resource as returned by CustomObjectsApi."""
    def factory(
        name="my-cluster",
        namespace="my-namespace",
        listeners=None,
        replicas=3,
        ready=True,
        node_pools=False,
        conditions=None
    ):
        if listeners is None:
            listeners = [{"name": "plain", "port": 9092, "type": "internal", "tls": False}]
        if conditions is None and ready:
            conditions = [{"type": "Ready", "status": "True"}]

        metadata = {"name": name, "namespace": namespace}
        if node_pools:
            metadata["annotations"] = {"strimzi.io/node-pools": "enabled"}

        kafka_spec = {"version": "3.9.0", "listeners": listeners}
        if replicas is not None:
            kafka_spec["replicas"] = replicas

        obj = {
            "apiVersion": "kafka.strimzi.io/v1beta2",
            "kind": "Kafka",
            "metadata": metadata,
            "spec": {"kafka": kafka_spec},
        }
        if conditions is not None:
            obj["status"] = {"conditions": conditions}
        return obj

    return factory


@pytest.fixture
def node_pool_factory():
    """Build a KafkaNodePool custom resource with the given status."""
    def factory(name, roles, node_ids, cluster_name="my-cluster"):
        return {
            "apiVersion": "kafka.strimzi.io/v1beta2",
            "kind": "KafkaNodePool",
            "metadata": {
                "name": name,
                "namespace": "my-namespace",
                "labels": {"strimzi.io/cluster": cluster_name},
            },
            "spec": {"replicas": len(node_ids), "roles": roles},
            "status": {"roles": roles, "nodeIds": node_ids},
        }

    return factory
