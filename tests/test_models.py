"""
Unit tests for the Kekspose data model.

Tests:
- Parsing of Strimzi Kafka and KafkaNodePool resources
- Kafka readiness and node pool detection
- Highest node ID and the port plan
"""

import pytest

from kekspose.models import (
    ClusterDescriptor,
    KafkaNodePool,
    KafkaResource,
    highest_node_id,
    node_port,
    port_plan,
    proxy_ports,
)


@pytest.mark.unit
class TestKafkaResource:
    """Test the Kafka resource view."""

    def test_from_custom_object(self, kafka_factory):
        """Test listeners, replicas and conditions are read from the resource."""
        kafka = KafkaResource.from_custom_object(kafka_factory(
            listeners=[
                {"name": "plain", "port": 9092, "type": "internal", "tls": False},
                {"name": "tls", "port": 9093, "type": "internal", "tls": True},
            ],
            replicas=5
        ))

        assert kafka.name == "my-cluster"
        assert kafka.namespace == "my-namespace"
        assert [listener.name for listener in kafka.listeners] == ["plain", "tls"]
        assert kafka.listeners[1].tls is True
        assert kafka.replicas == 5
        assert kafka.is_ready is True
        assert kafka.uses_node_pools is False

    def test_tls_defaults_to_false(self):
        """Test a listener without the tls field is treated as unencrypted."""
        kafka = KafkaResource.from_custom_object({
            "metadata": {"name": "my-cluster", "namespace": "my-namespace"},
            "spec": {"kafka": {"listeners": [{"name": "plain", "port": 9092, "type": "internal"}]}},
        })

        assert kafka.listeners[0].tls is False

    def test_not_ready_without_status(self, kafka_factory):
        """Test a resource without status conditions is not ready."""
        kafka = KafkaResource.from_custom_object(kafka_factory(ready=False))

        assert kafka.conditions is None
        assert kafka.is_ready is False

    def test_not_ready_with_ready_false(self, kafka_factory):
        """Test Ready=False is not ready."""
        kafka = KafkaResource.from_custom_object(kafka_factory(
            conditions=[{"type": "Ready", "status": "False"}]
        ))

        assert kafka.is_ready is False

    def test_ready_among_other_conditions(self, kafka_factory):
        """Test any Ready=True condition makes the resource ready."""
        kafka = KafkaResource.from_custom_object(kafka_factory(
            conditions=[
                {"type": "Warning", "status": "True"},
                {"type": "Ready", "status": "True"},
            ]
        ))

        assert kafka.is_ready is True

    def test_node_pools_annotation(self, kafka_factory):
        """Test the node pools annotation must be exactly 'enabled'."""
        assert KafkaResource.from_custom_object(kafka_factory(node_pools=True)).uses_node_pools is True

        obj = kafka_factory()
        obj["metadata"]["annotations"] = {"strimzi.io/node-pools": "disabled"}
        assert KafkaResource.from_custom_object(obj).uses_node_pools is False


@pytest.mark.unit
class TestKafkaNodePool:
    """Test the KafkaNodePool view."""

    def test_from_custom_object(self, node_pool_factory):
        """Test roles and node IDs come from the status."""
        pool = KafkaNodePool.from_custom_object(node_pool_factory("brokers", ["broker"], [0, 1, 2]))

        assert pool.name == "brokers"
        assert pool.node_ids == [0, 1, 2]
        assert pool.has_broker_role is True

    def test_controller_only_pool(self, node_pool_factory):
        """Test a controller-only pool has no broker role."""
        pool = KafkaNodePool.from_custom_object(node_pool_factory("controllers", ["controller"], [3, 4, 5]))

        assert pool.has_broker_role is False

    def test_missing_status(self):
        """Test a pool without status has no nodes."""
        pool = KafkaNodePool.from_custom_object({"metadata": {"name": "new-pool"}})

        assert pool.roles == []
        assert pool.node_ids == []


@pytest.mark.unit
class TestClusterDescriptor:
    """Test the cluster descriptor and the highest node ID."""

    def test_highest_node_id(self):
        assert highest_node_id({0, 1, 2}) == 2
        assert highest_node_id({0, 1, 2, 100, 101, 102}) == 102
        assert highest_node_id([7]) == 7

    def test_highest_node_id_of_empty_set(self):
        """Test an empty set of nodes is an error rather than a default."""
        with pytest.raises(ValueError):
            highest_node_id(set())

    def test_descriptor_is_immutable(self):
        descriptor = ClusterDescriptor("my-cluster-kafka-bootstrap:9092", {2, 0, 1})

        assert isinstance(descriptor.node_ids, frozenset)
        assert descriptor.sorted_node_ids() == [0, 1, 2]
        assert descriptor.highest_node_id() == 2
        with pytest.raises(AttributeError):
            descriptor.bootstrap_address = "other:9092"

    def test_descriptor_rejects_negative_node_ids(self):
        with pytest.raises(ValueError):
            ClusterDescriptor("my-cluster-kafka-bootstrap:9092", {-1, 0})

    def test_descriptor_needs_nodes(self):
        """Test a cluster without broker nodes cannot be described."""
        with pytest.raises(ValueError):
            ClusterDescriptor("my-cluster-kafka-bootstrap:9092", set())


@pytest.mark.unit
class TestPortPlan:
    """Test the port allocation shared by the proxy and the tunnels."""

    def test_node_port(self):
        assert node_port(50000, 0) == 50001
        assert node_port(50000, 101) == 50102

    def test_contiguous_node_ids(self):
        assert port_plan(50000, {0, 1, 2}) == {0: 50001, 1: 50002, 2: 50003}

    def test_sparse_node_ids(self):
        """Test gaps in the node IDs keep every node on its own port."""
        plan = port_plan(50000, {0, 1, 2, 100, 101, 102})

        assert list(plan) == [0, 1, 2, 100, 101, 102]
        assert plan[100] == 50101
        assert plan[102] == 50103
        assert len(set(plan.values())) == len(plan)
        assert 50000 not in plan.values()

    def test_proxy_ports(self):
        """Test the bootstrap port comes first."""
        assert proxy_ports(50000, {2, 0, 1}) == [50000, 50001, 50002, 50003]

    def test_ports_beyond_range(self):
        """Test a plan that needs a port above 65535 is rejected."""
        with pytest.raises(ValueError):
            port_plan(65530, {0, 1, 2, 3, 4, 5})

    def test_highest_valid_port(self):
        assert port_plan(65533, {0, 1}) == {0: 65534, 1: 65535}

    def test_empty_plan(self):
        with pytest.raises(ValueError):
            port_plan(50000, set())
