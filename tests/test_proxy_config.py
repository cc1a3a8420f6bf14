"""
Unit tests for the Kroxylicious configuration generator.
"""

import pytest
import yaml

from kekspose.models import ClusterDescriptor
from kekspose.services.proxy_config import build_proxy_config, generate_proxy_config


@pytest.mark.unit
class TestProxyConfig:
    """Test the generated proxy configuration."""

    def test_contiguous_nodes(self):
        descriptor = ClusterDescriptor("my-cluster-kafka-bootstrap:9092", {0, 1, 2})

        config = yaml.safe_load(generate_proxy_config(descriptor, 50000))
        cluster = config["virtualClusters"]["kekspose"]

        assert cluster["targetCluster"]["bootstrap_servers"] == "my-cluster-kafka-bootstrap:9092"
        provider = cluster["clusterNetworkAddressConfigProvider"]
        assert provider["type"] == "PortPerBrokerClusterNetworkAddressConfigProvider"
        assert provider["config"]["bootstrapAddress"] == "127.0.0.1:50000"
        assert provider["config"]["numberOfBrokerPorts"] == 3
        assert cluster["logNetwork"] is False
        assert cluster["logFrames"] is False

    def test_sparse_nodes(self):
        """Test the proxy reserves ports up to the highest node ID."""
        descriptor = ClusterDescriptor("my-cluster-kafka-bootstrap:9092", {0, 1, 2, 100, 101, 102})

        config = build_proxy_config(descriptor, 40000)
        provider = config["virtualClusters"]["kekspose"]["clusterNetworkAddressConfigProvider"]

        assert provider["config"]["numberOfBrokerPorts"] == 103
        assert provider["config"]["bootstrapAddress"] == "127.0.0.1:40000"

    def test_rendering_is_deterministic(self):
        descriptor = ClusterDescriptor("my-cluster-kafka-external-bootstrap:9094", {2, 0, 1})

        assert generate_proxy_config(descriptor, 50000) == generate_proxy_config(descriptor, 50000)
        assert generate_proxy_config(descriptor, 50000).startswith("virtualClusters:")
