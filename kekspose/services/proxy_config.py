"""
Kroxylicious Configuration Generator

Renders the proxy configuration for one virtual cluster that targets the
in-cluster bootstrap address and exposes it on 127.0.0.1. The proxy uses
port-per-broker addressing: the bootstrap port is the starting port and
broker N is served on starting port + N + 1, so the proxy needs
highest node ID + 1 broker ports (gaps in the node IDs included).
"""

from typing import Any, Dict

import yaml

from ..models import ClusterDescriptor

VIRTUAL_CLUSTER_NAME = "kekspose"
LOCAL_ADDRESS = "127.0.0.1"


def build_proxy_config(descriptor: ClusterDescriptor, starting_port: int) -> Dict[str, Any]:
    """Build the proxy configuration as a dict."""
    return {
        "virtualClusters": {
            VIRTUAL_CLUSTER_NAME: {
                "targetCluster": {
                    "bootstrap_servers": descriptor.bootstrap_address,
                },
                "clusterNetworkAddressConfigProvider": {
                    "type": "PortPerBrokerClusterNetworkAddressConfigProvider",
                    "config": {
                        "bootstrapAddress": f"{LOCAL_ADDRESS}:{starting_port}",
                        "numberOfBrokerPorts": descriptor.highest_node_id() + 1,
                    },
                },
                "logNetwork": False,
                "logFrames": False,
            }
        }
    }


def generate_proxy_config(descriptor: ClusterDescriptor, starting_port: int) -> str:
    """
    Render the proxy configuration document.

    Args:
        descriptor: Discovered Kafka cluster
        starting_port: Local bootstrap port

    Returns:
        YAML document for the proxy ConfigMap
    """
    return yaml.dump(
        build_proxy_config(descriptor, starting_port),
        default_flow_style=False,
        sort_keys=False
    )
