"""
Kubernetes Manifest Helpers for the Kekspose Proxy

The proxy consists of two objects sharing the proxy name:
- ConfigMap: holds the Kroxylicious configuration under a single key
- Pod: runs Kroxylicious with the ConfigMap mounted as its config file
"""

from kubernetes import client
from typing import Dict, List

PROXY_CONTAINER_NAME = "kroxylicious"
PROXY_CONFIG_KEY = "proxy-config.yaml"
PROXY_CONFIG_VOLUME = "proxy-config"
PROXY_CONFIG_PATH = f"/etc/kekspose/{PROXY_CONFIG_KEY}"


# =============================================================================
# Labels
# =============================================================================

def get_standard_labels(cluster_name: str) -> Dict[str, str]:
    """
    Get standard labels for the proxy resources.

    Args:
        cluster_name: Name of the exposed Kafka cluster

    Returns:
        Dict of labels
    """
    return {
        "app": "kekspose",
        "app.kubernetes.io/managed-by": "kekspose",
        "kekspose.scholz.cz/cluster": cluster_name,
    }


# =============================================================================
# ConfigMap Manifest
# =============================================================================

def create_proxy_config_map_manifest(
    name: str,
    namespace: str,
    cluster_name: str,
    proxy_config: str
) -> client.V1ConfigMap:
    """
    Create the ConfigMap holding the Kroxylicious configuration.

    Args:
        name: Proxy name
        namespace: Kubernetes namespace
        cluster_name: Name of the exposed Kafka cluster (for labels)
        proxy_config: Rendered proxy configuration

    Returns:
        V1ConfigMap manifest
    """
    return client.V1ConfigMap(
        metadata=client.V1ObjectMeta(
            name=name,
            namespace=namespace,
            labels=get_standard_labels(cluster_name)
        ),
        data={PROXY_CONFIG_KEY: proxy_config}
    )


# =============================================================================
# Pod Manifest
# =============================================================================

def create_proxy_pod_manifest(
    name: str,
    namespace: str,
    cluster_name: str,
    image: str,
    ports: List[int]
) -> client.V1Pod:
    """
    Create the proxy Pod.

    The ConfigMap is mounted with subPath so that only the configuration
    file appears in /etc/kekspose.

    Args:
        name: Proxy name (also the ConfigMap name)
        namespace: Kubernetes namespace
        cluster_name: Name of the exposed Kafka cluster (for labels)
        image: Kroxylicious container image
        ports: Bootstrap port followed by the per-node ports

    Returns:
        V1Pod manifest
    """
    container = client.V1Container(
        name=PROXY_CONTAINER_NAME,
        image=image,
        args=["--config", PROXY_CONFIG_PATH],
        ports=[client.V1ContainerPort(container_port=port) for port in ports],
        volume_mounts=[
            client.V1VolumeMount(
                name=PROXY_CONFIG_VOLUME,
                mount_path=PROXY_CONFIG_PATH,
                sub_path=PROXY_CONFIG_KEY
            )
        ]
    )

    return client.V1Pod(
        metadata=client.V1ObjectMeta(
            name=name,
            namespace=namespace,
            labels=get_standard_labels(cluster_name)
        ),
        spec=client.V1PodSpec(
            containers=[container],
            volumes=[
                client.V1Volume(
                    name=PROXY_CONFIG_VOLUME,
                    config_map=client.V1ConfigMapVolumeSource(name=name)
                )
            ]
        )
    )
