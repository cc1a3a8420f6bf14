"""
Kubernetes Module

- KubernetesClient: Low-level Kubernetes API interactions
- Manifest helpers for the proxy ConfigMap and Pod
"""

from .client import KubernetesClient
from .helpers import (
    get_standard_labels,
    create_proxy_config_map_manifest,
    create_proxy_pod_manifest,
    PROXY_CONFIG_KEY,
    PROXY_CONFIG_PATH,
)

__all__ = [
    # Client
    "KubernetesClient",
    # Manifest Helpers
    "get_standard_labels",
    "create_proxy_config_map_manifest",
    "create_proxy_pod_manifest",
    "PROXY_CONFIG_KEY",
    "PROXY_CONFIG_PATH",
]
