"""
Kubernetes Client for Kekspose

Thin async wrapper around the official Kubernetes client covering the
calls Kekspose makes:
- Reading the Strimzi Kafka and KafkaNodePool custom resources
- Creating, reading and deleting the proxy Pod and its ConfigMap
- Opening port-forward streams to the proxy Pod

The Kubernetes client is blocking, so every API call runs in a worker
thread through asyncio.to_thread.
"""

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.stream import portforward
import logging
import asyncio
from typing import Dict, Optional, Any, List

from ...errors import ConfigurationError

logger = logging.getLogger(__name__)

STRIMZI_GROUP = "kafka.strimzi.io"
STRIMZI_VERSION = "v1beta2"
KAFKA_PLURAL = "kafkas"
KAFKA_NODE_POOL_PLURAL = "kafkanodepools"

SERVICE_ACCOUNT_NAMESPACE_FILE = "/var/run/secrets/kubernetes.io/serviceaccount/namespace"


class KubernetesClient:
    """
    Kubernetes API access for Kekspose.

    Loads the in-cluster configuration when running inside a Pod and falls
    back to kubeconfig otherwise. An explicit kubeconfig path always wins.
    """

    def __init__(self, kubeconfig: Optional[str] = None):
        """
        Initialize Kubernetes client with in-cluster config or kubeconfig.

        Args:
            kubeconfig: Optional path to the kubeconfig file

        Raises:
            ConfigurationError: If no usable configuration was found
        """
        self.kubeconfig = kubeconfig
        self.in_cluster = False

        if kubeconfig:
            self._load_kube_config()
        else:
            try:
                config.load_incluster_config()
                self.in_cluster = True
                logger.info("[K8S] Loaded in-cluster Kubernetes configuration")
            except config.ConfigException:
                self._load_kube_config()

        self.core_v1 = client.CoreV1Api()
        self.custom_objects = client.CustomObjectsApi()

    def _load_kube_config(self) -> None:
        try:
            config.load_kube_config(config_file=self.kubeconfig)
            logger.info(f"[K8S] Loaded kubeconfig {self.kubeconfig or '(default location)'}")
        except (config.ConfigException, OSError) as e:
            logger.error(f"[K8S] Failed to load Kubernetes config: {e}")
            raise ConfigurationError("Cannot load Kubernetes configuration") from e

    def default_namespace(self) -> Optional[str]:
        """Namespace of the service account or of the current kubeconfig context."""
        if self.in_cluster:
            try:
                with open(SERVICE_ACCOUNT_NAMESPACE_FILE) as f:
                    return f.read().strip() or None
            except OSError:
                return None

        try:
            _, active_context = config.list_kube_config_contexts(config_file=self.kubeconfig)
        except (config.ConfigException, OSError) as e:
            logger.debug(f"[K8S] Could not read kubeconfig contexts: {e}")
            return None

        if not active_context:
            return None
        return (active_context.get("context") or {}).get("namespace")

    # =========================================================================
    # STRIMZI RESOURCES
    # =========================================================================

    async def get_kafka(self, name: str, namespace: str) -> Optional[Dict[str, Any]]:
        """
        Get a Kafka custom resource.

        Returns:
            The resource as a dict, or None if it does not exist
        """
        try:
            return await asyncio.to_thread(
                self.custom_objects.get_namespaced_custom_object,
                group=STRIMZI_GROUP,
                version=STRIMZI_VERSION,
                namespace=namespace,
                plural=KAFKA_PLURAL,
                name=name
            )
        except ApiException as e:
            if e.status == 404:
                return None
            raise

    async def list_kafka_node_pools(self, cluster_name: str, namespace: str) -> List[Dict[str, Any]]:
        """List the KafkaNodePool resources labeled as belonging to a cluster."""
        result = await asyncio.to_thread(
            self.custom_objects.list_namespaced_custom_object,
            group=STRIMZI_GROUP,
            version=STRIMZI_VERSION,
            namespace=namespace,
            plural=KAFKA_NODE_POOL_PLURAL,
            label_selector=f"strimzi.io/cluster={cluster_name}"
        )
        return (result or {}).get("items") or []

    # =========================================================================
    # PROXY RESOURCES
    # =========================================================================

    async def create_config_map(self, config_map: client.V1ConfigMap, namespace: str) -> None:
        """Create a ConfigMap. Conflicts are raised to the caller as ApiException(409)."""
        await asyncio.to_thread(
            self.core_v1.create_namespaced_config_map,
            namespace=namespace,
            body=config_map
        )
        logger.info(f"[K8S] Created ConfigMap: {config_map.metadata.name}")

    async def delete_config_map(self, name: str, namespace: str) -> None:
        """Delete a ConfigMap."""
        try:
            await asyncio.to_thread(
                self.core_v1.delete_namespaced_config_map,
                name=name,
                namespace=namespace
            )
            logger.info(f"[K8S] Deleted ConfigMap: {name}")
        except ApiException as e:
            if e.status != 404:
                raise

    async def create_pod(self, pod: client.V1Pod, namespace: str) -> None:
        """Create a Pod. Conflicts are raised to the caller as ApiException(409)."""
        await asyncio.to_thread(
            self.core_v1.create_namespaced_pod,
            namespace=namespace,
            body=pod
        )
        logger.info(f"[K8S] Created Pod: {pod.metadata.name}")

    async def read_pod(self, name: str, namespace: str) -> Optional[client.V1Pod]:
        """Read a Pod, or None if it does not exist (yet)."""
        try:
            return await asyncio.to_thread(
                self.core_v1.read_namespaced_pod,
                name=name,
                namespace=namespace
            )
        except ApiException as e:
            if e.status == 404:
                return None
            raise

    async def delete_pod(self, name: str, namespace: str) -> None:
        """Delete a Pod."""
        try:
            await asyncio.to_thread(
                self.core_v1.delete_namespaced_pod,
                name=name,
                namespace=namespace
            )
            logger.info(f"[K8S] Deleted Pod: {name}")
        except ApiException as e:
            if e.status != 404:
                raise

    def is_pod_ready(self, pod: client.V1Pod) -> bool:
        """Check if a pod is ready."""
        if not pod.status or not pod.status.conditions:
            return False

        for condition in pod.status.conditions:
            if condition.type == "Ready":
                return condition.status == "True"
        return False

    # =========================================================================
    # PORT FORWARDING
    # =========================================================================

    def _get_stream_client(self) -> client.CoreV1Api:
        """
        Create a fresh CoreV1Api client for stream operations.

        stream() temporarily patches api_client.request to use WebSocket, so
        sharing self.core_v1 would break concurrent regular API calls.
        """
        return client.CoreV1Api()

    def open_port_forward(self, pod_name: str, namespace: str, port: int):
        """
        Open a port-forward stream to a single port of a Pod.

        Blocking - call through asyncio.to_thread.

        Returns:
            kubernetes.stream.ws_client.PortForward; use .socket(port) for
            the socket-like end of the stream and .close() when done
        """
        logger.debug(f"[K8S:PORTFORWARD] Opening stream to {namespace}/{pod_name}:{port}")
        stream_client = self._get_stream_client()
        return portforward(
            stream_client.connect_get_namespaced_pod_portforward,
            pod_name,
            namespace,
            ports=str(port)
        )
