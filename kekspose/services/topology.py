"""
Kafka Topology Discovery

Turns a Strimzi Kafka cluster into a ClusterDescriptor:
1. Read the Kafka resource and check that it is ready
2. Pick the listener to expose (never a TLS listener)
3. Derive the bootstrap address of that listener
4. Collect the broker node IDs, either from the KafkaNodePool statuses or
   from the replica count when node pools are not used

Discovery runs once at startup. Later topology changes are not followed.
"""

import logging
from typing import List, Optional, Set

from ..errors import (
    KafkaNotFoundError,
    KafkaNotReadyError,
    NoBrokerNodesError,
    NoNodePoolsError,
    NoSuitableListenerError,
)
from ..models import ClusterDescriptor, KafkaListener, KafkaNodePool, KafkaResource
from .kubernetes.client import KubernetesClient

logger = logging.getLogger(__name__)


def select_listener(
    listeners: List[KafkaListener],
    listener_name: Optional[str] = None
) -> Optional[KafkaListener]:
    """
    Pick the first listener without TLS encryption, in declaration order.

    Args:
        listeners: Listeners as declared in the Kafka resource
        listener_name: If set, only a listener with this name is eligible

    Returns:
        The selected listener or None
    """
    for listener in listeners:
        if listener.tls:
            continue
        if listener_name is not None and listener.name != listener_name:
            continue
        return listener
    return None


def bootstrap_address_for(cluster_name: str, listener: KafkaListener) -> str:
    """
    Derive the in-cluster bootstrap address of a listener from the Strimzi
    Service naming convention. The first matching rule wins.
    """
    # The "tls" rule can only match a listener that has passed the TLS
    # filter in select_listener, i.e. an unencrypted listener named "tls".
    if listener.port == 9092 and listener.name == "plain" and listener.is_internal:
        return f"{cluster_name}-kafka-bootstrap:9092"
    if listener.port == 9093 and listener.name == "tls" and listener.is_internal:
        return f"{cluster_name}-kafka-bootstrap:9093"
    if listener.port == 9094 and listener.name == "external":
        return f"{cluster_name}-kafka-external-bootstrap:9094"
    if listener.is_internal:
        return f"{cluster_name}-kafka-bootstrap:{listener.port}"
    return f"{cluster_name}-kafka-{listener.name}-bootstrap:{listener.port}"


class TopologyResolver:
    """Resolves the topology of a Strimzi Kafka cluster."""

    def __init__(self, k8s_client: KubernetesClient):
        self.k8s_client = k8s_client

    async def resolve(
        self,
        namespace: str,
        cluster_name: str,
        listener_name: Optional[str] = None
    ) -> ClusterDescriptor:
        """
        Discover the bootstrap address and broker node IDs of a Kafka cluster.

        Args:
            namespace: Namespace of the Kafka cluster
            cluster_name: Name of the Kafka resource
            listener_name: Listener to expose (default: first listener without TLS)

        Returns:
            ClusterDescriptor

        Raises:
            KafkaNotFoundError: The Kafka resource does not exist
            KafkaNotReadyError: The Kafka resource is not ready
            NoSuitableListenerError: No unencrypted listener matches
            NoNodePoolsError: Node pools are enabled but none were found
            NoBrokerNodesError: No broker node IDs were found
        """
        kafka = await self._find_kafka(namespace, cluster_name)
        listener = self._find_listener(kafka, listener_name)

        bootstrap_address = bootstrap_address_for(cluster_name, listener)
        logger.info(f"[TOPOLOGY] Bootstrap address {bootstrap_address} will be used")

        node_ids = await self._find_node_ids(kafka)
        if not node_ids:
            logger.error(
                f"[TOPOLOGY] No broker nodes found in Kafka cluster {cluster_name} "
                f"in namespace {namespace}"
            )
            raise NoBrokerNodesError(f"No broker nodes found in Kafka cluster {cluster_name}")

        logger.info(f"[TOPOLOGY] Found {len(node_ids)} Kafka nodes with IDs: {sorted(node_ids)}")
        return ClusterDescriptor(bootstrap_address=bootstrap_address, node_ids=frozenset(node_ids))

    async def _find_kafka(self, namespace: str, cluster_name: str) -> KafkaResource:
        obj = await self.k8s_client.get_kafka(cluster_name, namespace)

        if obj is None:
            logger.error(f"[TOPOLOGY] No Kafka cluster named {cluster_name} in namespace {namespace} was found")
            raise KafkaNotFoundError(f"Kafka cluster {cluster_name} not found in namespace {namespace}")

        kafka = KafkaResource.from_custom_object(obj)
        if not kafka.namespace:
            kafka.namespace = namespace

        if not kafka.is_ready:
            logger.error(
                f"[TOPOLOGY] Found Kafka cluster {cluster_name} in namespace {namespace}, but it does "
                f"not seem to be ready. Please run Kekspose again once the Kafka cluster is ready!"
            )
            raise KafkaNotReadyError(f"Kafka cluster {cluster_name} in namespace {namespace} is not ready")

        logger.info(f"[TOPOLOGY] Found Kafka cluster {cluster_name} in namespace {namespace}")
        return kafka

    def _find_listener(self, kafka: KafkaResource, listener_name: Optional[str]) -> KafkaListener:
        listener = select_listener(kafka.listeners, listener_name)

        if listener is None:
            if listener_name is None:
                logger.error(
                    f"[TOPOLOGY] No listener without TLS encryption found in Kafka cluster {kafka.name}. "
                    f"Kekspose cannot expose TLS listeners."
                )
                raise NoSuitableListenerError("No listener without TLS encryption found")

            logger.error(
                f"[TOPOLOGY] No listener named {listener_name} without TLS encryption found in Kafka "
                f"cluster {kafka.name}. Either the listener name is wrong or the listener uses TLS encryption."
            )
            raise NoSuitableListenerError(f"No listener named {listener_name} without TLS encryption found")

        logger.info(f"[TOPOLOGY] Using listener {listener.name} (port {listener.port}, type {listener.type})")
        return listener

    async def _find_node_ids(self, kafka: KafkaResource) -> Set[int]:
        if not kafka.uses_node_pools:
            replicas = kafka.replicas or 0
            logger.debug(f"[TOPOLOGY] Node pools not enabled -> calculating node IDs for {replicas} replicas")
            return set(range(replicas))

        logger.debug("[TOPOLOGY] Node pools are enabled -> getting node IDs from their status")
        items = await self.k8s_client.list_kafka_node_pools(kafka.name, kafka.namespace)

        if not items:
            logger.error(
                f"[TOPOLOGY] Kafka cluster {kafka.name} in namespace {kafka.namespace} seems to use "
                f"node pools, but no KafkaNodePool resources were found"
            )
            raise NoNodePoolsError(f"No node pools found for Kafka cluster {kafka.name}")

        node_ids: Set[int] = set()
        for pool in (KafkaNodePool.from_custom_object(item) for item in items):
            if pool.has_broker_role:
                node_ids.update(pool.node_ids)
            else:
                logger.debug(f"[TOPOLOGY] Ignoring node pool {pool.name} without the broker role")
        return node_ids
