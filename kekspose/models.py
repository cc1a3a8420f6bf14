"""
Kekspose Data Model

- KafkaResource / KafkaListener / KafkaNodePool: typed views of the Strimzi
  custom resources returned by the Kubernetes API as plain dicts
- ClusterDescriptor: immutable result of topology discovery
- Port plan helpers shared by the proxy configuration, the proxy Pod and
  the tunnels

Port allocation: the bootstrap port is the starting port itself and node
``n`` is always served on ``starting_port + n + 1``. Node IDs can be sparse,
so the proxy reserves ``highest_node_id + 1`` ports and only the ports of
existing nodes are forwarded.
"""

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from pydantic import BaseModel, Field

INTERNAL_LISTENER_TYPE = "internal"
BROKER_ROLE = "broker"
NODE_POOLS_ANNOTATION = "strimzi.io/node-pools"
CLUSTER_LABEL = "strimzi.io/cluster"

MAX_PORT = 65535


# =============================================================================
# Strimzi resources
# =============================================================================

class KafkaListener(BaseModel):
    """A listener declared in ``spec.kafka.listeners``."""
    name: str
    port: int
    type: str
    tls: bool = False

    @property
    def is_internal(self) -> bool:
        return self.type == INTERNAL_LISTENER_TYPE


class KafkaCondition(BaseModel):
    type: str
    status: str


class KafkaResource(BaseModel):
    """The parts of a Strimzi ``Kafka`` resource used for discovery."""
    name: str
    namespace: str
    annotations: Dict[str, str] = Field(default_factory=dict)
    listeners: List[KafkaListener] = Field(default_factory=list)
    replicas: Optional[int] = None
    conditions: Optional[List[KafkaCondition]] = None

    @classmethod
    def from_custom_object(cls, obj: Dict[str, Any]) -> "KafkaResource":
        metadata = obj.get("metadata") or {}
        kafka_spec = (obj.get("spec") or {}).get("kafka") or {}
        status = obj.get("status") or {}

        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace", ""),
            annotations=metadata.get("annotations") or {},
            listeners=kafka_spec.get("listeners") or [],
            replicas=kafka_spec.get("replicas"),
            conditions=status.get("conditions"),
        )

    @property
    def is_ready(self) -> bool:
        """Point-in-time readiness; observedGeneration is not checked."""
        if not self.conditions:
            return False
        return any(c.type == "Ready" and c.status == "True" for c in self.conditions)

    @property
    def uses_node_pools(self) -> bool:
        return self.annotations.get(NODE_POOLS_ANNOTATION) == "enabled"


class KafkaNodePool(BaseModel):
    """The status of a Strimzi ``KafkaNodePool`` resource."""
    name: str
    roles: List[str] = Field(default_factory=list)
    node_ids: List[int] = Field(default_factory=list)

    @classmethod
    def from_custom_object(cls, obj: Dict[str, Any]) -> "KafkaNodePool":
        status = obj.get("status") or {}
        return cls(
            name=(obj.get("metadata") or {}).get("name", ""),
            roles=status.get("roles") or [],
            node_ids=status.get("nodeIds") or [],
        )

    @property
    def has_broker_role(self) -> bool:
        return BROKER_ROLE in self.roles


# =============================================================================
# Cluster descriptor
# =============================================================================

def highest_node_id(node_ids: Iterable[int]) -> int:
    """
    Return the highest node ID.

    Raises:
        ValueError: If there are no node IDs
    """
    node_ids = list(node_ids)
    if not node_ids:
        raise ValueError("Cannot determine the highest node ID of an empty set of nodes")
    return max(node_ids)


@dataclass(frozen=True)
class ClusterDescriptor:
    """Bootstrap address and broker node IDs of the exposed Kafka cluster."""

    bootstrap_address: str
    node_ids: FrozenSet[int]

    def __post_init__(self):
        node_ids = frozenset(self.node_ids)
        if not node_ids:
            raise ValueError("A Kafka cluster needs at least one broker node")
        if any(node_id < 0 for node_id in node_ids):
            raise ValueError(f"Node IDs must not be negative: {sorted(node_ids)}")
        object.__setattr__(self, "node_ids", node_ids)

    def highest_node_id(self) -> int:
        return highest_node_id(self.node_ids)

    def sorted_node_ids(self) -> List[int]:
        return sorted(self.node_ids)


# =============================================================================
# Port plan
# =============================================================================

def node_port(starting_port: int, node_id: int) -> int:
    """Local and proxy port serving the given node."""
    return starting_port + node_id + 1


def _check_port_range(starting_port: int, node_ids: Iterable[int]) -> None:
    last_port = node_port(starting_port, highest_node_id(node_ids))
    if starting_port < 1 or last_port > MAX_PORT:
        raise ValueError(
            f"Ports {starting_port}-{last_port} needed for the proxy "
            f"do not fit into the range 1-{MAX_PORT}"
        )


def port_plan(starting_port: int, node_ids: Iterable[int]) -> Dict[int, int]:
    """
    Map every node ID to its port, in ascending node ID order.

    Raises:
        ValueError: If there are no node IDs or the ports exceed 65535
    """
    node_ids = sorted(set(node_ids))
    _check_port_range(starting_port, node_ids)
    return {node_id: node_port(starting_port, node_id) for node_id in node_ids}


def proxy_ports(starting_port: int, node_ids: Iterable[int]) -> List[int]:
    """Bootstrap port followed by the port of every node."""
    return [starting_port] + list(port_plan(starting_port, node_ids).values())
