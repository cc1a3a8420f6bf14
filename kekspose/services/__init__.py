"""
Kekspose Services

- TopologyResolver: discovers the Kafka cluster topology
- ProxyLifecycleManager: deploys and deletes the Kroxylicious proxy
- TunnelManager: forwards the proxy ports to the local machine
- Orchestrator: runs the whole exposure from startup to shutdown
"""

from .topology import TopologyResolver
from .proxy_config import generate_proxy_config
from .proxy import ProxyLifecycleManager, ProxyState
from .tunnel import Tunnel, TunnelManager, TunnelSet
from .orchestrator import LifecycleContext, Orchestrator

__all__ = [
    "TopologyResolver",
    "generate_proxy_config",
    "ProxyLifecycleManager",
    "ProxyState",
    "Tunnel",
    "TunnelManager",
    "TunnelSet",
    "LifecycleContext",
    "Orchestrator",
]
