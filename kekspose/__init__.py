"""
Kekspose - expose a Strimzi Kafka cluster outside of Kubernetes.

Deploys a Kroxylicious proxy next to the Kafka cluster and port-forwards
the bootstrap port and one port per broker to the local machine.
"""

__version__ = "0.1.0"
