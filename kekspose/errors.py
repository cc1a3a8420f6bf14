"""
Kekspose Errors

Every anticipated failure is raised as a subclass of KeksposeError carrying
an ErrorKind. The error is logged where it is detected, so the entry point
only maps it to an exit code. Any other exception is treated as unexpected.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Anticipated failure kinds."""

    NOT_FOUND = "not_found"
    NOT_READY = "not_ready"
    NO_SUITABLE_LISTENER = "no_suitable_listener"
    NO_NODE_POOLS = "no_node_pools"
    NO_BROKER_NODES = "no_broker_nodes"
    ALREADY_EXISTS = "already_exists"
    READINESS_TIMEOUT = "readiness_timeout"
    CONFIGURATION = "configuration"

    def __str__(self) -> str:
        return self.value


class KeksposeError(Exception):
    """Base class for anticipated, already-logged failures."""

    kind: ErrorKind


class KafkaNotFoundError(KeksposeError):
    """The Kafka custom resource does not exist."""
    kind = ErrorKind.NOT_FOUND


class KafkaNotReadyError(KeksposeError):
    """The Kafka custom resource has no Ready=True condition."""
    kind = ErrorKind.NOT_READY


class NoSuitableListenerError(KeksposeError):
    """No unencrypted listener (with the requested name) exists."""
    kind = ErrorKind.NO_SUITABLE_LISTENER


class NoNodePoolsError(KeksposeError):
    """Node pools are enabled but none belong to the cluster."""
    kind = ErrorKind.NO_NODE_POOLS


class NoBrokerNodesError(KeksposeError):
    """Discovery found no broker node IDs."""
    kind = ErrorKind.NO_BROKER_NODES


class AlreadyExistsError(KeksposeError):
    """The proxy Pod or ConfigMap already exists."""
    kind = ErrorKind.ALREADY_EXISTS


class ReadinessTimeoutError(KeksposeError):
    """The proxy Pod did not become ready in time."""
    kind = ErrorKind.READINESS_TIMEOUT


class ConfigurationError(KeksposeError):
    """Kubernetes client configuration or namespace could not be determined."""
    kind = ErrorKind.CONFIGURATION
