"""
Proxy Lifecycle Management

Creates the Kroxylicious proxy (ConfigMap + Pod), waits for it to become
ready and deletes it again.

State machine:
    NOT_DEPLOYED -> CREATING -> WAITING_READY -> READY -> DELETING -> DELETED
    CREATING -> CREATE_FAILED             (conflict or API error)
    WAITING_READY -> READINESS_TIMED_OUT  (resources are left in place)

Pre-existing resources are never adopted, updated or deleted: a name
conflict fails the deployment and the conflicting object is left alone.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Set

from kubernetes.client.rest import ApiException

from ..errors import AlreadyExistsError, ReadinessTimeoutError
from ..models import ClusterDescriptor, proxy_ports
from .kubernetes.client import KubernetesClient
from .kubernetes.helpers import create_proxy_config_map_manifest, create_proxy_pod_manifest
from .proxy_config import generate_proxy_config

logger = logging.getLogger(__name__)

CONFIG_MAP = "ConfigMap"
POD = "Pod"


class ProxyState(str, Enum):
    NOT_DEPLOYED = "NotDeployed"
    CREATING = "Creating"
    WAITING_READY = "WaitingReady"
    READY = "Ready"
    DELETING = "Deleting"
    DELETED = "Deleted"
    CREATE_FAILED = "CreateFailed"
    READINESS_TIMED_OUT = "ReadinessTimedOut"

    def __str__(self) -> str:
        return self.value


@dataclass
class ProxyResourceHandle:
    """Identity and lifecycle state of the deployed proxy."""
    name: str
    namespace: str
    state: ProxyState = ProxyState.NOT_DEPLOYED
    # Kinds created by this run - only these are deleted
    owned: Set[str] = field(default_factory=set)


class ProxyLifecycleManager:
    """Deploys and deletes the proxy for one Kafka cluster."""

    def __init__(
        self,
        k8s_client: KubernetesClient,
        name: str,
        namespace: str,
        cluster_name: str,
        image: str,
        poll_interval: float = 1.0
    ):
        self.k8s_client = k8s_client
        self.cluster_name = cluster_name
        self.image = image
        self.poll_interval = poll_interval
        self._handle = ProxyResourceHandle(name=name, namespace=namespace)

    @property
    def name(self) -> str:
        return self._handle.name

    @property
    def namespace(self) -> str:
        return self._handle.namespace

    @property
    def state(self) -> ProxyState:
        return self._handle.state

    def _transition(self, state: ProxyState) -> None:
        logger.debug(f"[PROXY] {self._handle.name}: {self._handle.state} -> {state}")
        self._handle.state = state

    # =========================================================================
    # DEPLOY
    # =========================================================================

    async def deploy(self, descriptor: ClusterDescriptor, starting_port: int, timeout: float) -> None:
        """
        Create the proxy ConfigMap and Pod and wait until the Pod is ready.

        Args:
            descriptor: Discovered Kafka cluster
            starting_port: Bootstrap port of the proxy
            timeout: Seconds to wait for the Pod readiness

        Raises:
            AlreadyExistsError: The ConfigMap or the Pod already exists
            ReadinessTimeoutError: The Pod did not become ready in time
        """
        if self._handle.state != ProxyState.NOT_DEPLOYED:
            raise RuntimeError(f"Proxy {self._handle.name} cannot be deployed in state {self._handle.state}")

        name = self._handle.name
        namespace = self._handle.namespace

        config_map = create_proxy_config_map_manifest(
            name=name,
            namespace=namespace,
            cluster_name=self.cluster_name,
            proxy_config=generate_proxy_config(descriptor, starting_port)
        )
        pod = create_proxy_pod_manifest(
            name=name,
            namespace=namespace,
            cluster_name=self.cluster_name,
            image=self.image,
            ports=proxy_ports(starting_port, descriptor.node_ids)
        )

        logger.info(f"[PROXY] Deploying the proxy {name} in namespace {namespace}")
        self._transition(ProxyState.CREATING)
        await self._create(CONFIG_MAP, self.k8s_client.create_config_map, config_map)
        await self._create(POD, self.k8s_client.create_pod, pod)

        self._transition(ProxyState.WAITING_READY)
        logger.info(f"[PROXY] Waiting up to {timeout} seconds for the proxy to become ready")

        if not await self._wait_until_ready(timeout):
            self._transition(ProxyState.READINESS_TIMED_OUT)
            logger.error(f"[PROXY] The proxy Pod {name} in namespace {namespace} did not become ready within {timeout} seconds")
            raise ReadinessTimeoutError(f"The proxy Pod {name} did not become ready")

        self._transition(ProxyState.READY)
        logger.info(f"[PROXY] ✅ The proxy {name} is ready")

    async def _create(self, kind: str, create: Callable[..., Awaitable[None]], body) -> None:
        self._handle.owned.add(kind)
        try:
            await create(body, self._handle.namespace)
        except ApiException as e:
            self._transition(ProxyState.CREATE_FAILED)
            if e.status == 409:
                self._handle.owned.discard(kind)
                logger.error(
                    f"[PROXY] The proxy {kind} {self._handle.name} already exists in namespace "
                    f"{self._handle.namespace}"
                )
                raise AlreadyExistsError(f"The proxy {kind} {self._handle.name} already exists") from e
            raise

    async def _wait_until_ready(self, timeout: float) -> bool:
        """Poll the Pod until it is ready. Returns False on timeout."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        while True:
            pod = await self.k8s_client.read_pod(self._handle.name, self._handle.namespace)
            if pod is not None and self.k8s_client.is_pod_ready(pod):
                return True

            remaining = deadline - loop.time()
            if remaining <= 0:
                return False
            await asyncio.sleep(min(self.poll_interval, remaining))

    # =========================================================================
    # DELETE
    # =========================================================================

    async def delete(self) -> None:
        """
        Delete the proxy Pod and ConfigMap (best effort).

        Always ends in DELETED, even when individual deletions fail.
        """
        if self._handle.state == ProxyState.NOT_DEPLOYED:
            logger.debug(f"[PROXY] Proxy {self._handle.name} was never deployed, nothing to delete")
            return

        self._transition(ProxyState.DELETING)
        logger.info(f"[PROXY] Deleting the proxy {self._handle.name}")

        if POD in self._handle.owned:
            await self._delete_quietly(POD, self.k8s_client.delete_pod)
        if CONFIG_MAP in self._handle.owned:
            await self._delete_quietly(CONFIG_MAP, self.k8s_client.delete_config_map)

        self._handle.owned.clear()
        self._transition(ProxyState.DELETED)

    async def _delete_quietly(self, kind: str, delete: Callable[..., Awaitable[None]]) -> None:
        try:
            await delete(self._handle.name, self._handle.namespace)
        except Exception as e:
            logger.warning(f"[PROXY] Failed to delete the proxy {kind} {self._handle.name}: {e}")
