"""
Kekspose Orchestrator

Sequences the startup and shutdown of one exposure:

    resolve topology -> deploy proxy (until ready) -> open tunnels
    -> wait for SIGINT / SIGTERM -> close tunnels -> delete proxy

A failure during startup aborts the run without cleanup; the resources of a
proxy that timed out are left in place for inspection. A shutdown signal
received while starting up cancels the startup and cleans up whatever was
created so far.
"""

import asyncio
import logging
import signal
from dataclasses import dataclass, field
from typing import Optional

from ..config import Settings
from ..errors import ConfigurationError
from ..models import ClusterDescriptor, port_plan
from .kubernetes.client import KubernetesClient
from .proxy import ProxyLifecycleManager
from .proxy_config import LOCAL_ADDRESS
from .topology import TopologyResolver
from .tunnel import TunnelManager, TunnelSet

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


@dataclass
class LifecycleContext:
    """Everything the shutdown path needs to clean up."""
    proxy: ProxyLifecycleManager
    tunnels: TunnelManager
    tunnel_set: Optional[TunnelSet] = None
    shutdown_requested: asyncio.Event = field(default_factory=asyncio.Event)

    def request_shutdown(self) -> None:
        if not self.shutdown_requested.is_set():
            logger.info("[KEKSPOSE] Shutting down")
        self.shutdown_requested.set()

    async def cleanup(self) -> None:
        """Close the tunnels first, then delete the proxy."""
        if self.tunnel_set is not None:
            logger.info("[KEKSPOSE] Stopping the port forwarding")
            await self.tunnels.stop(self.tunnel_set)
            self.tunnel_set = None

        logger.info("[KEKSPOSE] Stopping the proxy")
        await self.proxy.delete()


class Orchestrator:
    """Exposes one Kafka cluster until it is asked to shut down."""

    def __init__(
        self,
        resolver: TopologyResolver,
        proxy: ProxyLifecycleManager,
        tunnels: TunnelManager,
        namespace: str,
        cluster_name: str,
        listener_name: Optional[str],
        starting_port: int,
        readiness_timeout: float
    ):
        self.resolver = resolver
        self.proxy = proxy
        self.tunnels = tunnels
        self.namespace = namespace
        self.cluster_name = cluster_name
        self.listener_name = listener_name
        self.starting_port = starting_port
        self.readiness_timeout = readiness_timeout

    @classmethod
    def from_settings(cls, settings: Settings, k8s_client: Optional[KubernetesClient] = None) -> "Orchestrator":
        """
        Wire up all components from the settings.

        Raises:
            ConfigurationError: If the Kubernetes configuration or the namespace cannot be determined
        """
        if k8s_client is None:
            k8s_client = KubernetesClient(kubeconfig=settings.kubeconfig)

        namespace = settings.namespace or k8s_client.default_namespace()
        if not namespace:
            logger.error(
                "[KEKSPOSE] Failed to determine the default namespace. "
                "Please use the --namespace / -n option to specify it."
            )
            raise ConfigurationError("Namespace could not be determined")
        logger.info(f"[KEKSPOSE] Using namespace {namespace}")

        proxy = ProxyLifecycleManager(
            k8s_client=k8s_client,
            name=settings.proxy_name,
            namespace=namespace,
            cluster_name=settings.cluster_name,
            image=settings.proxy_image,
            poll_interval=settings.readiness_poll_interval_seconds
        )
        tunnels = TunnelManager(
            k8s_client=k8s_client,
            pod_name=settings.proxy_name,
            namespace=namespace
        )

        return cls(
            resolver=TopologyResolver(k8s_client),
            proxy=proxy,
            tunnels=tunnels,
            namespace=namespace,
            cluster_name=settings.cluster_name,
            listener_name=settings.listener_name,
            starting_port=settings.starting_port,
            readiness_timeout=settings.readiness_timeout_seconds
        )

    # =========================================================================
    # RUN
    # =========================================================================

    async def run(self) -> None:
        """Start everything, block until a shutdown signal, then clean up."""
        context = LifecycleContext(proxy=self.proxy, tunnels=self.tunnels)
        loop = asyncio.get_running_loop()
        installed = self._install_signal_handlers(loop, context)

        try:
            await self._run(context)
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop, context: LifecycleContext) -> list:
        installed = []
        for sig in SHUTDOWN_SIGNALS:
            try:
                loop.add_signal_handler(sig, context.request_shutdown)
                installed.append(sig)
            except (NotImplementedError, RuntimeError):
                logger.debug(f"[KEKSPOSE] Signal handler for {sig.name} not supported on this platform")
        return installed

    async def _run(self, context: LifecycleContext) -> None:
        startup = asyncio.ensure_future(self._start(context))
        shutdown = asyncio.ensure_future(context.shutdown_requested.wait())

        try:
            await asyncio.wait({startup, shutdown}, return_when=asyncio.FIRST_COMPLETED)

            if not startup.done():
                logger.info("[KEKSPOSE] Shutdown requested before the startup completed")
                startup.cancel()
                await asyncio.gather(startup, return_exceptions=True)
                await context.cleanup()
                return

            # Startup failures propagate without cleanup
            startup.result()

            logger.info(
                f"[KEKSPOSE] Everything is ready - you can now connect your Kafka client "
                f"to the bootstrap server {LOCAL_ADDRESS}:{self.starting_port}"
            )

            await shutdown
            await context.cleanup()
        finally:
            shutdown.cancel()

    async def _start(self, context: LifecycleContext) -> ClusterDescriptor:
        descriptor = await self.resolver.resolve(self.namespace, self.cluster_name, self.listener_name)
        self._check_ports(descriptor)

        logger.info("[KEKSPOSE] Starting the proxy")
        await self.proxy.deploy(descriptor, self.starting_port, self.readiness_timeout)

        logger.info("[KEKSPOSE] Starting the port forwarding")
        context.tunnel_set = await self.tunnels.start(descriptor, self.starting_port)

        return descriptor

    def _check_ports(self, descriptor: ClusterDescriptor) -> None:
        try:
            port_plan(self.starting_port, descriptor.node_ids)
        except ValueError as e:
            logger.error(
                f"[KEKSPOSE] {e}. The highest node ID is {descriptor.highest_node_id()}, "
                f"please use a lower --starting-port."
            )
            raise ConfigurationError(f"Starting port {self.starting_port} is too high") from e
