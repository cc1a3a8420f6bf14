"""
Local Tunnels to the Proxy Pod

One Tunnel per exposed port: a TCP server on 127.0.0.1 whose every
accepted connection gets its own Kubernetes port-forward stream to the
same port of the proxy Pod. Bytes are relayed in both directions until
both sides are done; a half-close is passed on to the other side.

TunnelManager opens the bootstrap tunnel followed by one tunnel per broker
node (ascending node ID) and closes them all on shutdown.
"""

import asyncio
import logging
import socket
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Set

from ..models import ClusterDescriptor, port_plan
from .kubernetes.client import KubernetesClient

logger = logging.getLogger(__name__)

LOCAL_HOST = "127.0.0.1"
BUFFER_SIZE = 64 * 1024


async def _pipe(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
    while True:
        data = await reader.read(BUFFER_SIZE)
        if not data:
            break
        writer.write(data)
        await writer.drain()

    # Pass the half-close on so the other direction can still finish
    if writer.can_write_eof():
        writer.write_eof()


class Tunnel:
    """Forwards one local port to the same port of the proxy Pod."""

    def __init__(
        self,
        k8s_client: KubernetesClient,
        pod_name: str,
        namespace: str,
        local_port: int,
        remote_port: int,
        host: str = LOCAL_HOST
    ):
        self.k8s_client = k8s_client
        self.pod_name = pod_name
        self.namespace = namespace
        self.local_port = local_port
        self.remote_port = remote_port
        self.host = host

        self._server: Optional[asyncio.AbstractServer] = None
        self._connections: Set[asyncio.Task] = set()

    @property
    def is_open(self) -> bool:
        return self._server is not None

    @property
    def bound_port(self) -> Optional[int]:
        """Actual listening port (differs from local_port only when it is 0)."""
        if self._server is None or not self._server.sockets:
            return None
        return self._server.sockets[0].getsockname()[1]

    async def open(self) -> None:
        """Start listening on the local port."""
        self._server = await asyncio.start_server(self._handle_connection, self.host, self.local_port)
        logger.debug(f"[TUNNEL] Listening on {self.host}:{self.bound_port} -> {self.pod_name}:{self.remote_port}")

    async def close(self) -> None:
        """Stop listening and drop all relayed connections."""
        if self._server is None:
            return

        server = self._server
        self._server = None
        server.close()

        for task in list(self._connections):
            task.cancel()
        await asyncio.gather(*self._connections, return_exceptions=True)
        await server.wait_closed()
        logger.debug(f"[TUNNEL] Closed port-forward on port {self.local_port}")

    async def _handle_connection(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        task = asyncio.current_task()
        self._connections.add(task)
        try:
            await self._relay(reader, writer)
        finally:
            self._connections.discard(task)
            writer.close()

    async def _relay(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        peer = writer.get_extra_info("peername")
        try:
            forward = await asyncio.to_thread(
                self.k8s_client.open_port_forward,
                self.pod_name,
                self.namespace,
                self.remote_port
            )
            remote = forward.socket(self.remote_port)
            # Duplicate the stream end into a real socket so asyncio can drive it
            remote_sock = socket.fromfd(remote.fileno(), remote.family, remote.type)
            remote.close()
        except Exception as e:
            logger.error(f"[TUNNEL] Failed to open port-forward to {self.pod_name}:{self.remote_port} for {peer}: {e}")
            return

        try:
            remote_reader, remote_writer = await asyncio.open_connection(sock=remote_sock)
        except Exception as e:
            remote_sock.close()
            logger.error(f"[TUNNEL] Failed to attach port-forward to {self.pod_name}:{self.remote_port} for {peer}: {e}")
            return

        logger.debug(f"[TUNNEL] Connection from {peer} forwarded to {self.pod_name}:{self.remote_port}")

        pumps = [
            asyncio.ensure_future(_pipe(reader, remote_writer)),
            asyncio.ensure_future(_pipe(remote_reader, writer)),
        ]
        try:
            done, pending = await asyncio.wait(pumps, return_when=asyncio.FIRST_COMPLETED)
            if pending and not any(pump.exception() for pump in done):
                await asyncio.wait(pending)
        finally:
            for pump in pumps:
                pump.cancel()
            remote_writer.close()
            results = await asyncio.gather(*pumps, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.debug(f"[TUNNEL] Connection from {peer} ended with error: {result}")
            logger.debug(f"[TUNNEL] Connection from {peer} on port {self.local_port} closed")


@dataclass
class TunnelSet:
    """Open tunnels: bootstrap first, then one per node in ascending node ID order."""
    tunnels: List[Tunnel] = field(default_factory=list)

    def __iter__(self) -> Iterator[Tunnel]:
        return iter(self.tunnels)

    def __len__(self) -> int:
        return len(self.tunnels)

    @property
    def local_ports(self) -> List[int]:
        return [tunnel.local_port for tunnel in self.tunnels]


class TunnelManager:
    """Opens and closes the tunnels to the proxy Pod."""

    def __init__(
        self,
        k8s_client: KubernetesClient,
        pod_name: str,
        namespace: str,
        host: str = LOCAL_HOST
    ):
        self.k8s_client = k8s_client
        self.pod_name = pod_name
        self.namespace = namespace
        self.host = host

    def _create_tunnel(self, port: int) -> Tunnel:
        return Tunnel(
            k8s_client=self.k8s_client,
            pod_name=self.pod_name,
            namespace=self.namespace,
            local_port=port,
            remote_port=port,
            host=self.host
        )

    async def start(self, descriptor: ClusterDescriptor, starting_port: int) -> TunnelSet:
        """
        Open the bootstrap tunnel and one tunnel per node.

        If any tunnel fails to open, or the start is cancelled, the tunnels
        opened so far are closed again and the error is raised.

        Args:
            descriptor: Discovered Kafka cluster
            starting_port: Bootstrap port

        Returns:
            TunnelSet with the open tunnels
        """
        tunnel_set = TunnelSet()
        targets = [(None, starting_port)] + list(port_plan(starting_port, descriptor.node_ids).items())

        try:
            for node_id, port in targets:
                tunnel = self._create_tunnel(port)
                try:
                    await tunnel.open()
                except Exception as e:
                    logger.error(f"[TUNNEL] Failed to open port-forward on port {port}: {e}")
                    raise
                tunnel_set.tunnels.append(tunnel)

                if node_id is None:
                    logger.info(f"[TUNNEL] Forwarding bootstrap port {port}")
                else:
                    logger.info(f"[TUNNEL] Forwarding node {node_id} to port {port}")
        except BaseException:
            # Also reached on cancellation, which the caller cannot clean up after
            await self.stop(tunnel_set)
            raise

        return tunnel_set

    async def stop(self, tunnel_set: TunnelSet) -> None:
        """Close every tunnel; a failing tunnel does not stop the others from closing."""
        for tunnel in tunnel_set:
            try:
                await tunnel.close()
            except Exception as e:
                logger.warning(f"[TUNNEL] Failed to close port-forward on port {tunnel.local_port}: {e}")
