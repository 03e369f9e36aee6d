"""
gRPC client for coordinator-to-worker communication.

The coordinator uses this client as its WorkerTransport: every sub-task is
sent to the worker endpoint it was assigned to. Failures are raised, never
retried.
"""

import json
import logging
import time
from typing import Dict, Optional

import grpc

from communication.grpc_server import (
    EXECUTE_METHOD,
    MAX_MESSAGE_LENGTH,
    PING_METHOD,
    SERVICE_NAME_METADATA,
)
from communication.serialization import serialize_task, deserialize_task
from core.endpoint import Endpoint
from core.errors import DispatchError, SerializationError
from core.task import Task


logger = logging.getLogger(__name__)


class WorkerGRPCClient:
    """
    Client for making gRPC requests to workers.
    """

    def __init__(self, timeout: Optional[float] = None):
        """
        Initialize the gRPC client.

        Args:
            timeout: Default timeout for execute calls in seconds
                     (None waits indefinitely)
        """
        self.timeout = timeout
        self.channels: Dict[str, grpc.aio.Channel] = {}  # Cache of open channels to workers
        logger.info("Initialized WorkerGRPCClient")

    def get_channel(self, address: str) -> grpc.aio.Channel:
        """
        Get or create a gRPC channel to a worker.

        Args:
            address: Address in format "host:port"

        Returns:
            gRPC async channel
        """
        if address not in self.channels:
            options = [
                ('grpc.max_send_message_length', MAX_MESSAGE_LENGTH),
                ('grpc.max_receive_message_length', MAX_MESSAGE_LENGTH),
            ]
            self.channels[address] = grpc.aio.insecure_channel(address, options=options)
            logger.debug(f"Created channel to {address}")

        return self.channels[address]

    async def execute(self, endpoint: Endpoint, task: Task, timeout: Optional[float] = None) -> Task:
        """
        Send a sub-task to a worker and wait for the executed sub-task.

        Args:
            endpoint: Target worker endpoint
            task: Sub-task to execute
            timeout: Per-call timeout (falls back to the client default)

        Returns:
            Sub-task with results filled in

        Raises:
            DispatchError: If the call fails or the response cannot be decoded
        """
        channel = self.get_channel(endpoint.address)
        call = channel.unary_unary(EXECUTE_METHOD)
        metadata = ((SERVICE_NAME_METADATA, endpoint.service_name),)

        try:
            response = await call(
                serialize_task(task),
                timeout=timeout if timeout is not None else self.timeout,
                metadata=metadata,
            )
        except grpc.RpcError as e:
            logger.error(
                f"RPC error executing '{task.name}' on {endpoint}: "
                f"{e.code()} - {e.details()}"
            )
            raise DispatchError(
                f"Worker {endpoint} failed to execute '{task.name}': {e.code().name} - {e.details()}",
                cause=e,
            ) from e

        try:
            result = deserialize_task(response)
        except (SerializationError, ValueError) as e:
            raise DispatchError(f"Invalid response from worker {endpoint}: {e}", cause=e) from e

        logger.debug(f"Worker {endpoint} executed '{task.name}' ({result.size()} results)")
        return result

    async def ping(self, endpoint: Endpoint, timeout: float = 5.0) -> Optional[float]:
        """
        Measure latency to a worker.

        Args:
            endpoint: Target worker endpoint
            timeout: Call timeout in seconds

        Returns:
            Round-trip time in milliseconds, or None if failed
        """
        channel = self.get_channel(endpoint.address)
        call = channel.unary_unary(PING_METHOD)
        request = json.dumps({'timestamp': int(time.time() * 1000)}).encode('utf-8')

        try:
            start = time.time()
            await call(
                request,
                timeout=timeout,
                metadata=((SERVICE_NAME_METADATA, endpoint.service_name),),
            )
            rtt_ms = (time.time() - start) * 1000
        except grpc.RpcError as e:
            logger.warning(f"RPC error pinging {endpoint}: {e.code()} - {e.details()}")
            return None

        logger.debug(f"Ping to {endpoint}: {rtt_ms:.2f}ms")
        return rtt_ms

    async def close(self):
        """Close all open channels."""
        for address, channel in self.channels.items():
            await channel.close()
            logger.debug(f"Closed channel to {address}")

        self.channels.clear()
        logger.info("WorkerGRPCClient closed all channels")
