"""
gRPC server implementation for the worker service.

Each worker runs a gRPC server that accepts sub-tasks from the coordinator,
executes them and returns the sub-task with results filled in. Payloads are
JSON-encoded tasks registered through a generic handler, so no generated
protobuf stubs are needed.
"""

import json
import logging
import time
from typing import Optional

import grpc

from communication.serialization import serialize_task, deserialize_task
from core.errors import DispatchError, InvalidArgumentError, SerializationError
from core.interfaces import WorkerAPI


logger = logging.getLogger(__name__)

SERVICE_NAME = "fanout.WorkerService"
EXECUTE_METHOD = f"/{SERVICE_NAME}/Execute"
PING_METHOD = f"/{SERVICE_NAME}/Ping"

# Metadata key carrying the target service name (registry-style lookup)
SERVICE_NAME_METADATA = "x-service-name"

MAX_MESSAGE_LENGTH = 100 * 1024 * 1024  # 100MB


class WorkerServicer:
    """
    gRPC servicer exposing a WorkerAPI under a service name.

    Calls addressed to a different service name are rejected with NOT_FOUND,
    mirroring a naming registry that has nothing bound under that name.
    """

    def __init__(self, service_name: str, worker: WorkerAPI):
        """
        Initialize the worker servicer.

        Args:
            service_name: Name this worker is registered under
            worker: Object executing sub-tasks
        """
        self.service_name = service_name
        self.worker = worker
        logger.info(f"Initialized WorkerServicer for service {service_name}")

    async def _check_service_name(self, context: grpc.aio.ServicerContext):
        for key, value in context.invocation_metadata() or ():
            if key == SERVICE_NAME_METADATA and value != self.service_name:
                await context.abort(
                    grpc.StatusCode.NOT_FOUND,
                    f"Service '{value}' is not bound here (this is '{self.service_name}')",
                )

    async def Execute(self, request: bytes, context: grpc.aio.ServicerContext) -> bytes:
        """
        Handle an execute request from the coordinator.

        Returns the serialized sub-task with every result filled in.
        """
        await self._check_service_name(context)

        try:
            task = deserialize_task(request)
        except (SerializationError, InvalidArgumentError) as e:
            logger.warning(f"Rejected malformed sub-task: {e}")
            await context.abort(grpc.StatusCode.INVALID_ARGUMENT, str(e))

        logger.debug(f"Execute request for '{task.name}' ({task.size()} requests)")

        try:
            result = await self.worker.execute(task)
        except InvalidArgumentError as e:
            await context.abort(grpc.StatusCode.INVALID_ARGUMENT, str(e))
        except DispatchError as e:
            logger.error(f"Sub-task '{task.name}' failed: {e}")
            await context.abort(grpc.StatusCode.INTERNAL, str(e))

        return serialize_task(result)

    async def Ping(self, request: bytes, context: grpc.aio.ServicerContext) -> bytes:
        """
        Handle ping request for health checks and latency measurement.
        """
        await self._check_service_name(context)

        try:
            timestamp = json.loads(request.decode('utf-8') or '{}').get('timestamp', 0)
        except (UnicodeDecodeError, json.JSONDecodeError, AttributeError):
            timestamp = 0

        return json.dumps({
            'service_name': self.service_name,
            'timestamp': timestamp,
            'server_time': int(time.time() * 1000),  # milliseconds
        }).encode('utf-8')


def create_generic_handler(servicer: WorkerServicer) -> grpc.GenericRpcHandler:
    """Register the servicer's methods under SERVICE_NAME with raw bytes payloads."""
    return grpc.method_handlers_generic_handler(
        SERVICE_NAME,
        {
            'Execute': grpc.unary_unary_rpc_method_handler(servicer.Execute),
            'Ping': grpc.unary_unary_rpc_method_handler(servicer.Ping),
        },
    )


class WorkerGRPCServer:
    """
    Manages the gRPC server lifecycle for a worker.
    """

    def __init__(
        self,
        service_name: str,
        worker: WorkerAPI,
        host: str = "0.0.0.0",
        port: int = 19092,
    ):
        """
        Initialize gRPC server for this worker.

        Args:
            service_name: Name the worker is registered under
            worker: Object executing sub-tasks
            host: Host to bind to
            port: Port to listen on
        """
        self.service_name = service_name
        self.host = host
        self.port = port
        self.server: Optional[grpc.aio.Server] = None
        self.servicer = WorkerServicer(service_name, worker)

    async def start(self):
        """Start the gRPC server."""
        options = [
            ('grpc.max_send_message_length', MAX_MESSAGE_LENGTH),
            ('grpc.max_receive_message_length', MAX_MESSAGE_LENGTH),
        ]
        self.server = grpc.aio.server(options=options)
        self.server.add_generic_rpc_handlers((create_generic_handler(self.servicer),))

        listen_addr = f"{self.host}:{self.port}"
        bound_port = self.server.add_insecure_port(listen_addr)
        if bound_port == 0:
            raise RuntimeError(f"Could not bind worker gRPC server to {listen_addr}")
        self.port = bound_port

        await self.server.start()
        logger.info(f"Worker {self.service_name} gRPC server started on {self.host}:{self.port}")

    async def stop(self, grace: Optional[float] = 5.0):
        """Stop the gRPC server gracefully."""
        if self.server:
            logger.info(f"Stopping gRPC server for worker {self.service_name}")
            await self.server.stop(grace)
            self.server = None
            logger.info("gRPC server stopped")

    async def wait_for_termination(self):
        """Wait for the server to terminate."""
        if self.server:
            await self.server.wait_for_termination()
