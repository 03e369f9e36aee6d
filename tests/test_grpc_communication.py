"""
Tests for the gRPC communication layer.

Starts real worker gRPC servers on localhost and talks to them through
WorkerGRPCClient.
"""

import grpc
import pytest

from communication import WorkerGRPCClient, WorkerGRPCServer
from communication.grpc_server import EXECUTE_METHOD, SERVICE_NAME_METADATA
from core.endpoint import Endpoint
from core.errors import DispatchError, InvalidArgumentError
from core.task import Task, TaskBuilder
from worker.config import WorkerConfig
from worker.service import WorkerService


def make_task(name: str, count: int) -> Task:
    builder = TaskBuilder().set_name(name)
    for i in range(count):
        builder.add_entry(f"task{i}")
    return builder.build()


class RecordingWorker:
    """Worker double that records calls and can be told to fail."""

    def __init__(self, error: Exception = None):
        self.error = error
        self.received = []

    async def execute(self, task: Task) -> Task:
        self.received.append(task)
        if self.error:
            raise self.error
        return task.with_results({request: f"ok:{request}" for request in task})


async def start_server(service_name: str, worker) -> WorkerGRPCServer:
    """Start a worker server on a free port."""
    server = WorkerGRPCServer(
        service_name=service_name,
        worker=worker,
        host="127.0.0.1",
        port=0,
    )
    await server.start()
    return server


@pytest.mark.asyncio
class TestGRPCServerClient:
    """Test gRPC server and client communication."""

    async def test_server_startup_shutdown(self):
        """Test that gRPC server starts and stops cleanly."""
        server = await start_server("Slave1", RecordingWorker())

        assert server.port > 0

        await server.stop(grace=1.0)
        assert server.server is None

    async def test_execute(self):
        """Test a sub-task round trip."""
        worker = RecordingWorker()
        server = await start_server("Slave1", worker)
        client = WorkerGRPCClient()

        try:
            endpoint = Endpoint("Slave1", "127.0.0.1", server.port)
            result = await client.execute(endpoint, make_task("T0", 5))
        finally:
            await client.close()
            await server.stop(grace=1.0)

        assert result.name == "T0"
        assert result.items() == [(f"task{i}", f"ok:task{i}") for i in range(5)]
        assert worker.received[0].requests() == [f"task{i}" for i in range(5)]

    async def test_execute_with_worker_service(self, tmp_path):
        """Test a real WorkerService behind the server."""
        service = WorkerService(
            WorkerConfig(service_name="Slave1", working_dir=str(tmp_path / "w"), pool_size=4),
            handler=lambda request: request[::-1],
        )
        server = await start_server("Slave1", service)
        client = WorkerGRPCClient()

        try:
            endpoint = Endpoint("Slave1", "127.0.0.1", server.port)
            result = await client.execute(endpoint, make_task("T0", 3))
        finally:
            await client.close()
            await server.stop(grace=1.0)
            service.close()

        assert result.items() == [("task0", "0ksat"), ("task1", "1ksat"), ("task2", "2ksat")]

    async def test_worker_failure_raises_dispatch_error(self):
        """Test that a failing worker surfaces as DispatchError on the client."""
        server = await start_server("Slave1", RecordingWorker(error=DispatchError("boom")))
        client = WorkerGRPCClient()

        try:
            endpoint = Endpoint("Slave1", "127.0.0.1", server.port)
            with pytest.raises(DispatchError) as exc_info:
                await client.execute(endpoint, make_task("T0", 2))
        finally:
            await client.close()
            await server.stop(grace=1.0)

        assert "INTERNAL" in str(exc_info.value)
        assert "boom" in str(exc_info.value)

    async def test_invalid_argument_status(self):
        """Test that worker-side validation errors map to INVALID_ARGUMENT."""
        server = await start_server("Slave1", RecordingWorker(error=InvalidArgumentError("empty")))
        client = WorkerGRPCClient()

        try:
            endpoint = Endpoint("Slave1", "127.0.0.1", server.port)
            with pytest.raises(DispatchError) as exc_info:
                await client.execute(endpoint, make_task("T0", 1))
        finally:
            await client.close()
            await server.stop(grace=1.0)

        assert "INVALID_ARGUMENT" in str(exc_info.value)

    async def test_wrong_service_name(self):
        """Test that a call addressed to another service name is rejected."""
        worker = RecordingWorker()
        server = await start_server("Slave1", worker)
        client = WorkerGRPCClient()

        try:
            endpoint = Endpoint("Slave2", "127.0.0.1", server.port)
            with pytest.raises(DispatchError) as exc_info:
                await client.execute(endpoint, make_task("T0", 1))
        finally:
            await client.close()
            await server.stop(grace=1.0)

        assert "NOT_FOUND" in str(exc_info.value)
        assert worker.received == []

    async def test_unreachable_worker(self):
        """Test that connection failures raise DispatchError."""
        client = WorkerGRPCClient(timeout=1.0)

        try:
            # Nothing listens on this port
            endpoint = Endpoint("Slave1", "127.0.0.1", 1)
            with pytest.raises(DispatchError):
                await client.execute(endpoint, make_task("T0", 1))
        finally:
            await client.close()

    async def test_ping(self):
        """Test latency measurement."""
        server = await start_server("Slave1", RecordingWorker())
        client = WorkerGRPCClient()

        try:
            rtt = await client.ping(Endpoint("Slave1", "127.0.0.1", server.port))
        finally:
            await client.close()
            await server.stop(grace=1.0)

        assert rtt is not None
        assert rtt >= 0

    async def test_channel_cache(self):
        """Test that channels are reused per address."""
        client = WorkerGRPCClient()

        try:
            first = client.get_channel("127.0.0.1:19092")
            second = client.get_channel("127.0.0.1:19092")
            other = client.get_channel("127.0.0.1:19093")

            assert first is second
            assert first is not other
        finally:
            await client.close()

        assert client.channels == {}

    @pytest.mark.parametrize("payload", [
        b'{"name":"T0","entries":[{"request":["x"]}]}',
        b'{"name":5,"entries":[{"request":1}]}',
        b'not json',
    ])
    async def test_malformed_payload_is_invalid_argument(self, payload):
        """Test that undecodable sub-tasks are rejected before reaching the worker."""
        worker = RecordingWorker()
        server = await start_server("Slave1", worker)

        try:
            async with grpc.aio.insecure_channel(f"127.0.0.1:{server.port}") as channel:
                execute = channel.unary_unary(EXECUTE_METHOD)
                with pytest.raises(grpc.aio.AioRpcError) as exc_info:
                    await execute(payload, metadata=((SERVICE_NAME_METADATA, "Slave1"),))
        finally:
            await server.stop(grace=1.0)

        assert exc_info.value.code() == grpc.StatusCode.INVALID_ARGUMENT
        assert worker.received == []
