"""
End-to-end tests: client -> coordinator HTTP API -> gRPC workers.

Workers run real gRPC servers on localhost. The coordinator app is served
in-process through httpx's ASGI transport.
"""

import httpx
import pytest

from client.coordinator_client import CoordinatorClient, CoordinatorError
from client.main import build_task, send_to_master
from communication import WorkerGRPCClient, WorkerGRPCServer
from coordinator import server
from coordinator.config import CoordinatorConfig
from coordinator.service import CoordinatorService
from core.endpoint import Endpoint
from worker.config import WorkerConfig
from worker.service import PLACEHOLDER_RESULT, WorkerService


async def start_workers(tmp_path, count, handler=None):
    """Start count worker services behind gRPC servers on free ports."""
    services, servers = [], []
    for i in range(count):
        name = f"Slave{i + 1}"
        service = WorkerService(
            WorkerConfig(service_name=name, working_dir=str(tmp_path / name), pool_size=8),
            handler=handler,
        )
        grpc_server = WorkerGRPCServer(service_name=name, worker=service, host="127.0.0.1", port=0)
        await grpc_server.start()
        services.append(service)
        servers.append(grpc_server)
    return services, servers


async def stop_workers(services, servers):
    for grpc_server in servers:
        await grpc_server.stop(grace=1.0)
    for service in services:
        service.close()


@pytest.mark.asyncio
async def test_full_round_trip(tmp_path, capsys):
    """100 requests over two gRPC workers come back merged and in order."""
    services, servers = await start_workers(tmp_path, 2)
    grpc_client = WorkerGRPCClient()
    original = server.coordinator

    config = CoordinatorConfig(
        workers=[Endpoint(s.service_name, "127.0.0.1", s.port) for s in servers],
        working_dir=str(tmp_path / "Master"),
    )
    server.coordinator = CoordinatorService(config, grpc_client)

    client = CoordinatorClient(
        "http://coordinator",
        transport=httpx.ASGITransport(app=server.app)
    )

    try:
        task = build_task()
        merged = await send_to_master(task, client=client)
    finally:
        await client.close()
        await grpc_client.close()
        await stop_workers(services, servers)
        server.coordinator = original

    assert merged.name == "[Merged]Simulate a simple task0"
    assert merged.requests() == task.requests()
    assert all(result == PLACEHOLDER_RESULT for _, result in merged.items())

    out = capsys.readouterr().out
    assert "All the 100 sub tasks are finished" in out
    assert f"Request : task0, Result: {PLACEHOLDER_RESULT}" in out
    assert f"Request : task99, Result: {PLACEHOLDER_RESULT}" in out


@pytest.mark.asyncio
async def test_worker_failure_prints_nothing(tmp_path, capsys):
    """A failing request anywhere fails the client call; nothing is printed."""
    def handler(request):
        if request == "task73":
            raise RuntimeError("bad input")
        return "R"

    services, servers = await start_workers(tmp_path, 2, handler=handler)
    grpc_client = WorkerGRPCClient()
    original = server.coordinator

    config = CoordinatorConfig(
        workers=[Endpoint(s.service_name, "127.0.0.1", s.port) for s in servers],
        working_dir=str(tmp_path / "Master"),
    )
    server.coordinator = CoordinatorService(config, grpc_client)

    client = CoordinatorClient(
        "http://coordinator",
        transport=httpx.ASGITransport(app=server.app)
    )

    try:
        with pytest.raises(CoordinatorError) as exc_info:
            await send_to_master(build_task(), client=client)
    finally:
        await client.close()
        await grpc_client.close()
        await stop_workers(services, servers)
        server.coordinator = original

    assert exc_info.value.status_code == 502
    assert "task73" in exc_info.value.detail
    assert "Request :" not in capsys.readouterr().out
