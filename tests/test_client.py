"""
Unit tests for the client side: task construction and coordinator client.
"""

import json

import httpx
import pytest

from client.coordinator_client import CoordinatorClient, CoordinatorError
from client.main import DEFAULT_TASK_NAME, MAX_SUBTASKS, build_task, send_to_master
from coordinator.config import CoordinatorConfig
from coordinator.service import CoordinatorService
from core.endpoint import Endpoint
from core.interfaces import CoordinatorAPI, LocalWorkerTransport
from worker.config import WorkerConfig
from worker.service import WorkerService


def merged_response(request: httpx.Request) -> httpx.Response:
    """Echo the submitted task back with every result filled in."""
    payload = json.loads(request.content)
    return httpx.Response(200, json={
        "name": "[Merged]" + payload["name"] + "0",
        "entries": [
            {"request": e["request"], "result": e["request"].upper()}
            for e in payload["entries"]
        ],
    })


class TestBuildTask:
    """Test synthetic task construction."""

    def test_default_task(self):
        task = build_task()

        assert task.name == DEFAULT_TASK_NAME
        assert task.size() == MAX_SUBTASKS
        assert task.requests()[:3] == ["task0", "task1", "task2"]
        assert task.requests()[-1] == "task99"
        assert all(result is None for _, result in task.items())

    def test_custom_size(self):
        task = build_task(3, "T")

        assert task.name == "T"
        assert task.requests() == ["task0", "task1", "task2"]


@pytest.mark.asyncio
class TestCoordinatorClient:
    """Test HTTP communication with the coordinator."""

    async def test_submit(self):
        seen = []

        def handler(request):
            seen.append((request.method, request.url.path))
            return merged_response(request)

        client = CoordinatorClient("http://coordinator/", transport=httpx.MockTransport(handler))
        try:
            merged = await client.submit(build_task(3, "T"))
        finally:
            await client.close()

        assert seen == [("POST", "/tasks")]
        assert merged.name == "[Merged]T0"
        assert merged.items() == [("task0", "TASK0"), ("task1", "TASK1"), ("task2", "TASK2")]

    async def test_error_status(self):
        def handler(request):
            return httpx.Response(502, json={"detail": "Worker Slave2 failed"})

        async with CoordinatorClient("http://coordinator", transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(CoordinatorError) as exc_info:
                await client.submit(build_task(2))

        assert exc_info.value.status_code == 502
        assert exc_info.value.detail == "Worker Slave2 failed"

    async def test_error_without_json(self):
        def handler(request):
            return httpx.Response(500, text="oops")

        async with CoordinatorClient("http://coordinator", transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(CoordinatorError) as exc_info:
                await client.health()

        assert exc_info.value.detail == "oops"

    async def test_health(self):
        def handler(request):
            assert request.url.path == "/health"
            return httpx.Response(200, json={"status": "healthy", "workers": 2})

        async with CoordinatorClient("http://coordinator", transport=httpx.MockTransport(handler)) as client:
            assert (await client.health())["workers"] == 2


@pytest.mark.asyncio
class TestSendToMaster:
    """Test the client's submit-and-print flow."""

    async def test_prints_results(self, capsys):
        client = CoordinatorClient("http://coordinator", transport=httpx.MockTransport(merged_response))
        try:
            merged = await send_to_master(build_task(2), client=client)
        finally:
            await client.close()

        lines = capsys.readouterr().out.splitlines()
        assert lines == [
            "All the 2 sub tasks are finished. The results are listed as following:",
            "Request : task0, Result: TASK0",
            "Request : task1, Result: TASK1",
        ]
        assert merged.size() == 2

    async def test_failure_prints_nothing(self, capsys):
        def handler(request):
            return httpx.Response(400, json={"detail": "Empty task is sent to the coordinator"})

        client = CoordinatorClient("http://coordinator", transport=httpx.MockTransport(handler))
        try:
            with pytest.raises(CoordinatorError):
                await send_to_master(build_task(2), client=client)
        finally:
            await client.close()

        assert capsys.readouterr().out == ""

    async def test_in_process_coordinator(self, tmp_path, capsys):
        """Any CoordinatorAPI can stand in for the HTTP client."""
        endpoints = [Endpoint("Slave1", "127.0.0.1", 19092), Endpoint("Slave2", "127.0.0.1", 19093)]
        config = CoordinatorConfig(workers=endpoints, working_dir=str(tmp_path / "Master"))
        worker = WorkerService(WorkerConfig(working_dir=str(tmp_path / "Slave"), pool_size=2))
        service = CoordinatorService(config, LocalWorkerTransport({e: worker for e in endpoints}))

        try:
            merged = await send_to_master(build_task(3, "T"), client=service)
        finally:
            worker.close()

        assert merged.name == "[Merged]T0"
        assert capsys.readouterr().out.startswith("All the 3 sub tasks are finished.")


def test_http_client_satisfies_coordinator_api():
    assert isinstance(CoordinatorClient("http://coordinator"), CoordinatorAPI)
