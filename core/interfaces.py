"""
Service contracts.

The coordinator and worker are described by the two calls that cross the
remote boundary. Any transport (in-process, gRPC, HTTP) that satisfies
these protocols can be plugged in.
"""

import asyncio
import logging
from typing import Dict, Mapping, Optional, Protocol, runtime_checkable

from core.endpoint import Endpoint
from core.errors import DispatchError
from core.task import Task


logger = logging.getLogger(__name__)


@runtime_checkable
class WorkerAPI(Protocol):
    """Executes every request of one sub-task."""

    async def execute(self, task: Task) -> Task:
        ...


@runtime_checkable
class CoordinatorAPI(Protocol):
    """Splits, dispatches and merges a submitted task."""

    async def submit(self, task: Task) -> Task:
        ...


@runtime_checkable
class WorkerTransport(Protocol):
    """Delivers a sub-task to the worker identified by an endpoint."""

    async def execute(self, endpoint: Endpoint, task: Task, timeout: Optional[float] = None) -> Task:
        ...


class LocalWorkerTransport:
    """
    In-process transport.

    Resolves endpoints to WorkerAPI objects living in the same process,
    the way a naming registry resolves a service name to a remote object.
    """

    def __init__(self, workers: Optional[Mapping[Endpoint, WorkerAPI]] = None):
        self._workers: Dict[Endpoint, WorkerAPI] = dict(workers or {})

    def bind(self, endpoint: Endpoint, worker: WorkerAPI):
        """Bind a worker under an endpoint."""
        self._workers[endpoint] = worker
        logger.debug(f"Bound local worker {endpoint}")

    def lookup(self, endpoint: Endpoint) -> WorkerAPI:
        """
        Resolve an endpoint.

        Raises:
            DispatchError: If nothing is bound under the endpoint
        """
        try:
            return self._workers[endpoint]
        except KeyError:
            raise DispatchError(f"No worker bound at {endpoint}") from None

    async def execute(self, endpoint: Endpoint, task: Task, timeout: Optional[float] = None) -> Task:
        worker = self.lookup(endpoint)
        if timeout is None:
            return await worker.execute(task)
        return await asyncio.wait_for(worker.execute(task), timeout)
