"""
Coordinator service.

Splits a submitted task into one contiguous sub-task per worker, dispatches
the sub-tasks concurrently, waits for every call and merges the results in
the original key order. Any failure aborts the whole submission; completed
sub-task results are discarded.
"""

import asyncio
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from coordinator.config import CoordinatorConfig
from core.endpoint import Endpoint
from core.errors import DispatchError, InvalidArgumentError
from core.interfaces import WorkerTransport
from core.partitioner import assign_sub_tasks, merge_tasks, split_task
from core.task import Task


logger = logging.getLogger(__name__)


class CoordinatorService:
    """
    Fan-out/fan-in coordinator.

    The worker roster is fixed at construction and never mutated, so
    concurrent submissions share it without locking. Each submission is
    independent: there is no queue and no persisted job state.
    """

    def __init__(self, config: CoordinatorConfig, transport: WorkerTransport):
        """
        Initialize coordinator service.

        Args:
            config: Coordinator configuration (roster, pool size)
            transport: Delivers sub-tasks to worker endpoints
        """
        self.config = config
        self.transport = transport
        self._workers: Tuple[Endpoint, ...] = tuple(config.workers)
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._semaphore_loop: Optional[asyncio.AbstractEventLoop] = None

        logger.info(
            f"Coordinator {config.service_name} initialized with "
            f"{len(self._workers)} workers: {', '.join(str(w) for w in self._workers)}"
        )

    @property
    def workers(self) -> Tuple[Endpoint, ...]:
        return self._workers

    async def submit(self, task: Task) -> Task:
        """
        Distribute a task across the workers and merge the results.

        Args:
            task: Non-empty task

        Returns:
            Merged task named "[Merged]" + first sub-task name, entries in
            the original order with results filled in

        Raises:
            InvalidArgumentError: If the task is None or empty
            TopologyError: If the split yields more sub-tasks than workers
            DispatchError: If any worker call fails
        """
        if task is None or task.is_empty():
            raise InvalidArgumentError("Empty task is sent to the coordinator")

        received_at = datetime.now().strftime("%Y/%m/%d %H:%M:%S")
        logger.info(
            f"Receive a remote task. Task Name: {task.name} "
            f"Sub Tasks Size: {task.size()}. Receive Time: {received_at}"
        )

        results = await self.map(task)
        return self.reduce(results)

    def split(self, task: Task) -> List[Task]:
        """Split a task into sub-tasks for the current roster."""
        return split_task(task, len(self._workers))

    async def map(self, task: Task) -> List[Task]:
        """
        Split the task and execute every sub-task on its worker.

        Returns:
            Executed sub-tasks in dispatch order
        """
        sub_tasks = self.split(task)
        assignments = assign_sub_tasks(sub_tasks, self._workers)

        outcomes = await asyncio.gather(
            *(self._dispatch(sub_task, endpoint) for sub_task, endpoint in assignments),
            return_exceptions=True,
        )

        executed: List[Task] = []
        for (sub_task, endpoint), outcome in zip(assignments, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Sub-task '{sub_task.name}' failed on {endpoint}: {outcome}")
                if isinstance(outcome, DispatchError):
                    raise outcome
                raise DispatchError(
                    f"Sub-task '{sub_task.name}' failed on {endpoint}: {outcome}",
                    cause=outcome,
                ) from outcome
            executed.append(outcome)

        return executed

    def reduce(self, sub_tasks: List[Task]) -> Task:
        """Merge executed sub-tasks in dispatch order."""
        merged = merge_tasks(sub_tasks)
        logger.info(f"Merged {len(sub_tasks)} sub-tasks into '{merged.name}' ({merged.size()} results)")
        return merged

    def _get_semaphore(self) -> asyncio.Semaphore:
        """Dispatch pool bound to the running event loop, created on first use."""
        loop = asyncio.get_running_loop()
        if self._semaphore is None or self._semaphore_loop is not loop:
            self._semaphore = asyncio.Semaphore(self.config.pool_size)
            self._semaphore_loop = loop
        return self._semaphore

    async def _dispatch(self, sub_task: Task, endpoint: Endpoint) -> Task:
        """Send one sub-task, bounded by the dispatch pool."""
        async with self._get_semaphore():
            logger.debug(f"Dispatching '{sub_task.name}' ({sub_task.size()} requests) to {endpoint}")
            result = await self.transport.execute(
                endpoint, sub_task, timeout=self.config.dispatch_timeout
            )

        if result.requests() != sub_task.requests():
            raise DispatchError(
                f"Worker {endpoint} returned a different request set for '{sub_task.name}'"
            )
        return result
