"""
Worker service.

Executes every request of a sub-task concurrently on a bounded thread pool
and returns the sub-task with results filled in. Execution is all-or-nothing:
if any request fails the whole call fails and no results are returned.
"""

import asyncio
import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Optional

from core.errors import DispatchError, InvalidArgumentError
from core.task import Task
from worker.config import WorkerConfig


logger = logging.getLogger(__name__)

# Computes the result string for one request
RequestHandler = Callable[[str], str]

PLACEHOLDER_RESULT = "Result(Assume we have calculated the result)"


def placeholder_handler(request: str, service_name: str = "Worker") -> str:
    """
    Stand-in for the per-request computation.

    Replace with the real business logic of a deployment.
    """
    logger.info(f"{service_name} is processing the request: {request}")
    return PLACEHOLDER_RESULT


class WorkerService:
    """
    Executes sub-tasks sent by the coordinator.

    Each worker owns its own pool, independent of the coordinator's
    dispatch concurrency.
    """

    def __init__(self, config: WorkerConfig, handler: Optional[RequestHandler] = None):
        """
        Initialize worker service.

        Args:
            config: Worker configuration
            handler: Per-request computation (defaults to placeholder_handler)
        """
        self.config = config
        self.handler = handler or functools.partial(placeholder_handler, service_name=config.service_name)
        self._executor = ThreadPoolExecutor(
            max_workers=config.pool_size,
            thread_name_prefix=f"{config.service_name}-pool",
        )

        logger.info(f"Worker service initialized: {config}")

    @property
    def service_name(self) -> str:
        return self.config.service_name

    async def execute(self, task: Task) -> Task:
        """
        Execute every request of a sub-task.

        One unit of work is scheduled per request, in the task's stored order.
        The call waits for all of them before returning.

        Args:
            task: Non-empty sub-task

        Returns:
            New Task with the same name and key order and every result filled in

        Raises:
            InvalidArgumentError: If the task is None or empty
            DispatchError: If any request failed (wraps the first failure in
                request order)
        """
        if task is None or task.is_empty():
            raise InvalidArgumentError("Received empty sub-task")

        logger.info(f"Worker {self.service_name} received '{task.name}' with {task.size()} requests")

        loop = asyncio.get_running_loop()
        requests = task.requests()
        futures = [
            loop.run_in_executor(self._executor, self.handler, request)
            for request in requests
        ]

        outcomes = await asyncio.gather(*futures, return_exceptions=True)

        results: Dict[str, str] = {}
        for request, outcome in zip(requests, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Request {request!r} of '{task.name}' failed: {outcome}")
                raise DispatchError(
                    f"Worker {self.service_name} failed on request {request!r} "
                    f"of '{task.name}': {outcome}",
                    cause=outcome,
                ) from outcome
            results[request] = outcome

        logger.info(f"Worker {self.service_name} finished '{task.name}'")
        return task.with_results(results)

    def close(self):
        """Shut down the request pool."""
        self._executor.shutdown(wait=False)
        logger.debug(f"Worker {self.service_name} pool shut down")
