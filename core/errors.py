"""
Error taxonomy for task distribution.

All failures surface to the immediate caller. Nothing in the core retries.
"""

from typing import Optional


class TaskError(Exception):
    """Base class for all task distribution errors."""


class InvalidArgumentError(TaskError, ValueError):
    """Empty or missing task, empty name, unset name or duplicate request."""


class SerializationError(TaskError, ValueError):
    """Malformed wire payload."""


class DispatchError(TaskError):
    """
    A concurrent sub-call failed.

    Raised by the coordinator when a worker call fails and by the worker
    when a per-request computation fails. The enclosing operation is aborted
    and no partial results are returned.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class TopologyError(TaskError):
    """Split produced more sub-tasks than there are registered workers."""

    def __init__(self, sub_task_count: int, worker_count: int):
        super().__init__(
            f"Split produced {sub_task_count} sub-tasks but only "
            f"{worker_count} workers are registered"
        )
        self.sub_task_count = sub_task_count
        self.worker_count = worker_count
