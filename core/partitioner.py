"""
Task partitioning for fan-out/fan-in distribution.

Splitting walks the task's entries in order and cuts them into contiguous
sub-tasks of chunk_size = total // worker_count + 1 entries (the last one may
be shorter). Sub-tasks are assigned to workers by position and merged back
in sub-task order, so the merged task has exactly the key order of the
original task regardless of which worker finishes first.

With this chunk size the number of sub-tasks never exceeds the number of
workers, but it can be smaller: 3 entries over 3 workers gives chunks of 2
and 1, and the third worker receives nothing.
"""

import logging
from typing import List, Sequence, Tuple, TypeVar

from core.errors import InvalidArgumentError, TopologyError
from core.task import Task, TaskBuilder


logger = logging.getLogger(__name__)

MERGED_PREFIX = "[Merged]"

W = TypeVar('W')


def chunk_size(total: int, worker_count: int) -> int:
    """
    Number of entries per sub-task.

    Args:
        total: Number of entries in the task
        worker_count: Number of registered workers

    Returns:
        total // worker_count + 1
    """
    if worker_count < 1:
        raise InvalidArgumentError(f"worker_count must be positive, got {worker_count}")
    return total // worker_count + 1


def split_task(task: Task, worker_count: int) -> List[Task]:
    """
    Split a task into contiguous, order-preserving sub-tasks.

    Sub-task i is named task.name + str(i). Results already present in the
    task are not carried over; sub-tasks are sent with empty results.

    Args:
        task: Non-empty task to split
        worker_count: Number of registered workers

    Returns:
        List of ceil(total / chunk_size) non-empty sub-tasks
    """
    if task is None or task.is_empty():
        raise InvalidArgumentError("Cannot split an empty task")

    length = chunk_size(task.size(), worker_count)
    sub_tasks: List[Task] = []
    builder = TaskBuilder()
    count = 0

    builder.set_name(f"{task.name}{len(sub_tasks)}")
    for request in task:
        builder.add_entry(request)
        count += 1
        if count == length:
            sub_tasks.append(builder.build())
            count = 0
            builder.set_name(f"{task.name}{len(sub_tasks)}")

    # Trailing partial chunk
    if count:
        sub_tasks.append(builder.build())

    logger.info(
        f"Split task '{task.name}' ({task.size()} requests) into "
        f"{len(sub_tasks)} sub-tasks of up to {length} requests"
    )
    return sub_tasks


def assign_sub_tasks(sub_tasks: Sequence[Task], workers: Sequence[W]) -> List[Tuple[Task, W]]:
    """
    Pair sub-tasks with workers by position (sub_tasks[i] -> workers[i]).

    Raises:
        TopologyError: If there are more sub-tasks than workers
    """
    if len(sub_tasks) > len(workers):
        raise TopologyError(len(sub_tasks), len(workers))
    return list(zip(sub_tasks, workers))


def merge_tasks(sub_tasks: Sequence[Task]) -> Task:
    """
    Merge executed sub-tasks into one task.

    The merged task is named "[Merged]" + name of the first sub-task and holds
    every entry in sub-task order, then in each sub-task's stored order.

    Raises:
        InvalidArgumentError: If there is nothing to merge or two sub-tasks
            share a request
    """
    if not sub_tasks:
        raise InvalidArgumentError("Cannot merge an empty list of sub-tasks")

    builder = TaskBuilder()
    builder.set_name(f"{MERGED_PREFIX}{sub_tasks[0].name}")
    for sub_task in sub_tasks:
        for request, result in sub_task.items():
            builder.add_entry_with_result(request, result)

    merged = builder.build()
    logger.debug(f"Merged {len(sub_tasks)} sub-tasks into '{merged.name}' ({merged.size()} entries)")
    return merged
