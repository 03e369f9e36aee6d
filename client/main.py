"""
Client entry point.

Builds a synthetic task, submits it to the coordinator and prints every
merged request/result pair.

Usage:
    python -m client.main
    python -m client.main --url http://127.0.0.1:19091 --requests 100
"""

import argparse
import asyncio
import logging
from typing import Optional

from client.coordinator_client import CoordinatorClient
from core.interfaces import CoordinatorAPI
from core.task import Task, TaskBuilder


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

MAX_SUBTASKS = 100
DEFAULT_TASK_NAME = "Simulate a simple task"
DEFAULT_COORDINATOR_URL = "http://127.0.0.1:19091"


def build_task(num_requests: int = MAX_SUBTASKS, name: str = DEFAULT_TASK_NAME) -> Task:
    """
    Build a task with requests "task0" .. "task{num_requests - 1}".

    Args:
        num_requests: Number of requests
        name: Task name

    Returns:
        Task without results
    """
    builder = TaskBuilder().set_name(name)
    for i in range(num_requests):
        builder.add_entry(f"task{i}")
    return builder.build()


async def send_to_master(
    task: Task,
    coordinator_url: str = DEFAULT_COORDINATOR_URL,
    client: Optional[CoordinatorAPI] = None
) -> Task:
    """
    Submit a task to the coordinator and print the merged results.

    Nothing is printed if the submission fails; the error propagates.

    Args:
        task: Task to submit
        coordinator_url: Coordinator base URL (ignored if client is given)
        client: Coordinator to submit through (a CoordinatorClient or an
                in-process CoordinatorService); not closed here

    Returns:
        Merged task
    """
    owns_client = client is None
    if owns_client:
        client = CoordinatorClient(coordinator_url)

    try:
        merged = await client.submit(task)
    finally:
        if owns_client:
            await client.close()

    print(f"All the {merged.size()} sub tasks are finished. The results are listed as following:")
    for request, result in merged.items():
        print(f"Request : {request}, Result: {result}")

    return merged


def main(argv=None):
    parser = argparse.ArgumentParser(description="Submit a synthetic task to the coordinator")
    parser.add_argument(
        "--url",
        type=str,
        default=DEFAULT_COORDINATOR_URL,
        help=f"Coordinator URL (default: {DEFAULT_COORDINATOR_URL})"
    )
    parser.add_argument(
        "--requests",
        type=int,
        default=MAX_SUBTASKS,
        help=f"Number of requests in the task (default: {MAX_SUBTASKS})"
    )
    parser.add_argument("--name", type=str, default=DEFAULT_TASK_NAME, help="Task name")

    args = parser.parse_args(argv)

    task = build_task(args.requests, args.name)
    logger.info("Client begin to submit the task to the master.")
    asyncio.run(send_to_master(task, args.url))


if __name__ == "__main__":
    main()
