"""
Communication module for fan-out task distribution.

Provides the transport between coordinator and workers:
- gRPC server: workers accept sub-tasks from the coordinator
- gRPC client: the coordinator dispatches sub-tasks to workers
- Serialization: task wire format shared with the HTTP API
"""

from communication.grpc_server import WorkerGRPCServer
from communication.grpc_client import WorkerGRPCClient
from communication.serialization import (
    TaskEntry,
    TaskPayload,
    task_to_dict,
    task_from_dict,
    serialize_task,
    deserialize_task,
)

__version__ = "0.1.0"

__all__ = [
    "WorkerGRPCServer",
    "WorkerGRPCClient",
    "TaskEntry",
    "TaskPayload",
    "task_to_dict",
    "task_from_dict",
    "serialize_task",
    "deserialize_task",
]
