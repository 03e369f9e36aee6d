"""
Core data model for fan-out task distribution.

Provides:
- Task and TaskBuilder: the unit of work that is split, executed and merged
- Endpoint: (service_name, host, port) addressing for remote services
- Partitioning: order-preserving split and merge of tasks
"""

from core.task import Task, TaskBuilder
from core.endpoint import Endpoint
from core.errors import (
    TaskError,
    InvalidArgumentError,
    DispatchError,
    TopologyError,
    SerializationError,
)

__version__ = "0.1.0"

__all__ = [
    "Task",
    "TaskBuilder",
    "Endpoint",
    "TaskError",
    "InvalidArgumentError",
    "DispatchError",
    "TopologyError",
    "SerializationError",
]
