"""
Task serialization utilities for gRPC and HTTP communication.

Wire shape:
    {"name": str, "entries": [{"request": str, "result": str | null}, ...]}

Entries are a list so that key order survives any JSON implementation.
Payloads are validated with the pydantic models below; decoding then goes
through TaskBuilder, so duplicate requests or a missing name are rejected
exactly as they are for locally built tasks.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, Field, ValidationError

from core.errors import SerializationError
from core.task import Task, TaskBuilder


class TaskEntry(BaseModel):
    """One request and its (optional) result."""
    request: str = Field(..., description="Request string, unique within a task")
    result: Optional[str] = Field(None, description="Result, absent until executed")


class TaskPayload(BaseModel):
    """Task wire payload."""
    name: str = Field(..., description="Task name")
    entries: List[TaskEntry] = Field(..., description="Ordered request/result pairs")


def task_to_payload(task: Task) -> TaskPayload:
    """Convert a Task to its wire model."""
    return TaskPayload(
        name=task.name,
        entries=[
            TaskEntry(request=request, result=result)
            for request, result in task.items()
        ],
    )


def task_from_payload(payload: TaskPayload) -> Task:
    """
    Build a Task from a validated wire model.

    Raises:
        InvalidArgumentError: If the name is empty or a request is duplicated
    """
    builder = TaskBuilder()
    builder.set_name(payload.name)
    for entry in payload.entries:
        builder.add_entry_with_result(entry.request, entry.result)
    return builder.build()


def task_to_dict(task: Task) -> dict:
    """
    Convert a Task to its wire dictionary.

    Args:
        task: Task to convert

    Returns:
        Dictionary ready for JSON encoding
    """
    return task_to_payload(task).model_dump()


def task_from_dict(data: Any) -> Task:
    """
    Rebuild a Task from its wire dictionary.

    Args:
        data: Dictionary produced by task_to_dict

    Returns:
        Task with entries in wire order

    Raises:
        SerializationError: If the payload does not have the wire shape
        InvalidArgumentError: If the name is empty or a request is duplicated
    """
    try:
        payload = TaskPayload.model_validate(data)
    except ValidationError as e:
        raise SerializationError(f"Invalid task payload: {e}") from e
    return task_from_payload(payload)


def serialize_task(task: Task) -> bytes:
    """Encode a Task as UTF-8 JSON bytes."""
    return task_to_payload(task).model_dump_json().encode('utf-8')


def deserialize_task(payload: bytes) -> Task:
    """
    Decode UTF-8 JSON bytes into a Task.

    Raises:
        SerializationError: If the bytes are not a valid task payload
    """
    try:
        data = TaskPayload.model_validate_json(payload)
    except ValidationError as e:
        raise SerializationError(f"Invalid task payload: {e}") from e
    return task_from_payload(data)
