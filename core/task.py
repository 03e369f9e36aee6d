"""
Task data model.

A Task is a named, ordered, key-unique collection of request -> result pairs.
Tasks are built incrementally through TaskBuilder and never change their key
set or key order once built.
"""

from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from core.errors import InvalidArgumentError


class Task:
    """
    Unit of work submitted to the coordinator, split into sub-tasks,
    executed by workers and merged back together.

    Results are None until a worker fills them in.
    """

    def __init__(self, name: str, entries: Mapping[str, Optional[str]]):
        """
        Args:
            name: Task name (must be non-empty)
            entries: Ordered mapping of request -> result (copied)
        """
        if not name:
            raise InvalidArgumentError(
                "Cannot construct a task with an empty name"
            )
        self._name = name
        # dict preserves insertion order
        self._entries: Dict[str, Optional[str]] = dict(entries)

    @property
    def name(self) -> str:
        return self._name

    @property
    def entries(self) -> Mapping[str, Optional[str]]:
        """Read-only view of the request -> result mapping."""
        return MappingProxyType(self._entries)

    def size(self) -> int:
        """Number of entries in the task."""
        return len(self._entries)

    def requests(self) -> List[str]:
        """Request keys in stored order."""
        return list(self._entries)

    def items(self) -> List[Tuple[str, Optional[str]]]:
        """(request, result) pairs in stored order."""
        return list(self._entries.items())

    def is_empty(self) -> bool:
        return not self._entries

    def with_results(self, results: Mapping[str, str]) -> 'Task':
        """
        Create a copy of this task with results filled in.

        The key set and key order of the new task are exactly those of this
        task; only the result values change.

        Args:
            results: Mapping of request -> result covering every request

        Returns:
            New Task with the same name and key order

        Raises:
            InvalidArgumentError: If a request has no result or the mapping
                contains requests that are not part of this task
        """
        missing = [request for request in self._entries if request not in results]
        if missing:
            raise InvalidArgumentError(
                f"Missing results for {len(missing)} requests of task "
                f"'{self._name}' (first: {missing[0]!r})"
            )
        extra = [request for request in results if request not in self._entries]
        if extra:
            raise InvalidArgumentError(
                f"Results contain unknown request {extra[0]!r} for task '{self._name}'"
            )
        return Task(
            self._name,
            {request: results[request] for request in self._entries},
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __contains__(self, request: object) -> bool:
        return request in self._entries

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Task):
            return NotImplemented
        # Order is significant
        return self._name == other._name and self.items() == other.items()

    def __hash__(self):
        return hash((self._name, tuple(self._entries.items())))

    def __repr__(self) -> str:
        return f"Task(name='{self._name}', size={len(self._entries)})"


class TaskBuilder:
    """
    Incremental Task construction.

    A builder can be reused: every build() snapshots the current state into
    a new Task and resets the builder, so the name has to be set again
    before the next task.

    Example:
        builder = TaskBuilder()
        task = builder.set_name("T").add_entry("a").add_entry("b").build()
    """

    def __init__(self):
        self._name: Optional[str] = None
        self._entries: Dict[str, Optional[str]] = {}

    def set_name(self, name: str) -> 'TaskBuilder':
        """
        Set the task name.

        Raises:
            InvalidArgumentError: If the name is None or empty
        """
        if not name:
            raise InvalidArgumentError(
                "Task name is empty. Please give the task name properly."
            )
        self._name = name
        return self

    def add_entry(self, request: str) -> 'TaskBuilder':
        """Add a request without a result."""
        return self.add_entry_with_result(request, None)

    def add_entry_with_result(self, request: str, result: Optional[str]) -> 'TaskBuilder':
        """
        Add a request and its result.

        Raises:
            InvalidArgumentError: If the name is unset or the request is
                already present (duplicates are never overwritten)
        """
        if not self._name:
            raise InvalidArgumentError(
                "Task name is not set. Please set the task name first."
            )
        if request in self._entries:
            raise InvalidArgumentError(
                f"Duplicate request {request!r} in task '{self._name}'"
            )
        self._entries[request] = result
        return self

    def build(self) -> Task:
        """
        Build the task and reset the builder.

        Raises:
            InvalidArgumentError: If the name is unset
        """
        task = Task(self._name, self._entries)
        self._name = None
        self._entries = {}
        return task
