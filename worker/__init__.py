"""
Worker module for fan-out task distribution.

Workers are the compute nodes that:
- Accept sub-tasks from the coordinator over gRPC
- Execute every request of a sub-task concurrently on a bounded pool
- Return the sub-task with all results filled in, or fail as a whole
"""

__version__ = "0.1.0"
