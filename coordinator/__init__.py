"""
Coordinator module for fan-out task distribution.

The coordinator is responsible for:
- Holding the fixed roster of worker endpoints
- Splitting submitted tasks into balanced, order-preserving sub-tasks
- Dispatching sub-tasks to workers concurrently
- Merging worker results back into one task
"""

__version__ = "0.1.0"
