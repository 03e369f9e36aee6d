"""
Client module for fan-out task distribution.

Builds tasks and submits them to the coordinator's HTTP API.
"""

__version__ = "0.1.0"
