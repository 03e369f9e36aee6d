"""
Worker configuration.

Defines all configuration parameters for worker nodes.
"""

import json
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from core.endpoint import Endpoint
from core.errors import InvalidArgumentError


DEFAULT_POOL_SIZE = 50


def default_working_dir(service_name: str) -> str:
    """Working directory derived from the service name."""
    return f"{service_name}_WorkingDirectory"


@dataclass
class WorkerConfig:
    """
    Configuration for a worker node.

    Includes identity, network settings and the size of the pool that
    executes requests concurrently.
    """

    # Identity and network settings
    service_name: str = "Slave1"
    host: str = "127.0.0.1"
    port: int = 19092

    # Concurrency
    pool_size: int = DEFAULT_POOL_SIZE  # max requests executing at once

    # Working directory
    working_dir: Optional[str] = None  # defaults to <service_name>_WorkingDirectory
    create_working_dir: bool = True

    # Logging
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR

    def __post_init__(self):
        """Validate and derive defaults."""
        if not self.service_name:
            raise InvalidArgumentError("Worker service name must not be empty")
        if self.pool_size < 1:
            raise InvalidArgumentError(f"pool_size must be at least 1, got {self.pool_size}")

        if self.working_dir is None:
            self.working_dir = default_working_dir(self.service_name)

        if self.create_working_dir:
            os.makedirs(self.working_dir, exist_ok=True)

    @property
    def endpoint(self) -> Endpoint:
        """Endpoint this worker is reachable at."""
        return Endpoint(self.service_name, self.host, self.port)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert config to dictionary.

        Returns:
            Configuration as dictionary
        """
        return {
            'service_name': self.service_name,
            'host': self.host,
            'port': self.port,
            'pool_size': self.pool_size,
            'working_dir': self.working_dir,
            'create_working_dir': self.create_working_dir,
            'log_level': self.log_level,
        }

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'WorkerConfig':
        """
        Create config from dictionary.

        Args:
            config_dict: Configuration dictionary

        Returns:
            WorkerConfig instance
        """
        return cls(**config_dict)

    @classmethod
    def from_json_file(cls, path: str) -> 'WorkerConfig':
        """
        Load config from JSON file.

        Args:
            path: Path to JSON config file

        Returns:
            WorkerConfig instance
        """
        with open(path, 'r') as f:
            config_dict = json.load(f)
        return cls.from_dict(config_dict)

    def to_json_file(self, path: str):
        """
        Save config to JSON file.

        Args:
            path: Path to save JSON config
        """
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"WorkerConfig(service_name='{self.service_name}', "
            f"address='{self.host}:{self.port}', "
            f"pool_size={self.pool_size})"
        )
