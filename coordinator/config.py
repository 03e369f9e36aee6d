"""
Coordinator configuration.

The worker roster is part of the configuration and is fixed for the
lifetime of the coordinator.
"""

import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.endpoint import Endpoint
from core.errors import InvalidArgumentError
from worker.config import DEFAULT_POOL_SIZE, default_working_dir


def default_workers() -> List[Endpoint]:
    """Two local workers on consecutive ports."""
    return [
        Endpoint("Slave1", "127.0.0.1", 19092),
        Endpoint("Slave2", "127.0.0.1", 19093),
    ]


@dataclass
class CoordinatorConfig:
    """
    Configuration for the coordinator.

    Includes identity, network settings, dispatch concurrency and the
    roster of worker endpoints.
    """

    # Identity and network settings
    service_name: str = "Master"
    host: str = "127.0.0.1"
    port: int = 19091  # HTTP port for client submissions

    # Worker roster (sub-task i goes to workers[i])
    workers: List[Endpoint] = field(default_factory=default_workers)

    # Dispatch settings
    pool_size: int = DEFAULT_POOL_SIZE  # max worker calls in flight
    dispatch_timeout: Optional[float] = None  # seconds per worker call, None waits forever

    # Working directory
    working_dir: Optional[str] = None  # defaults to <service_name>_WorkingDirectory
    create_working_dir: bool = True

    # Logging
    log_level: str = "INFO"

    def __post_init__(self):
        """Validate the roster and derive defaults."""
        if not self.service_name:
            raise InvalidArgumentError("Coordinator service name must not be empty")
        if self.pool_size < 1:
            raise InvalidArgumentError(f"pool_size must be at least 1, got {self.pool_size}")

        self.workers = [
            w if isinstance(w, Endpoint) else Endpoint.from_dict(w)
            for w in self.workers
        ]
        if not self.workers:
            raise InvalidArgumentError("No worker endpoints configured. Please check the setting.")
        if len(set(self.workers)) != len(self.workers):
            raise InvalidArgumentError("Worker endpoints must be unique")

        if self.working_dir is None:
            self.working_dir = default_working_dir(self.service_name)

        if self.create_working_dir:
            os.makedirs(self.working_dir, exist_ok=True)

    @property
    def endpoint(self) -> Endpoint:
        """Endpoint the coordinator is reachable at."""
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
            'workers': [w.to_dict() for w in self.workers],
            'pool_size': self.pool_size,
            'dispatch_timeout': self.dispatch_timeout,
            'working_dir': self.working_dir,
            'create_working_dir': self.create_working_dir,
            'log_level': self.log_level,
        }

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'CoordinatorConfig':
        """
        Create config from dictionary.

        Workers may be given as dictionaries or "name@host:port" strings.
        """
        config_dict = dict(config_dict)
        if 'workers' in config_dict:
            config_dict['workers'] = [
                Endpoint.parse(w) if isinstance(w, str) else w
                for w in config_dict['workers']
            ]
        return cls(**config_dict)

    @classmethod
    def from_json_file(cls, path: str) -> 'CoordinatorConfig':
        """Load config from JSON file."""
        with open(path, 'r') as f:
            config_dict = json.load(f)
        return cls.from_dict(config_dict)

    def to_json_file(self, path: str):
        """Save config to JSON file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    def __repr__(self) -> str:
        return (
            f"CoordinatorConfig(service_name='{self.service_name}', "
            f"address='{self.host}:{self.port}', "
            f"workers={len(self.workers)}, pool_size={self.pool_size})"
        )
