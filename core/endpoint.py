"""
Remote endpoint descriptor.

An Endpoint identifies a callable service by (service_name, host, port).
It is used purely for addressing and holds no connection state.
"""

from dataclasses import dataclass
from typing import Any, Dict

from core.errors import InvalidArgumentError


@dataclass(frozen=True)
class Endpoint:
    """Addressing triple for a coordinator or worker service."""
    service_name: str
    host: str
    port: int

    def __post_init__(self):
        if not self.service_name:
            raise InvalidArgumentError("Endpoint service name must not be empty")
        if not self.host:
            raise InvalidArgumentError("Endpoint host must not be empty")
        if not 0 < self.port < 65536:
            raise InvalidArgumentError(f"Invalid endpoint port: {self.port}")

    @property
    def address(self) -> str:
        """Address in format "host:port" (gRPC target)."""
        return f"{self.host}:{self.port}"

    @property
    def url(self) -> str:
        """HTTP base URL for the service."""
        return f"http://{self.host}:{self.port}"

    @classmethod
    def parse(cls, text: str) -> 'Endpoint':
        """
        Parse an endpoint from "name@host:port".

        Args:
            text: Endpoint string, e.g. "Slave1@127.0.0.1:19092"

        Returns:
            Endpoint instance

        Raises:
            InvalidArgumentError: If the string is malformed
        """
        name, sep, address = text.partition('@')
        host, colon, port = address.rpartition(':')
        if not sep or not colon:
            raise InvalidArgumentError(
                f"Invalid endpoint '{text}', expected name@host:port"
            )
        try:
            port_number = int(port)
        except ValueError:
            raise InvalidArgumentError(f"Invalid port in endpoint '{text}'") from None
        return cls(service_name=name, host=host, port=port_number)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'service_name': self.service_name,
            'host': self.host,
            'port': self.port,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Endpoint':
        return cls(
            service_name=data['service_name'],
            host=data['host'],
            port=int(data['port']),
        )

    def __str__(self) -> str:
        return f"{self.service_name}@{self.host}:{self.port}"
