"""
Coordinator client for client-coordinator communication.

Handles all HTTP communication with the coordinator server. Submissions are
never retried: a failed submission is reported to the caller as is.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from communication.serialization import task_from_dict, task_to_dict
from core.errors import TaskError
from core.task import Task


logger = logging.getLogger(__name__)


class CoordinatorError(TaskError):
    """The coordinator rejected a request or a worker call behind it failed."""

    def __init__(self, status_code: int, detail: str):
        super().__init__(f"Coordinator returned {status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


class CoordinatorClient:
    """
    Client for the coordinator's REST API.

    Can be used as an async context manager:

        async with CoordinatorClient("http://127.0.0.1:19091") as client:
            merged = await client.submit(task)
    """

    def __init__(
        self,
        coordinator_url: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize coordinator client.

        Args:
            coordinator_url: URL of coordinator server
            timeout: Request timeout in seconds (None waits indefinitely,
                     the coordinator blocks until every worker returns)
            transport: Optional httpx transport (used by tests)
        """
        self.coordinator_url = coordinator_url.rstrip('/')
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.coordinator_url,
                timeout=self.timeout,
                transport=self._transport
            )
        return self._client

    async def _request(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        """
        Make a single HTTP request.

        Raises:
            CoordinatorError: If the coordinator answered with an error status
            httpx.HTTPError: If the coordinator could not be reached
        """
        client = await self._get_client()
        response = await client.request(method, endpoint, **kwargs)

        if response.is_error:
            try:
                detail = response.json().get('detail', response.text)
            except ValueError:
                detail = response.text
            logger.error(f"Request to {endpoint} failed: {response.status_code} {detail}")
            raise CoordinatorError(response.status_code, str(detail))

        return response

    async def submit(self, task: Task) -> Task:
        """
        Submit a task and wait for the merged result.

        Args:
            task: Task to distribute

        Returns:
            Merged task with results
        """
        logger.info(f"Submitting task '{task.name}' ({task.size()} requests) to {self.coordinator_url}")
        response = await self._request("POST", "/tasks", json=task_to_dict(task))
        return task_from_dict(response.json())

    async def health(self) -> Dict[str, Any]:
        """Get coordinator health information."""
        response = await self._request("GET", "/health")
        return response.json()

    async def close(self):
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> 'CoordinatorClient':
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
