"""Shared async HTTP plumbing for the registry clients."""

from typing import Any

import httpx

from .exceptions import NotFoundError, TransportError


class ApiClient:
    """Base class for JSON API clients.

    When no ``httpx.AsyncClient`` is injected, a short-lived client is
    opened per request.
    """

    def __init__(self, base_url: str, timeout: float = 30.0, client: httpx.AsyncClient | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    def use_client(self, client: httpx.AsyncClient | None) -> None:
        """Route subsequent requests through a shared client."""
        self._client = client

    async def _request_json(self, method: str, path: str, resource: str, **kwargs) -> Any:
        """Issue a request and return the decoded JSON body.

        Raises:
            NotFoundError: On a 404 response
            TransportError: On any other non-2xx status, network error or bad JSON
        """
        url = f"{self.base_url}{path}"
        try:
            if self._client is not None:
                response = await self._client.request(method, url, **kwargs)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(resource, str(e) or type(e).__name__) from e

        if response.status_code == 404:
            raise NotFoundError(resource)
        if not response.is_success:
            raise TransportError(resource, f"HTTP {response.status_code} {response.reason_phrase}")

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(resource, f"invalid JSON: {e}") from e
