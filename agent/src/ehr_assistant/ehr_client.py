"""HTTP client for the EHR REST API.

This module provides the EHRClient class, which handles:
1. One shared connection pool (httpx.AsyncClient) with a fixed timeout
2. Per-request bearer authentication using the *caller's* token
3. Clear errors for non-2xx responses and transport failures

Concept - caller credentials:
    The assistant never has credentials of its own. Each chat request
    carries the clinic user's JWT, which is bound to the request with
    ``credentials.run_with_credential``. The client reads it at the moment
    a request is sent and puts it on that single request's headers. It is
    never stored on the client, so concurrent users cannot leak tokens into
    each other's calls.

Usage:
    client = await get_client()
    body = await client.get("/appointments", params={"dateFrom": "2024-01-01"})
    data = unwrap(body)
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ehr_assistant.config import EHR_API_BASE_URL, EHR_API_TIMEOUT
from ehr_assistant.credentials import require_credential

logger = logging.getLogger(__name__)


class EHRAPIError(Exception):
    """Raised when an API request fails or returns an error response.

    ``status_code`` is 0 when the request never got a response (DNS,
    connection refused, timeout).
    """

    def __init__(self, status_code: int, detail: str) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"HTTP {status_code}: {detail}")


def _error_detail(response: httpx.Response) -> str:
    """Pull the most useful error text out of an error response.

    The EHR backend reports errors as ``{"message": ...}`` or
    ``{"error": ...}``; anything else falls back to the raw body.
    """
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        for key in ("message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return response.text or response.reason_phrase


def unwrap(body: Any) -> Any:
    """Return ``body["data"]`` when the API wrapped its payload, else ``body``."""
    if isinstance(body, dict) and body.get("data") is not None:
        return body["data"]
    return body


class EHRClient:
    """Async HTTP client for the EHR REST API.

    Attributes:
        base_url: The API root (e.g., "http://localhost:3000/api/v1").
    """

    def __init__(
        self,
        base_url: str = EHR_API_BASE_URL,
        timeout: float = EHR_API_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._http = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={"Content-Type": "application/json"},
        )

    async def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._http.aclose()

    async def get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """Make an authenticated GET request.

        Raises:
            AuthenticationRequired: If no caller credential is bound.
            EHRAPIError: If the API returns an error status code.
        """
        return await self._request("GET", endpoint, params=params)

    async def post(self, endpoint: str, json_data: dict[str, Any] | None = None) -> Any:
        """Make an authenticated POST request with a JSON body."""
        return await self._request("POST", endpoint, json_data=json_data)

    async def put(self, endpoint: str, json_data: dict[str, Any] | None = None) -> Any:
        """Make an authenticated PUT request with a JSON body."""
        return await self._request("PUT", endpoint, json_data=json_data)

    async def delete(self, endpoint: str) -> Any:
        """Make an authenticated DELETE request."""
        return await self._request("DELETE", endpoint)

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        json_data: dict[str, Any] | None = None,
    ) -> Any:
        """Send one authenticated request to the EHR API.

        The token is resolved before any network I/O, so a missing
        credential never produces an unauthenticated request. There is no
        retry: write endpoints must run at most once per tool call.
        """
        token = require_credential()

        url = f"{self.base_url}{endpoint}"
        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }

        try:
            response = await self._http.request(
                method,
                url,
                headers=headers,
                params=params,
                json=json_data,
            )
        except httpx.HTTPError as exc:
            raise EHRAPIError(
                status_code=0,
                detail=f"Request to {endpoint} failed: {exc}",
            ) from exc

        if response.status_code >= 400:
            detail = _error_detail(response)
            logger.warning("%s %s -> %d: %s", method, endpoint, response.status_code, detail)
            raise EHRAPIError(status_code=response.status_code, detail=detail)

        if not response.content:
            return {}
        return response.json()


# --- Module-level singleton ---
# One shared client (and connection pool) for the whole application.
# It holds no per-user state, so sharing it across requests is safe.

_client: EHRClient | None = None


async def get_client() -> EHRClient:
    """Get or create the shared EHRClient singleton."""
    global _client  # noqa: PLW0603
    if _client is None:
        _client = EHRClient()
    return _client


async def close_client() -> None:
    """Close and forget the shared client (called on app shutdown)."""
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.close()
        _client = None
