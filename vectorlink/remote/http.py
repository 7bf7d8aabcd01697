"""Shared async HTTP plumbing for the OpenAI REST API."""

import asyncio
import logging
from typing import Any

import httpx

from vectorlink.config import DEFAULT_BASE_URL
from vectorlink.exceptions import NetworkError

logger = logging.getLogger(__name__)

# Retry config for transient failures (429, 5xx, timeouts)
MAX_RETRIES = 3
RETRY_BACKOFF_BASE = 0.5  # seconds

DEFAULT_TIMEOUT = 30.0


def _error_message(response: httpx.Response) -> str:
    """Extract the API's error message from a non-2xx response."""
    message = f"HTTP {response.status_code}"
    try:
        payload = response.json()
    except ValueError:
        return message
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return f"{message}: {error['message']}"
    return message


class OpenAIHTTPClient:
    """Thin async wrapper around ``httpx.AsyncClient``.

    Adds the bearer token and the optional organization/project headers,
    retries transient failures and maps every failure to ``NetworkError``.

    Usage:
        async with OpenAIHTTPClient(api_key) as http:
            data = await http.request_json("GET", "/responses/resp_123")
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        organization: str | None = None,
        project: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
        max_retries: int = MAX_RETRIES,
    ):
        self.base_url = base_url.rstrip("/")
        self.max_retries = max(1, max_retries)

        headers = {"Authorization": f"Bearer {api_key}"}
        if organization:
            headers["OpenAI-Organization"] = organization
        if project:
            headers["OpenAI-Project"] = project

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "OpenAIHTTPClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()

    async def request_json(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send a request and decode the JSON body.

        Args:
            method: HTTP method
            path: Path relative to the base URL
            **kwargs: Passed through to ``httpx.AsyncClient.request``

        Returns:
            Decoded JSON payload

        Raises:
            NetworkError: Transport failure, non-2xx status or invalid JSON
        """
        last_error: NetworkError | None = None

        for attempt in range(self.max_retries):
            try:
                response = await self._client.request(method, path, **kwargs)
            except httpx.TransportError as e:
                last_error = NetworkError(f"{method} {path} failed: {e}")
            else:
                if response.status_code < 400:
                    try:
                        return response.json()
                    except ValueError as e:
                        raise NetworkError(
                            f"{method} {path} returned invalid JSON",
                            status=response.status_code,
                        ) from e

                error = NetworkError(
                    f"{method} {path} failed: {_error_message(response)}",
                    status=response.status_code,
                )
                if response.status_code != 429 and response.status_code < 500:
                    # Client error - don't retry
                    raise error
                last_error = error

            if attempt < self.max_retries - 1:
                delay = RETRY_BACKOFF_BASE * (2**attempt)
                logger.info(
                    f"{method} {path} attempt {attempt + 1} failed, "
                    f"retrying in {delay:.1f}s: {last_error}"
                )
                await asyncio.sleep(delay)

        raise last_error
