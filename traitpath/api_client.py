"""
HTTP client for the traitpath API.

Used by the CLI ``recover`` command to re-trigger calculations that failed or
were left pending, and by other services that need a user's learning path.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
from loguru import logger


class TraitPathClient:
    """Async client for the calculation endpoints."""

    def __init__(
        self,
        api_url: str,
        timeout_ms: int = 30000,
        retry_attempts: int = 3,
        backoff_seconds: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the client.

        Args:
            api_url: Base URL of the traitpath API
            timeout_ms: Request timeout in milliseconds
            retry_attempts: Attempts for timeouts and 5xx responses
            backoff_seconds: First retry delay, doubled on each attempt
            transport: Optional httpx transport (tests)
        """
        self.api_url = api_url.rstrip("/")
        self.timeout_seconds = timeout_ms / 1000.0
        self.retry_attempts = max(1, retry_attempts)
        self.backoff_seconds = backoff_seconds
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout_seconds),
            follow_redirects=True,
            transport=transport,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def trigger_calculation(
        self,
        user_id: str,
        conversation_id: str,
        traits: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Trigger a calculation, retrying timeouts and server errors.

        Returns:
            The response body. A pending analysis comes back as
            ``{"success": False, "pending": True, ...}`` rather than raising.

        Raises:
            httpx.HTTPStatusError: 4xx response, or 5xx after all retries
            httpx.RequestError: Connection failure after all retries
            ValueError: retry_attempts is below 1, so no request was sent
        """
        payload: dict[str, Any] = {"user_id": user_id, "conversation_id": conversation_id}
        if traits:
            payload["traits"] = traits

        last_error: httpx.HTTPError | None = None
        for attempt in range(self.retry_attempts):
            try:
                response = await self.client.post(f"{self.api_url}/api/calculations", json=payload)
                response.raise_for_status()
                return response.json()

            except httpx.HTTPStatusError as e:
                if e.response.status_code < 500:
                    logger.error(
                        f"Calculation rejected for {user_id}: {e.response.status_code} {e.response.text}"
                    )
                    raise
                last_error = e
                logger.warning(
                    f"Server error {e.response.status_code} on attempt "
                    f"{attempt + 1}/{self.retry_attempts}"
                )

            except httpx.RequestError as e:
                last_error = e
                logger.warning(
                    f"Request error on attempt {attempt + 1}/{self.retry_attempts}: {e}"
                )

            if attempt < self.retry_attempts - 1:
                await asyncio.sleep(self.backoff_seconds * 2 ** attempt)

        error_msg = f"Calculation for {user_id} failed after {self.retry_attempts} attempts"
        if last_error is None:
            raise ValueError(f"{error_msg}: retry_attempts must be at least 1")
        logger.error(f"{error_msg}: {last_error}")
        raise last_error

    async def get_learning_path(self, user_id: str) -> dict[str, Any] | None:
        """Fetch the stored learning path; None when the user has none yet."""
        try:
            response = await self.client.get(f"{self.api_url}/api/learning-paths/{user_id}")
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json()

        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch learning path for {user_id}: {e}")
            raise

    async def health_check(self) -> bool:
        """
        Check if the API is available.

        Returns:
            True if API is healthy, False otherwise
        """
        try:
            response = await self.client.get(f"{self.api_url}/health", timeout=5.0)
            return response.status_code == 200 and response.json().get("status") == "healthy"

        except httpx.HTTPError:
            return False
