"""Adapter for the free trial, proxied through our own backend endpoint.

The backend holds the real credential and runs the QuotaGate. This side
only caches the quota figures it reports, for display.
"""

import logging

import httpx

from gateway.adapters.base import ChatAdapter
from gateway.errors import QuotaExceededError, UpstreamError
from gateway.models import ChatMessage, QuotaStatus

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "http://localhost:3000/api/ai"


class TrialAdapter(ChatAdapter):
    """Calls the trial endpoint and tracks the advisory quota estimate."""

    name = "trial"

    def __init__(
        self,
        endpoint_url: str = DEFAULT_ENDPOINT,
        timeout: float = 60.0,
        initial_remaining: int | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._endpoint_url = endpoint_url
        self._timeout = timeout
        self._http_client = http_client
        self._status = QuotaStatus(remaining=initial_remaining)

    def initialize(self) -> None:
        """No credentials to hold; the server owns them."""
        return None

    def is_initialized(self) -> bool:
        return True

    def quota_status(self) -> QuotaStatus:
        """Last quota figures reported by the backend (advisory only)."""
        return self._status

    async def chat(
        self, messages: list[ChatMessage], max_tokens: int | None = None
    ) -> str:
        # The trial endpoint fixes its own reply budget; max_tokens is not sent.
        payload = {"messages": [m.to_api_dict() for m in messages]}

        if self._http_client is not None:
            response = await self._http_client.post(
                self._endpoint_url, json=payload, timeout=self._timeout
            )
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(self._endpoint_url, json=payload)

        self._update_from_headers(response.headers)

        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            data = {}

        # Only the quota denial carries "resetTime"; any other 429 came from upstream.
        if response.status_code == 429 and "resetTime" in data:
            self._update_from_body(data)
            reset_at = self._status.reset_at or 0
            logger.warning("Free trial limit reached")
            raise QuotaExceededError(reset_at, data.get("message"))

        if not response.is_success:
            raise UpstreamError(response.status_code, response.text)

        self._update_from_body(data)

        message = data.get("message")
        if not isinstance(message, str):
            logger.warning("Trial response carried no message text")
            return ""
        return message

    # -----------------------------------------------------------------------
    # Quota bookkeeping
    # -----------------------------------------------------------------------

    def _update_from_headers(self, headers: httpx.Headers) -> None:
        remaining = _parse_int(headers.get("X-RateLimit-Remaining"))
        reset_at = _parse_int(headers.get("X-RateLimit-Reset"))
        self._merge(remaining, reset_at)

    def _update_from_body(self, data: dict) -> None:
        remaining = data.get("remaining")
        reset_at = data.get("resetTime")
        self._merge(
            remaining if isinstance(remaining, int) else None,
            reset_at if isinstance(reset_at, int) and reset_at else None,
        )

    def _merge(self, remaining: int | None, reset_at: int | None) -> None:
        self._status = QuotaStatus(
            remaining=remaining if remaining is not None else self._status.remaining,
            reset_at=reset_at if reset_at is not None else self._status.reset_at,
        )


def _parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None
