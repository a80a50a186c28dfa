"""Errors raised by the provider router and its adapters."""

import math
import time


class GatewayError(Exception):
    """Base class for all gateway failures."""


class NotConfiguredError(GatewayError):
    """No provider is configured, or the active one has no credentials."""

    def __init__(self, message: str = "No LLM provider configured") -> None:
        super().__init__(message)


class QuotaExceededError(GatewayError):
    """The free trial quota for this identity is used up.

    Attributes:
        reset_at: Epoch milliseconds when the quota window resets.
    """

    def __init__(self, reset_at: int, message: str | None = None) -> None:
        self.reset_at = reset_at
        if not message:
            message = (
                "Free trial limit reached. Trial resets in "
                f"{self.minutes_until_reset()} minutes, or upgrade "
                "or use your own API key."
            )
        super().__init__(message)

    def minutes_until_reset(self, now_ms: int | None = None) -> int:
        """Whole minutes until the window resets, rounded up."""
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        return max(0, math.ceil((self.reset_at - now_ms) / 60_000))


class UpstreamError(GatewayError):
    """The chat backend answered with a non-success status.

    Attributes:
        status: HTTP status code returned by the backend.
        body: Raw response body, kept verbatim for diagnostics.
    """

    def __init__(self, status: int, body: str) -> None:
        self.status = status
        self.body = body
        super().__init__(f"Upstream returned {status}: {body}")
