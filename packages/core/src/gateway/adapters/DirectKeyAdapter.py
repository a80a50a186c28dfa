"""Adapter that calls the Anthropic Messages API with a caller-supplied key."""

import logging

import anthropic
import httpx

from gateway.adapters.base import ChatAdapter
from gateway.errors import NotConfiguredError, UpstreamError
from gateway.models import ChatMessage, split_system

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-3-5-haiku-20241022"
DEFAULT_MAX_TOKENS = 2048


class DirectKeyAdapter(ChatAdapter):
    """Talks to Anthropic directly; the system prompt goes out-of-band."""

    name = "direct-key"

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._model = model
        self._max_tokens = max_tokens
        self._timeout = timeout
        self._http_client = http_client
        self._client: anthropic.AsyncAnthropic | None = None

    def initialize(self, secret_key: str) -> None:
        """Build the SDK client. An empty key leaves the adapter unusable."""
        if not secret_key:
            logger.warning("Direct-key provider configured without a key")
            return
        self._client = anthropic.AsyncAnthropic(
            api_key=secret_key,
            timeout=self._timeout,
            max_retries=0,
            http_client=self._http_client,
        )

    def is_initialized(self) -> bool:
        return self._client is not None

    async def chat(
        self, messages: list[ChatMessage], max_tokens: int | None = None
    ) -> str:
        if self._client is None:
            raise NotConfiguredError("Direct-key provider is not initialized")

        system, turns = split_system(messages)
        extra = {"system": system} if system is not None else {}

        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=max_tokens or self._max_tokens,
                messages=[m.to_api_dict() for m in turns],
                **extra,
            )
        except anthropic.APIStatusError as e:
            logger.error("Anthropic API error %s", e.status_code)
            raise UpstreamError(e.status_code, e.response.text) from e

        return _first_text(response)

    async def aclose(self) -> None:
        # An injected http_client belongs to the caller.
        if self._client is not None and self._http_client is None:
            await self._client.close()


def _first_text(response) -> str:
    """Return the first text block, or "" if the upstream shape changed."""
    blocks = getattr(response, "content", None) or []
    first = blocks[0] if blocks else None
    if first is None or getattr(first, "type", None) != "text":
        logger.warning("Anthropic response carried no text block")
        return ""
    return first.text or ""
