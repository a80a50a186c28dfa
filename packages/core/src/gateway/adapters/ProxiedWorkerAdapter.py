"""Adapter for a third-party relay exposing an OpenAI-compatible API."""

import logging

import httpx
from openai import APIStatusError, AsyncOpenAI  # type: ignore

from gateway.adapters.base import ChatAdapter
from gateway.errors import NotConfiguredError, UpstreamError
from gateway.models import DEFAULT_WORKER_URL, ChatMessage

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-3-haiku"


class ProxiedWorkerAdapter(ChatAdapter):
    """Relays chats through a worker's ``/v1/chat/completions`` route."""

    name = "worker"

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._model = model
        self._timeout = timeout
        self._http_client = http_client
        self._client: AsyncOpenAI | None = None
        self._endpoint_url: str | None = None

    @property
    def endpoint_url(self) -> str | None:
        return self._endpoint_url

    def initialize(
        self,
        endpoint_url: str | None = None,
        worker_api_key: str | None = None,
    ) -> None:
        """Point the adapter at a worker.

        Args:
            endpoint_url: Worker base URL; falls back to the shared worker.
            worker_api_key: Optional bearer credential for private workers.
        """
        self._endpoint_url = (endpoint_url or DEFAULT_WORKER_URL).rstrip("/")
        # An empty key makes the SDK omit the Authorization header.
        self._client = AsyncOpenAI(
            api_key=worker_api_key or "",
            base_url=f"{self._endpoint_url}/v1",
            timeout=self._timeout,
            max_retries=0,
            http_client=self._http_client,
        )

    def is_initialized(self) -> bool:
        return self._client is not None and bool(self._endpoint_url)

    async def chat(
        self, messages: list[ChatMessage], max_tokens: int | None = None
    ) -> str:
        if self._client is None:
            raise NotConfiguredError("Worker provider is not initialized")

        extra = {"max_tokens": max_tokens} if max_tokens else {}

        try:
            completion = await self._client.chat.completions.create(
                model=self._model,
                messages=[m.to_api_dict() for m in messages],
                **extra,
            )
        except APIStatusError as e:
            logger.error("Worker API error %s from %s", e.status_code, self._endpoint_url)
            raise UpstreamError(e.status_code, e.response.text) from e

        choices = completion.choices or []
        content = choices[0].message.content if choices else None
        if content is None:
            logger.warning("Worker response carried no message content")
            return ""
        return content

    async def aclose(self) -> None:
        if self._client is not None and self._http_client is None:
            await self._client.close()
