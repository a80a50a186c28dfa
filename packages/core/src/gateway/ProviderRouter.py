"""Single entry point that dispatches chats to the active provider adapter."""

import logging
import threading
from typing import assert_never

import httpx

from gateway.adapters import (
    ChatAdapter,
    DirectKeyAdapter,
    ProxiedWorkerAdapter,
    TrialAdapter,
)
from gateway.errors import NotConfiguredError
from gateway.models import (
    ChatMessage,
    DirectKeyConfig,
    ProviderConfig,
    ProxiedWorkerConfig,
    QuotaStatus,
    TrialConfig,
)
from gateway.settings import GatewaySettings

logger = logging.getLogger(__name__)


def build_adapter(
    config: ProviderConfig,
    settings: GatewaySettings,
    http_client: httpx.AsyncClient | None = None,
) -> ChatAdapter:
    """Create and initialize the adapter matching ``config``."""
    match config:
        case DirectKeyConfig(secret_key=secret_key):
            adapter = DirectKeyAdapter(
                model=settings.anthropic_model,
                max_tokens=settings.anthropic_max_tokens,
                timeout=settings.request_timeout,
                http_client=http_client,
            )
            adapter.initialize(secret_key)
        case TrialConfig():
            adapter = TrialAdapter(
                endpoint_url=settings.trial_endpoint_url,
                timeout=settings.request_timeout,
                initial_remaining=settings.trial_rate_limit,
                http_client=http_client,
            )
            adapter.initialize()
        case ProxiedWorkerConfig(endpoint_url=endpoint_url, worker_api_key=worker_api_key):
            adapter = ProxiedWorkerAdapter(
                model=settings.worker_model,
                timeout=settings.request_timeout,
                http_client=http_client,
            )
            adapter.initialize(endpoint_url, worker_api_key)
        case _:
            assert_never(config)
    return adapter


class ProviderRouter:
    """Holds the selected provider and forwards chats to its adapter.

    Configuration and adapter are swapped together, so once ``configure``
    returns no call can reach the previous adapter.
    """
    def __init__(
        self,
        settings: GatewaySettings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Create an unconfigured router.

        Args:
            settings: Model names, endpoints and timeouts for the adapters.
            http_client: Optional shared HTTP client handed to every adapter.
        """
        self._settings = settings or GatewaySettings()
        self._http_client = http_client
        self._lock = threading.Lock()
        self._config: ProviderConfig | None = None
        self._adapter: ChatAdapter | None = None
        # Adapters replaced by configure(); closed by aclose().
        self._retired: list[ChatAdapter] = []

    @property
    def active_config(self) -> ProviderConfig | None:
        return self._config

    def _swap(self, config: ProviderConfig) -> ChatAdapter | None:
        adapter = build_adapter(config, self._settings, self._http_client)
        with self._lock:
            previous = self._adapter
            self._config = config
            self._adapter = adapter
        logger.info("LLM provider set to %s", adapter.name)
        return previous

    def configure(self, config: ProviderConfig) -> None:
        """Replace the active provider with the one described by ``config``.

        The replaced adapter is released on the next ``aclose``; use
        ``reconfigure`` from async code to release it immediately.
        """
        previous = self._swap(config)
        if previous is not None:
            with self._lock:
                self._retired.append(previous)

    async def reconfigure(self, config: ProviderConfig) -> None:
        """Replace the active provider and close the previous adapter."""
        previous = self._swap(config)
        if previous is not None:
            await previous.aclose()

    def is_ready(self) -> bool:
        adapter = self._adapter
        return adapter is not None and adapter.is_initialized()

    async def chat(
        self, messages: list[ChatMessage], max_tokens: int | None = None
    ) -> str:
        """Send ``messages`` through the active adapter.

        Args:
            messages: The conversation, system message first if any.
            max_tokens: Reply budget for this call; adapters that cannot
                honour it use their configured default.

        Raises:
            NotConfiguredError: If no provider is ready.
            QuotaExceededError: If the trial quota is used up.
            UpstreamError: If the backend answered with an error status.
        """
        adapter = self._adapter
        if adapter is None or not adapter.is_initialized():
            raise NotConfiguredError()
        return await adapter.chat(messages, max_tokens=max_tokens)

    def get_quota_status(self) -> QuotaStatus:
        """Trial quota estimate for display; UNKNOWN for other providers."""
        adapter = self._adapter
        if isinstance(adapter, TrialAdapter):
            return adapter.quota_status()
        return QuotaStatus.UNKNOWN

    async def aclose(self) -> None:
        """Close the active adapter and any it replaced."""
        with self._lock:
            adapters = [*self._retired, self._adapter]
            self._retired = []
        for adapter in adapters:
            if adapter is not None:
                await adapter.aclose()
