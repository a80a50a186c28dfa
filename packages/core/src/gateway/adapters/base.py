"""Common contract for provider adapters."""

from abc import ABC, abstractmethod

from gateway.models import ChatMessage


class ChatAdapter(ABC):
    """Provider-specific implementation of the chat contract.

    The router only talks to this interface. An adapter starts
    uninitialized and becomes initialized once ``initialize`` receives
    usable credentials; it never goes back; the router replaces it instead.

    ``chat`` makes exactly one upstream call and never retries. It may raise
    NotConfiguredError, QuotaExceededError or UpstreamError; nothing is
    swallowed.
    """

    name: str

    @abstractmethod
    def initialize(self, *args, **kwargs) -> None:
        """Accept provider credentials/endpoint and build the client."""
        ...

    @abstractmethod
    def is_initialized(self) -> bool:
        """Whether the adapter holds usable credentials or an endpoint."""
        ...

    @abstractmethod
    async def chat(
        self, messages: list[ChatMessage], max_tokens: int | None = None
    ) -> str:
        """Send the conversation upstream and return the reply text.

        ``max_tokens`` caps the reply for this call; None means the
        adapter's configured default.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources held by the adapter."""
        return None
