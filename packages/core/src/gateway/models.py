"""Data models shared by the provider router, adapters and quota gate."""

from dataclasses import dataclass
from typing import ClassVar, Union

DEFAULT_WORKER_URL = "https://python-tutor-ai.pythontutor.workers.dev"

ROLES = ("system", "user", "assistant")


@dataclass(frozen=True)
class ChatMessage:
    """A single message within a chat exchange.

    Attributes:
        role: One of "system", "user" or "assistant".
        content: The text content of the message.
    """

    role: str
    content: str

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValueError(f"Unsupported message role: {self.role!r}")
        if not isinstance(self.content, str):
            raise ValueError("Message content must be a string")

    @classmethod
    def from_dict(cls, data: dict) -> "ChatMessage":
        """Build a message from an untrusted ``{"role", "content"}`` mapping.

        Raises:
            ValueError: If the mapping is missing fields or has bad values.
        """
        if not isinstance(data, dict):
            raise ValueError("Message must be an object")
        try:
            return cls(role=data["role"], content=data["content"])
        except KeyError as e:
            raise ValueError(f"Message is missing field {e.args[0]!r}") from e

    def to_api_dict(self) -> dict:
        """Serialize into the ``{"role", "content"}`` wire shape."""
        return {"role": self.role, "content": self.content}


def split_system(messages: list[ChatMessage]) -> tuple[str | None, list[ChatMessage]]:
    """Separate the system prompt from the conversational turns.

    Returns:
        A tuple of (first system message content or None, remaining turns
        in their original order).
    """
    system = next((m.content for m in messages if m.role == "system"), None)
    turns = [m for m in messages if m.role != "system"]
    return system, turns


# ---------------------------------------------------------------------------
# Provider configuration (closed union, matched exhaustively by the router)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DirectKeyConfig:
    """Call the upstream LLM API directly with a caller-supplied key."""

    secret_key: str

    def __repr__(self) -> str:
        return "DirectKeyConfig(secret_key='***')"


@dataclass(frozen=True)
class TrialConfig:
    """Free trial; the backend holds the real credential."""


@dataclass(frozen=True)
class ProxiedWorkerConfig:
    """Relay through a third-party, OpenAI-compatible worker."""

    endpoint_url: str = DEFAULT_WORKER_URL
    worker_api_key: str | None = None

    def __repr__(self) -> str:
        key = "'***'" if self.worker_api_key else "None"
        return f"ProxiedWorkerConfig(endpoint_url={self.endpoint_url!r}, worker_api_key={key})"


ProviderConfig = Union[DirectKeyConfig, TrialConfig, ProxiedWorkerConfig]


# ---------------------------------------------------------------------------
# Client-side quota estimate
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class QuotaStatus:
    """Last known trial quota, as reported by the backend.

    Display-only: the authoritative count lives in the server's QuotaGate.

    Attributes:
        remaining: Requests left in the current window, or None if unknown.
        reset_at: Epoch milliseconds when the window resets, or None.
    """

    remaining: int | None = None
    reset_at: int | None = None

    UNKNOWN: ClassVar["QuotaStatus"]

    def time_until_reset(self, now_ms: int) -> str:
        """Render the countdown as ``"3h 12m"``, ``"12m"`` or ``"Soon"``."""
        if not self.reset_at:
            return ""
        diff = self.reset_at - now_ms
        if diff <= 0:
            return "Soon"
        hours, rest = divmod(diff, 60 * 60 * 1000)
        minutes = rest // (60 * 1000)
        if hours > 0:
            return f"{hours}h {minutes}m"
        return f"{minutes}m"


QuotaStatus.UNKNOWN = QuotaStatus()
