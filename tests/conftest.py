import httpx
import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from gateway.adapters import ChatAdapter
from gateway.errors import UpstreamError
from gateway.quota import InMemoryQuotaStore, QuotaGate
from gateway.settings import GatewaySettings

START = 1_000_000.0


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, start: float = START) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeUpstream(ChatAdapter):
    """Stands in for the server-owned Anthropic adapter."""

    name = "fake"

    def __init__(self, reply: str = "Hello from the tutor", error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.calls: list[list] = []

    def initialize(self) -> None:
        return None

    def is_initialized(self) -> bool:
        return True

    async def chat(self, messages, max_tokens=None):
        self.calls.append(list(messages))
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return GatewaySettings(anthropic_api_key="sk-ant-test")


@pytest.fixture
def gate(clock, settings):
    return QuotaGate(
        InMemoryQuotaStore(100),
        limit=settings.trial_rate_limit,
        window_seconds=settings.trial_window_seconds,
        clock=clock,
    )


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def app(settings, gate, upstream):
    return create_app(settings=settings, quota_gate=gate, upstream=upstream)


@pytest.fixture
def client(app):
    return TestClient(app)


def mock_client(handler) -> httpx.AsyncClient:
    """An AsyncClient whose requests are answered by ``handler``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def openai_completion(content):
    """A minimal chat.completion body as an OpenAI-compatible relay returns it."""
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 0,
        "model": "claude-3-haiku",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
    }
