import json

import anthropic
import httpx
import openai
import pytest
from conftest import mock_client, openai_completion

from gateway.adapters import DirectKeyAdapter, ProxiedWorkerAdapter, TrialAdapter
from gateway.errors import NotConfiguredError, QuotaExceededError, UpstreamError
from gateway.models import ChatMessage, QuotaStatus

CONVERSATION = [
    ChatMessage(role="system", content="You are a tutor."),
    ChatMessage(role="user", content="What is a list?"),
    ChatMessage(role="assistant", content="An ordered collection."),
    ChatMessage(role="user", content="And a tuple?"),
]


def anthropic_message(text_blocks):
    return {
        "id": "msg_01",
        "type": "message",
        "role": "assistant",
        "model": "claude-3-5-haiku-20241022",
        "content": text_blocks,
        "stop_reason": "end_turn",
        "stop_sequence": None,
        "usage": {"input_tokens": 10, "output_tokens": 5},
    }


# ---------------------------------------------------------------------------
# Direct key
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_direct_key_sends_system_out_of_band():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["api_key"] = request.headers.get("x-api-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=anthropic_message([{"type": "text", "text": "An immutable list."}]))

    adapter = DirectKeyAdapter(http_client=mock_client(handler))
    adapter.initialize("sk-ant-user")

    reply = await adapter.chat(CONVERSATION)

    assert reply == "An immutable list."
    assert seen["url"].endswith("/v1/messages")
    assert seen["api_key"] == "sk-ant-user"
    assert seen["body"]["system"] == "You are a tutor."
    assert [m["role"] for m in seen["body"]["messages"]] == ["user", "assistant", "user"]
    assert seen["body"]["max_tokens"] == 2048


@pytest.mark.asyncio
async def test_direct_key_omits_system_when_absent():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=anthropic_message([{"type": "text", "text": "ok"}]))

    adapter = DirectKeyAdapter(http_client=mock_client(handler))
    adapter.initialize("sk-ant-user")
    await adapter.chat([ChatMessage(role="user", content="hi")])

    assert "system" not in seen["body"]


@pytest.mark.asyncio
async def test_direct_key_error_status_raises_upstream_error():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500, json={"type": "error", "error": {"type": "api_error", "message": "boom"}})

    adapter = DirectKeyAdapter(http_client=mock_client(handler))
    adapter.initialize("sk-ant-user")

    with pytest.raises(UpstreamError) as exc_info:
        await adapter.chat(CONVERSATION)

    assert exc_info.value.status == 500
    assert "boom" in exc_info.value.body
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_direct_key_missing_text_returns_empty_string():
    adapter = DirectKeyAdapter(
        http_client=mock_client(lambda request: httpx.Response(200, json=anthropic_message([])))
    )
    adapter.initialize("sk-ant-user")

    assert await adapter.chat(CONVERSATION) == ""


@pytest.mark.asyncio
async def test_direct_key_without_key_is_not_initialized():
    adapter = DirectKeyAdapter()
    adapter.initialize("")

    assert not adapter.is_initialized()
    with pytest.raises(NotConfiguredError):
        await adapter.chat(CONVERSATION)


# ---------------------------------------------------------------------------
# Proxied worker
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_worker_translates_to_openai_shape():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=openai_completion("Tuples are immutable."))

    adapter = ProxiedWorkerAdapter(http_client=mock_client(handler))
    adapter.initialize("https://relay.example.com/", "worker-secret")

    reply = await adapter.chat(CONVERSATION)

    assert reply == "Tuples are immutable."
    assert seen["url"] == "https://relay.example.com/v1/chat/completions"
    assert seen["auth"] == "Bearer worker-secret"
    assert seen["body"]["model"] == "claude-3-haiku"
    assert seen["body"]["messages"][0] == {"role": "system", "content": "You are a tutor."}
    assert len(seen["body"]["messages"]) == 4


@pytest.mark.asyncio
async def test_worker_defaults_to_shared_endpoint():
    adapter = ProxiedWorkerAdapter()
    adapter.initialize()

    assert adapter.is_initialized()
    assert adapter.endpoint_url == "https://python-tutor-ai.pythontutor.workers.dev"


@pytest.mark.asyncio
async def test_worker_error_status_raises_upstream_error():
    adapter = ProxiedWorkerAdapter(
        http_client=mock_client(lambda request: httpx.Response(502, text="bad gateway"))
    )
    adapter.initialize("https://relay.example.com")

    with pytest.raises(UpstreamError) as exc_info:
        await adapter.chat(CONVERSATION)

    assert exc_info.value.status == 502
    assert exc_info.value.body == "bad gateway"


@pytest.mark.asyncio
async def test_worker_missing_content_returns_empty_string():
    adapter = ProxiedWorkerAdapter(
        http_client=mock_client(lambda request: httpx.Response(200, json=openai_completion(None)))
    )
    adapter.initialize("https://relay.example.com")

    assert await adapter.chat(CONVERSATION) == ""


@pytest.mark.asyncio
async def test_uninitialized_worker_refuses_chat():
    adapter = ProxiedWorkerAdapter()

    assert not adapter.is_initialized()
    with pytest.raises(NotConfiguredError):
        await adapter.chat(CONVERSATION)


# ---------------------------------------------------------------------------
# Trial
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_trial_posts_messages_and_caches_quota():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"message": "Hi!", "remaining": 3, "resetTime": 1_700_000_000_000},
            headers={
                "X-RateLimit-Limit": "5",
                "X-RateLimit-Remaining": "3",
                "X-RateLimit-Reset": "1700000000000",
            },
        )

    adapter = TrialAdapter("http://tutor.local/api/ai", initial_remaining=5, http_client=mock_client(handler))

    assert adapter.quota_status() == QuotaStatus(remaining=5)
    reply = await adapter.chat(CONVERSATION)

    assert reply == "Hi!"
    assert seen["body"]["messages"][1] == {"role": "user", "content": "What is a list?"}
    assert adapter.quota_status() == QuotaStatus(remaining=3, reset_at=1_700_000_000_000)


@pytest.mark.asyncio
async def test_trial_quota_exceeded_surfaces_minutes():
    body = {
        "error": "Free trial limit reached",
        "message": "You've used all 5 free requests. Trial resets in 42 minutes, or upgrade for unlimited access.",
        "remaining": 0,
        "resetTime": 1_700_000_000_000,
    }
    adapter = TrialAdapter(
        http_client=mock_client(
            lambda request: httpx.Response(429, json=body, headers={"X-RateLimit-Remaining": "0"})
        )
    )

    with pytest.raises(QuotaExceededError) as exc_info:
        await adapter.chat(CONVERSATION)

    assert exc_info.value.reset_at == 1_700_000_000_000
    assert "42 minutes" in str(exc_info.value)
    assert adapter.quota_status().remaining == 0


@pytest.mark.asyncio
async def test_trial_quota_exceeded_without_message_composes_one():
    reset_at = 1_700_000_000_000
    adapter = TrialAdapter(
        http_client=mock_client(lambda request: httpx.Response(429, json={"resetTime": reset_at}))
    )

    with pytest.raises(QuotaExceededError) as exc_info:
        await adapter.chat(CONVERSATION)

    assert "minutes" in str(exc_info.value)
    assert exc_info.value.minutes_until_reset(reset_at - 90_000) == 2


@pytest.mark.asyncio
async def test_trial_other_errors_raise_upstream_error():
    adapter = TrialAdapter(
        http_client=mock_client(
            lambda request: httpx.Response(503, json={"error": "API key required", "needsUpgrade": True})
        )
    )

    with pytest.raises(UpstreamError) as exc_info:
        await adapter.chat(CONVERSATION)

    assert exc_info.value.status == 503
    assert "needsUpgrade" in exc_info.value.body


@pytest.mark.asyncio
async def test_trial_missing_message_returns_empty_string():
    adapter = TrialAdapter(
        http_client=mock_client(lambda request: httpx.Response(200, json={"remaining": 2}))
    )

    assert await adapter.chat(CONVERSATION) == ""
    assert adapter.quota_status().remaining == 2


def test_trial_is_always_initialized():
    adapter = TrialAdapter()
    adapter.initialize()
    assert adapter.is_initialized()


@pytest.mark.asyncio
async def test_trial_upstream_429_is_not_a_quota_denial():
    adapter = TrialAdapter(
        initial_remaining=5,
        http_client=mock_client(
            lambda request: httpx.Response(
                429,
                json={"error": "AI service error"},
                headers={"X-RateLimit-Remaining": "4", "X-RateLimit-Reset": "1700000000000"},
            )
        ),
    )

    with pytest.raises(UpstreamError) as exc_info:
        await adapter.chat(CONVERSATION)

    assert exc_info.value.status == 429
    assert adapter.quota_status() == QuotaStatus(remaining=4, reset_at=1_700_000_000_000)


# ---------------------------------------------------------------------------
# Reply budget
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_direct_key_max_tokens_overrides_default():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=anthropic_message([{"type": "text", "text": "ok"}]))

    adapter = DirectKeyAdapter(max_tokens=2048, http_client=mock_client(handler))
    adapter.initialize("sk-ant-user")
    await adapter.chat(CONVERSATION, max_tokens=512)

    assert seen["body"]["max_tokens"] == 512


@pytest.mark.asyncio
async def test_worker_sends_max_tokens_only_when_given():
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json=openai_completion("ok"))

    adapter = ProxiedWorkerAdapter(http_client=mock_client(handler))
    adapter.initialize("https://relay.example.com")
    await adapter.chat(CONVERSATION)
    await adapter.chat(CONVERSATION, max_tokens=1024)

    assert "max_tokens" not in bodies[0]
    assert bodies[1]["max_tokens"] == 1024


# ---------------------------------------------------------------------------
# Timeouts
# ---------------------------------------------------------------------------


def _timeout_recorder(seen, response):
    def handler(request):
        seen.append(request.extensions["timeout"])
        return response
    return handler


def _always_times_out(calls):
    def handler(request):
        calls.append(request)
        raise httpx.ReadTimeout("upstream too slow", request=request)
    return handler


@pytest.mark.asyncio
async def test_direct_key_applies_configured_timeout():
    seen = []
    reply = httpx.Response(200, json=anthropic_message([{"type": "text", "text": "ok"}]))
    adapter = DirectKeyAdapter(timeout=7.5, http_client=mock_client(_timeout_recorder(seen, reply)))
    adapter.initialize("sk-ant-user")

    await adapter.chat(CONVERSATION)

    assert seen[0]["read"] == 7.5


@pytest.mark.asyncio
async def test_worker_applies_configured_timeout():
    seen = []
    reply = httpx.Response(200, json=openai_completion("ok"))
    adapter = ProxiedWorkerAdapter(timeout=7.5, http_client=mock_client(_timeout_recorder(seen, reply)))
    adapter.initialize("https://relay.example.com")

    await adapter.chat(CONVERSATION)

    assert seen[0]["read"] == 7.5


@pytest.mark.asyncio
async def test_trial_applies_configured_timeout():
    seen = []
    reply = httpx.Response(200, json={"message": "ok", "remaining": 4})
    adapter = TrialAdapter(timeout=7.5, http_client=mock_client(_timeout_recorder(seen, reply)))

    await adapter.chat(CONVERSATION)

    assert seen[0]["read"] == 7.5


@pytest.mark.asyncio
async def test_direct_key_timeout_is_not_retried():
    calls = []
    adapter = DirectKeyAdapter(timeout=0.5, http_client=mock_client(_always_times_out(calls)))
    adapter.initialize("sk-ant-user")

    with pytest.raises(anthropic.APITimeoutError):
        await adapter.chat(CONVERSATION)

    assert len(calls) == 1


@pytest.mark.asyncio
async def test_worker_timeout_is_not_retried():
    calls = []
    adapter = ProxiedWorkerAdapter(timeout=0.5, http_client=mock_client(_always_times_out(calls)))
    adapter.initialize("https://relay.example.com")

    with pytest.raises(openai.APITimeoutError):
        await adapter.chat(CONVERSATION)

    assert len(calls) == 1


@pytest.mark.asyncio
async def test_trial_timeout_propagates():
    calls = []
    adapter = TrialAdapter(timeout=0.5, http_client=mock_client(_always_times_out(calls)))

    with pytest.raises(httpx.ReadTimeout):
        await adapter.chat(CONVERSATION)

    assert len(calls) == 1
