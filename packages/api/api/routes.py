"""API route definitions."""

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from api.rate_limit import (
    _gate_dependency,
    client_identity,
    rate_limit_headers,
    trial_quota,
)
from api.schemas import (
    ErrorBody,
    TrialChatResponse,
    TrialLimitError,
    TrialQuotaStatus,
    UpgradeRequiredError,
)
from gateway.adapters import ChatAdapter
from gateway.errors import UpstreamError
from gateway.models import ChatMessage
from gateway.prompts import DEFAULT_SYSTEM_PROMPT
from gateway.quota import QuotaDecision, QuotaGate

logger = logging.getLogger(__name__)

router = APIRouter()

_INVALID_REQUEST = "Invalid request: messages array required"


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------


@router.get("/health")
async def health_check():
    """Basic liveness probe."""
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _upstream_dependency(request: Request) -> ChatAdapter | None:
    """Retrieve the server-credentialed upstream adapter, if any."""
    return request.app.state.upstream


def _parse_messages(payload: object) -> list[ChatMessage] | None:
    """Validate the ``messages`` array; None if the body is malformed."""
    if not isinstance(payload, dict):
        return None
    raw = payload.get("messages")
    if not isinstance(raw, list):
        return None
    try:
        return [ChatMessage.from_dict(m) for m in raw]
    except ValueError:
        return None


def _with_default_system(messages: list[ChatMessage]) -> list[ChatMessage]:
    if any(m.role == "system" for m in messages):
        return messages
    return [ChatMessage(role="system", content=DEFAULT_SYSTEM_PROMPT), *messages]


# ---------------------------------------------------------------------------
# Trial chat
# ---------------------------------------------------------------------------


@router.post(
    "/api/ai",
    response_model=TrialChatResponse,
    responses={
        400: {"model": ErrorBody},
        429: {"model": TrialLimitError},
        503: {"model": UpgradeRequiredError},
    },
)
async def trial_chat(
    request: Request,
    response: Response,
    decision: QuotaDecision = Depends(trial_quota),
    gate: QuotaGate = Depends(_gate_dependency),
    upstream: ChatAdapter | None = Depends(_upstream_dependency),
):
    """Answer a chat on the server's credential, within the trial quota."""
    try:
        payload = await request.json()
    except ValueError:
        payload = None

    messages = _parse_messages(payload)
    if messages is None:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ErrorBody(error=_INVALID_REQUEST).model_dump(),
        )

    if upstream is None or not upstream.is_initialized():
        logger.error("ANTHROPIC_API_KEY not configured for the trial endpoint")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=UpgradeRequiredError(
                error="API key required",
                message=(
                    "Free trial requires server configuration. Please add your "
                    "Anthropic API key to continue, or sign up for a paid plan "
                    "for instant access."
                ),
            ).model_dump(),
        )

    # The slot is spent whatever happens upstream, so every reply from here
    # on reports it.
    headers = rate_limit_headers(gate.limit, decision.remaining, decision.reset_at)

    try:
        reply = await upstream.chat(_with_default_system(messages))
    except UpstreamError as e:
        logger.error("Anthropic API error %s: %s", e.status, e.body)
        return JSONResponse(
            status_code=e.status,
            content=ErrorBody(error="AI service error").model_dump(),
            headers=headers,
        )
    except Exception:  # noqa: BLE001
        logger.exception("Trial chat failed")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorBody(error="Internal server error").model_dump(),
            headers=headers,
        )

    response.headers.update(headers)

    return TrialChatResponse(
        message=reply,
        remaining=decision.remaining,
        resetTime=decision.reset_at,
    )


# ---------------------------------------------------------------------------
# Quota status
# ---------------------------------------------------------------------------


@router.get("/api/ai/quota", response_model=TrialQuotaStatus)
async def get_trial_quota(
    response: Response,
    identity: str = Depends(client_identity),
    gate: QuotaGate = Depends(_gate_dependency),
):
    """Return the caller's trial quota without spending a request."""
    decision = gate.peek(identity)
    response.headers.update(
        rate_limit_headers(gate.limit, decision.remaining, decision.reset_at)
    )
    return TrialQuotaStatus(
        limit=gate.limit,
        remaining=decision.remaining,
        resetTime=decision.reset_at,
    )
