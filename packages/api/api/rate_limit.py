"""Per-client fixed-window quota for the free trial endpoint."""

import logging

from fastapi import Depends, Request

from gateway.errors import QuotaExceededError
from gateway.quota import FALLBACK_IDENTITY, QuotaDecision, QuotaGate

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


def client_identity(request: Request) -> str:
    """Derive the quota bucket key for the caller.

    Precedence: first ``X-Forwarded-For`` entry, then ``X-Real-IP``, then a
    shared fallback. This decides who shares a bucket behind proxies.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip

    return FALLBACK_IDENTITY


def _gate_dependency(request: Request) -> QuotaGate:
    """Retrieve the shared QuotaGate from app state."""
    return request.app.state.quota_gate


# ---------------------------------------------------------------------------
# Headers
# ---------------------------------------------------------------------------


def rate_limit_headers(limit: int, remaining: int, reset_at: int) -> dict[str, str]:
    return {
        "X-RateLimit-Limit": str(limit),
        "X-RateLimit-Remaining": str(remaining),
        "X-RateLimit-Reset": str(reset_at),
    }


# ---------------------------------------------------------------------------
# FastAPI dependency
# ---------------------------------------------------------------------------


async def trial_quota(
    identity: str = Depends(client_identity),
    gate: QuotaGate = Depends(_gate_dependency),
) -> QuotaDecision:
    """Spend one trial request for the caller.

    Runs before the request body is read, so every attempt counts, even
    one that later fails validation or upstream.

    Raises:
        QuotaExceededError: Rendered as 429 by the app's exception handler.
    """
    decision = gate.check(identity)
    if not decision.allowed:
        logger.warning("Rejected trial request from %s", identity)
        raise QuotaExceededError(decision.reset_at)
    return decision
