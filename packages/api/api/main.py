"""FastAPI application entry point."""

import logging
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.rate_limit import rate_limit_headers
from api.routes import router
from api.schemas import TrialLimitError
from gateway.adapters import ChatAdapter, DirectKeyAdapter
from gateway.errors import QuotaExceededError
from gateway.quota import InMemoryQuotaStore, QuotaGate
from gateway.settings import GatewaySettings

logger = logging.getLogger(__name__)


def build_upstream(settings: GatewaySettings) -> ChatAdapter | None:
    """Create the server-credentialed adapter, or None without a key."""
    if not settings.has_server_key:
        return None
    adapter = DirectKeyAdapter(
        model=settings.anthropic_model,
        max_tokens=settings.anthropic_max_tokens,
        timeout=settings.request_timeout,
    )
    adapter.initialize(settings.anthropic_api_key)
    return adapter


def create_app(
    settings: GatewaySettings | None = None,
    quota_gate: QuotaGate | None = None,
    upstream: ChatAdapter | None = None,
) -> FastAPI:
    """Assemble the trial API.

    Args:
        settings: Configuration; read from the environment when omitted.
        quota_gate: Admission gate; built from settings when omitted.
        upstream: Adapter used to reach the LLM; built from settings when
            omitted (None if the server has no credential).
    """
    if settings is None:
        load_dotenv()
        settings = GatewaySettings.from_env()
    if quota_gate is None:
        quota_gate = QuotaGate(
            InMemoryQuotaStore(settings.quota_max_identities),
            limit=settings.trial_rate_limit,
            window_seconds=settings.trial_window_seconds,
        )
    if upstream is None:
        upstream = build_upstream(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        """Release the upstream client on shutdown."""
        yield
        if app.state.upstream is not None:
            await app.state.upstream.aclose()

    app = FastAPI(
        title="Tutor AI Gateway",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.quota_gate = quota_gate
    app.state.upstream = upstream

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
        ],
    )

    @app.exception_handler(QuotaExceededError)
    async def quota_exceeded_handler(
        request: Request, exc: QuotaExceededError
    ) -> JSONResponse:
        gate: QuotaGate = request.app.state.quota_gate
        limit = gate.limit
        minutes = exc.minutes_until_reset(gate.now_ms())
        body = TrialLimitError(
            error="Free trial limit reached",
            message=(
                f"You've used all {limit} free requests. Trial resets in "
                f"{minutes} minutes, or upgrade for unlimited access."
            ),
            remaining=0,
            resetTime=exc.reset_at,
        )
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content=body.model_dump(),
            headers=rate_limit_headers(limit, 0, exc.reset_at),
        )

    app.include_router(router)
    return app


app = create_app()


def serve() -> None:
    """Start the uvicorn server using environment configuration."""
    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))
    host = os.environ.get("API_HOST", "0.0.0.0")
    port = int(os.environ.get("API_PORT", "3000"))
    uvicorn.run("api.main:app", host=host, port=port, reload=False)


if __name__ == "__main__":
    serve()
