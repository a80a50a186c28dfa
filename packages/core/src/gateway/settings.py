"""Environment-driven configuration for the gateway."""

import os
from dataclasses import dataclass

from gateway.models import DEFAULT_WORKER_URL

# Treated as "no key" so a copied .env.example never reaches the upstream API.
PLACEHOLDER_API_KEY = "sk-ant-your-api-key-here"


@dataclass(frozen=True)
class GatewaySettings:
    """Tunable values for the quota gate, adapters and trial endpoint."""

    trial_rate_limit: int = 5
    trial_window_seconds: int = 24 * 60 * 60
    quota_max_identities: int = 10_000
    request_timeout: float = 60.0
    anthropic_api_key: str | None = None
    anthropic_model: str = "claude-3-5-haiku-20241022"
    anthropic_max_tokens: int = 2048
    trial_endpoint_url: str = "http://localhost:3000/api/ai"
    worker_url: str = DEFAULT_WORKER_URL
    worker_api_key: str | None = None
    worker_model: str = "claude-3-haiku"

    @property
    def has_server_key(self) -> bool:
        """Whether a usable upstream credential is configured."""
        key = self.anthropic_api_key
        return bool(key) and key != PLACEHOLDER_API_KEY

    @classmethod
    def from_env(cls) -> "GatewaySettings":
        """Build settings from the process environment.

        Call ``load_dotenv()`` first to pick up a local ``.env`` file.
        """
        env = os.environ
        return cls(
            trial_rate_limit=int(env.get("TRIAL_RATE_LIMIT", "5")),
            trial_window_seconds=int(env.get("TRIAL_WINDOW_SECONDS", "86400")),
            quota_max_identities=int(env.get("QUOTA_MAX_IDENTITIES", "10000")),
            request_timeout=float(env.get("AI_REQUEST_TIMEOUT", "60")),
            anthropic_api_key=env.get("ANTHROPIC_API_KEY") or None,
            anthropic_model=env.get("ANTHROPIC_MODEL", "claude-3-5-haiku-20241022"),
            anthropic_max_tokens=int(env.get("ANTHROPIC_MAX_TOKENS", "2048")),
            trial_endpoint_url=env.get(
                "TRIAL_ENDPOINT_URL", "http://localhost:3000/api/ai"
            ),
            worker_url=env.get("WORKER_URL") or DEFAULT_WORKER_URL,
            worker_api_key=env.get("WORKER_API_KEY") or None,
            worker_model=env.get("WORKER_MODEL", "claude-3-haiku"),
        )
