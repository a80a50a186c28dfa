"""Persist the selected provider configuration between sessions."""

import json
import logging
import os
from pathlib import Path
from typing import assert_never

from gateway.models import (
    DEFAULT_WORKER_URL,
    DirectKeyConfig,
    ProviderConfig,
    ProxiedWorkerConfig,
    TrialConfig,
)

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_PATH = Path.home() / ".tutor-gateway" / "config.json"


def config_to_dict(config: ProviderConfig) -> dict:
    """Serialize a provider config into a tagged JSON object."""
    match config:
        case DirectKeyConfig(secret_key=secret_key):
            return {"provider": "direct-key", "secretKey": secret_key}
        case TrialConfig():
            return {"provider": "trial"}
        case ProxiedWorkerConfig(endpoint_url=endpoint_url, worker_api_key=worker_api_key):
            return {
                "provider": "worker",
                "endpointUrl": endpoint_url,
                "workerApiKey": worker_api_key,
            }
        case _:
            assert_never(config)


def config_from_dict(data: dict) -> ProviderConfig:
    """Parse a tagged JSON object back into a provider config.

    Raises:
        ValueError: If the provider tag is missing or unknown.
    """
    provider = data.get("provider")
    if provider == "direct-key":
        return DirectKeyConfig(secret_key=data.get("secretKey") or "")
    if provider == "trial":
        return TrialConfig()
    if provider == "worker":
        return ProxiedWorkerConfig(
            endpoint_url=data.get("endpointUrl") or DEFAULT_WORKER_URL,
            worker_api_key=data.get("workerApiKey") or None,
        )
    raise ValueError(f"Unknown provider: {provider!r}")


class ProviderConfigStore:
    """JSON file holding the last provider the user picked.

    The file may contain a secret key, so it is written with owner-only
    permissions.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(
            path or os.environ.get("TUTOR_CONFIG_PATH") or _DEFAULT_CONFIG_PATH
        )

    def load(self) -> ProviderConfig | None:
        """Return the saved config, or None if absent or unreadable."""
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return config_from_dict(data)
        except (OSError, ValueError, AttributeError) as e:
            logger.warning("Ignoring unreadable provider config %s: %s", self.path, e)
            return None

    def save(self, config: ProviderConfig) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(config_to_dict(config), indent=2), encoding="utf-8")
        os.chmod(self.path, 0o600)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
