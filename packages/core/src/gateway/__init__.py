from gateway.errors import (
    GatewayError,
    NotConfiguredError,
    QuotaExceededError,
    UpstreamError,
)
from gateway.models import (
    ChatMessage,
    DirectKeyConfig,
    ProviderConfig,
    ProxiedWorkerConfig,
    QuotaStatus,
    TrialConfig,
)
from gateway.ProviderRouter import ProviderRouter, build_adapter
from gateway.settings import GatewaySettings

__all__ = [
    "ChatMessage",
    "DirectKeyConfig",
    "GatewayError",
    "GatewaySettings",
    "NotConfiguredError",
    "ProviderConfig",
    "ProviderRouter",
    "ProxiedWorkerConfig",
    "QuotaExceededError",
    "QuotaStatus",
    "TrialConfig",
    "UpstreamError",
    "build_adapter",
]
