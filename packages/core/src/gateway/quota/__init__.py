from gateway.quota.QuotaGate import (
    FALLBACK_IDENTITY,
    QuotaDecision,
    QuotaGate,
    normalize_identity,
)
from gateway.quota.QuotaStore import InMemoryQuotaStore, QuotaRecord, QuotaStore

__all__ = [
    "FALLBACK_IDENTITY",
    "InMemoryQuotaStore",
    "QuotaDecision",
    "QuotaGate",
    "QuotaRecord",
    "QuotaStore",
    "normalize_identity",
]
