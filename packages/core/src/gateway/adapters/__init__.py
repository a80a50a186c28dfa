from gateway.adapters.base import ChatAdapter
from gateway.adapters.DirectKeyAdapter import DirectKeyAdapter
from gateway.adapters.ProxiedWorkerAdapter import ProxiedWorkerAdapter
from gateway.adapters.TrialAdapter import TrialAdapter

__all__ = [
    "ChatAdapter",
    "DirectKeyAdapter",
    "ProxiedWorkerAdapter",
    "TrialAdapter",
]
