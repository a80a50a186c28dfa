"""Storage backends for per-identity quota records.

The gate only needs ``get`` and ``set``, so an external cache can replace the
in-memory store without touching admission logic.
"""

from collections import OrderedDict
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class QuotaRecord:
    """Request count for one identity within its current window.

    Attributes:
        identity: Bucket key (usually the client's network address).
        count: Requests admitted in the current window.
        window_reset_at: Epoch milliseconds when the window expires.
    """

    identity: str
    count: int
    window_reset_at: int


class QuotaStore(Protocol):
    def get(self, identity: str) -> QuotaRecord | None: ...

    def set(self, identity: str, record: QuotaRecord) -> None: ...


class InMemoryQuotaStore:
    """Process-local store capped at ``max_entries`` records.

    Least recently used identities are evicted first. An evicted identity
    simply starts a fresh window on its next request. Not persisted: a
    restart resets every quota.
    """

    def __init__(self, max_entries: int = 10_000) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._max_entries = max_entries
        self._records: OrderedDict[str, QuotaRecord] = OrderedDict()

    def get(self, identity: str) -> QuotaRecord | None:
        record = self._records.get(identity)
        if record is not None:
            self._records.move_to_end(identity)
        return record

    def set(self, identity: str, record: QuotaRecord) -> None:
        self._records[identity] = record
        self._records.move_to_end(identity)
        while len(self._records) > self._max_entries:
            self._records.popitem(last=False)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, identity: object) -> bool:
        return identity in self._records
