"""Per-identity fixed-window quota for the free trial provider.

Each identity gets ``limit`` requests per window. The window starts on the
first request and is replaced wholesale once it has expired; denials never
extend it. Admission is a normal return value, never an exception.
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, replace

from gateway.quota.QuotaStore import InMemoryQuotaStore, QuotaRecord, QuotaStore

logger = logging.getLogger(__name__)

# Shared bucket for callers whose identity cannot be determined.
FALLBACK_IDENTITY = "unknown"

DEFAULT_LIMIT = 5
DEFAULT_WINDOW_SECONDS = 24 * 60 * 60


@dataclass(frozen=True)
class QuotaDecision:
    """Outcome of a quota check.

    Attributes:
        allowed: Whether the request may proceed.
        remaining: Requests left in the window after this one.
        reset_at: Epoch milliseconds when the window resets.
    """

    allowed: bool
    remaining: int
    reset_at: int


class QuotaGate:
    """Admission control for the trial provider."""

    def __init__(
        self,
        store: QuotaStore | None = None,
        limit: int = DEFAULT_LIMIT,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Create a gate over the given store.

        Args:
            store: Backing record store; defaults to a bounded in-memory one.
            limit: Requests allowed per identity per window.
            window_seconds: Length of a window.
            clock: Returns the current time in epoch seconds.

        Raises:
            ValueError: If ``limit`` is less than 1.
        """
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")
        self._store = store if store is not None else InMemoryQuotaStore()
        self._limit = limit
        self._window_ms = int(window_seconds * 1000)
        self._clock = clock
        # Guards the read-check-write sequence; see check().
        self._lock = threading.Lock()

    @property
    def limit(self) -> int:
        return self._limit

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    # -----------------------------------------------------------------------
    # Admission
    # -----------------------------------------------------------------------

    def check(self, identity: str | None) -> QuotaDecision:
        """Record a request for ``identity`` and decide whether to admit it.

        The whole read-check-write runs under one lock, so two concurrent
        calls can never both take the last slot.
        """
        key = normalize_identity(identity)

        with self._lock:
            now = self.now_ms()
            record = self._store.get(key)

            if record is None or now > record.window_reset_at:
                reset_at = now + self._window_ms
                self._store.set(key, QuotaRecord(key, 1, reset_at))
                return QuotaDecision(True, self._limit - 1, reset_at)

            if record.count >= self._limit:
                logger.info("Trial quota exhausted for %s", key)
                return QuotaDecision(False, 0, record.window_reset_at)

            record = replace(record, count=record.count + 1)
            self._store.set(key, record)
            return QuotaDecision(
                True, self._limit - record.count, record.window_reset_at
            )

    # -----------------------------------------------------------------------
    # Status (read-only)
    # -----------------------------------------------------------------------

    def peek(self, identity: str | None) -> QuotaDecision:
        """Report the current allowance without recording a request.

        For an unseen or expired identity the reset time is provisional: a
        new window only starts on the next ``check``.
        """
        key = normalize_identity(identity)

        with self._lock:
            now = self.now_ms()
            record = self._store.get(key)

            if record is None or now > record.window_reset_at:
                return QuotaDecision(True, self._limit, now + self._window_ms)

            remaining = max(0, self._limit - record.count)
            return QuotaDecision(remaining > 0, remaining, record.window_reset_at)


def normalize_identity(identity: str | None) -> str:
    """Map a missing or blank identity onto the shared fallback bucket."""
    if identity is None:
        return FALLBACK_IDENTITY
    identity = identity.strip()
    return identity or FALLBACK_IDENTITY
