"""
In-memory store for pending authorization flows.

An entry is created when an authorization URL is generated and consumed
exactly once when the matching callback arrives. Entries expire after a TTL
and the store is size bounded, so abandoned flows cannot accumulate.
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Optional

DEFAULT_FLOW_TTL = 600
DEFAULT_MAX_PENDING_FLOWS = 10000


@dataclass(frozen=True)
class PendingFlow:
    """Originating strategy and PKCE verifier for one in-flight authorization."""
    strategy_name: str
    verifier: Optional[str] = None
    created_at: float = field(default_factory=time.monotonic)

    def is_expired(self, ttl: float, now: Optional[float] = None) -> bool:
        now = time.monotonic() if now is None else now
        return (now - self.created_at) > ttl


class PendingFlowStore:
    """
    Thread-safe map from state token to PendingFlow.

    Insertion order is creation order, so when the store is full the oldest
    entry is evicted first.
    """

    def __init__(self, ttl: float = DEFAULT_FLOW_TTL, max_entries: int = DEFAULT_MAX_PENDING_FLOWS,
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize the store.

        Args:
            ttl: Seconds a pending flow stays valid
            max_entries: Maximum number of pending flows kept
            clock: Monotonic time source, injectable for tests
        """
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")

        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._flows: 'OrderedDict[str, PendingFlow]' = OrderedDict()
        self._lock = threading.Lock()
        self.logger = logging.getLogger(__name__)

    def __len__(self) -> int:
        with self._lock:
            return len(self._flows)

    def __contains__(self, state: str) -> bool:
        with self._lock:
            flow = self._flows.get(state)
            return flow is not None and not flow.is_expired(self.ttl, self._clock())

    def add(self, state: str, strategy_name: str, verifier: Optional[str] = None) -> bool:
        """
        Record a pending flow.

        Args:
            state: State token sent to the provider
            strategy_name: Registered name of the originating strategy
            verifier: PKCE verifier to replay at code exchange

        Returns:
            False if the state is already pending, True once stored
        """
        with self._lock:
            now = self._clock()
            self._remove_expired(now)

            if state in self._flows:
                return False

            while len(self._flows) >= self.max_entries:
                evicted_state, evicted = self._flows.popitem(last=False)
                self.logger.warning(
                    f"Pending flow limit reached ({self.max_entries}), evicted flow for "
                    f"{evicted.strategy_name} state {evicted_state[:8]}..."
                )

            self._flows[state] = PendingFlow(strategy_name, verifier, now)
            return True

    def pop(self, state: Optional[str]) -> Optional[PendingFlow]:
        """
        Remove and return the flow for a state.

        Returns:
            The PendingFlow, or None if the state is unknown or expired
        """
        if not state:
            return None

        with self._lock:
            flow = self._flows.pop(state, None)

        if flow is None:
            return None

        if flow.is_expired(self.ttl, self._clock()):
            self.logger.info(f"Pending flow for {flow.strategy_name} expired (state {state[:8]}...)")
            return None

        return flow

    def cleanup_expired(self) -> int:
        """
        Remove all expired flows.

        Returns:
            Number of flows removed
        """
        with self._lock:
            return self._remove_expired(self._clock())

    def _remove_expired(self, now: float) -> int:
        # Entries are ordered by creation, so expiry stops at the first live one
        removed = 0
        while self._flows:
            state, flow = next(iter(self._flows.items()))
            if not flow.is_expired(self.ttl, now):
                break
            del self._flows[state]
            removed += 1

        if removed:
            self.logger.debug(f"Removed {removed} expired pending flows")
        return removed
