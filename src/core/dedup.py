"""Deduplication cache (core domain).

Maps a message identity to the monotonic time it was last forwarded. State is
in-memory only and is lost on restart.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Hashable, Optional

LOGGER = logging.getLogger(__name__)


class DeduplicationCache:
    """Time-windowed duplicate suppression keyed by message identity.

    All operations take a single lock, so concurrent passes over the same or
    different identities never lose an update.
    """

    def __init__(
        self,
        window_seconds: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
        eviction_factor: int = 6,
    ) -> None:
        self._window = window_seconds
        self._clock = clock
        self._max_age = window_seconds * eviction_factor
        self._entries: dict[Hashable, float] = {}
        self._lock = threading.Lock()
        self._last_sweep: Optional[float] = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, identity: Hashable) -> bool:
        with self._lock:
            return identity in self._entries

    def now(self) -> float:
        return self._clock()

    def _is_blocked(self, identity: Hashable, now: float) -> bool:
        last = self._entries.get(identity)
        return last is not None and now - last < self._window

    def _store(self, identity: Hashable, now: float) -> None:
        # Timestamps per key never move backwards.
        previous = self._entries.get(identity)
        self._entries[identity] = now if previous is None else max(previous, now)
        self._maybe_sweep(now)

    def should_forward(self, identity: Hashable, now: Optional[float] = None) -> bool:
        """Return False iff the identity was forwarded less than one window ago."""

        now = self._clock() if now is None else now
        with self._lock:
            return not self._is_blocked(identity, now)

    def record(self, identity: Hashable, now: Optional[float] = None) -> None:
        """Refresh the last-forwarded time of an identity."""

        now = self._clock() if now is None else now
        with self._lock:
            self._store(identity, now)

    def claim(self, identity: Hashable, now: Optional[float] = None) -> bool:
        """Atomically check and provisionally record an identity.

        Returns True when the caller should go ahead and forward. A second
        delivery of the same identity inside the window, including one that
        arrives while the first pass is still sleeping before its text send,
        gets False.
        """

        now = self._clock() if now is None else now
        with self._lock:
            if self._is_blocked(identity, now):
                return False
            self._store(identity, now)
            return True

    def sweep(self, now: Optional[float] = None) -> int:
        """Drop entries older than the eviction horizon and return how many."""

        now = self._clock() if now is None else now
        with self._lock:
            return self._sweep_locked(now)

    def _maybe_sweep(self, now: float) -> None:
        # Lazy sweep, at most once per window.
        if self._last_sweep is not None and now - self._last_sweep < max(self._window, 1.0):
            return
        self._sweep_locked(now)

    def _sweep_locked(self, now: float) -> int:
        self._last_sweep = now
        stale = [key for key, last in self._entries.items() if now - last >= self._max_age]
        for key in stale:
            del self._entries[key]
        if stale:
            LOGGER.debug("Dedup sweep removed %s entries", len(stale))
        return len(stale)
