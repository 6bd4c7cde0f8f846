"""In-memory TTL cache of eligibility decisions, keyed by identity.

Expiry is lazy: a stale entry is dropped by the read that finds it. There
is no background sweeper and no size bound; the store grows with the
number of distinct identities checked within a TTL window.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from standing.constants import CACHE_TTL_SECS
from standing.records import Decision

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _CacheEntry:
    """Internal cache entry; never handed out past the call that reads it."""

    decision: Decision
    created_at: float


class DecisionCache:
    """Identity → Decision store with a single, fixed TTL.

    - ``get()`` returns the decision only while it is fresh.
    - ``set()`` overwrites unconditionally (last write wins).
    - ``invalidate()`` / ``clear()`` drop entries on demand.

    Every operation touches one key with no await in between, so callers
    on the same event loop need no locking.
    """

    def __init__(
        self,
        ttl_secs: float = CACHE_TTL_SECS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_secs <= 0:
            raise ValueError(f"ttl_secs must be positive, got {ttl_secs}")
        self._ttl = ttl_secs
        self._clock = clock
        self._entries: dict[str, _CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._expired = 0

    @property
    def ttl_secs(self) -> float:
        return self._ttl

    def get(self, identity: str) -> Decision | None:
        """Return the fresh cached decision for ``identity``, else None."""
        entry = self._entries.get(identity)
        if entry is None:
            self._misses += 1
            return None
        if self._clock() - entry.created_at > self._ttl:
            del self._entries[identity]
            self._expired += 1
            self._misses += 1
            logger.debug("Cached decision for %s expired.", identity)
            return None
        self._hits += 1
        return entry.decision

    def set(self, identity: str, decision: Decision) -> None:
        self._entries[identity] = _CacheEntry(decision=decision, created_at=self._clock())

    def invalidate(self, identity: str) -> bool:
        """Drop one entry. Returns True if there was one to drop."""
        return self._entries.pop(identity, None) is not None

    def clear(self) -> int:
        """Drop every entry. Returns how many were dropped."""
        count = len(self._entries)
        self._entries.clear()
        return count

    def __contains__(self, identity: object) -> bool:
        # Presence only; freshness is decided by get()
        return identity in self._entries

    @property
    def size(self) -> int:
        """Number of entries currently held, stale ones included."""
        return len(self._entries)

    def health(self) -> dict[str, object]:
        """Return cache counters for monitoring."""
        return {
            "cache_size": self.size,
            "ttl_secs": self._ttl,
            "hits": self._hits,
            "misses": self._misses,
            "expired": self._expired,
        }
