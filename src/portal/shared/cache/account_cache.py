"""Account snapshot cache for warm Lambda invocations.

Account reads happen on nearly every dashboard request, while plan changes
are rare and always go through this process (user upgrade, admin edit), so a
short TTL cache plus explicit invalidation on every write keeps reads cheap
without serving a stale tier for long.

Invalidation is idempotent: invalidating an identity that is not cached, or
invalidating twice, is harmless.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass

from src.portal.shared.models.account import Account


@dataclass
class CacheStats:
    """Statistics for cache performance monitoring."""

    hits: int = 0
    misses: int = 0
    invalidations: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def reset(self) -> None:
        self.hits = 0
        self.misses = 0
        self.invalidations = 0


@dataclass
class CacheEntry:
    account: Account
    created_at: float

    def is_expired(self, ttl_seconds: int) -> bool:
        return time.time() - self.created_at > ttl_seconds


class AccountSnapshotCache:
    """TTL + LRU cache of Account snapshots keyed by identity.

    A ttl_seconds of 0 disables caching (every get is a miss).
    """

    def __init__(self, ttl_seconds: int = 300, max_entries: int = 1024) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.stats = CacheStats()
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, identity: str) -> bool:
        return identity in self._entries

    def get(self, identity: str) -> Account | None:
        entry = self._entries.get(identity)

        if entry is None:
            self.stats.misses += 1
            return None

        if entry.is_expired(self.ttl_seconds):
            del self._entries[identity]
            self.stats.misses += 1
            return None

        self._entries.move_to_end(identity)
        self.stats.hits += 1
        return entry.account

    def put(self, account: Account) -> None:
        if self.ttl_seconds <= 0:
            return

        if account.identity in self._entries:
            del self._entries[account.identity]

        while len(self._entries) >= self.max_entries:
            self._entries.popitem(last=False)

        self._entries[account.identity] = CacheEntry(
            account=account, created_at=time.time()
        )

    def invalidate(self, identity: str) -> None:
        self.stats.invalidations += 1
        self._entries.pop(identity, None)

    def clear(self) -> None:
        """Remove all entries and reset stats."""
        self._entries.clear()
        self.stats.reset()
