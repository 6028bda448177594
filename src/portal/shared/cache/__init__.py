"""Caches shared across warm invocations."""

from src.portal.shared.cache.account_cache import AccountSnapshotCache, CacheStats

__all__ = ["AccountSnapshotCache", "CacheStats"]
