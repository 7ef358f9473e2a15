"""Expiry-aware entry cache on top of a :class:`~fetchcache.cache.store.KeyValueStore`.

:class:`EntryCache` turns raw store bytes into :class:`~fetchcache.models.CacheEntry`
objects and decides freshness. Its contract is deliberately forgiving:

* a store fault or an undecodable value on read is a miss, never an error;
* an expired entry is deleted the moment a read observes it (lazy expiry);
* a failed write or delete is logged and swallowed, because the caller
  already holds the fetched data and must still get it back.

Freshness is judged against the *current* policy set: an entry with
``fetched_at`` is expired once ``now - fetched_at`` exceeds the TTL its URL
resolves to today, so editing the policy file re-times existing entries.
Legacy entries without ``fetched_at`` use their stored ``expires_at``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from fetchcache.cache.store import KeyValueStore
from fetchcache.exceptions import StoreError
from fetchcache.models import CacheEntry
from fetchcache.policy import PolicyMatcher

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


_LATEST = datetime.max.replace(tzinfo=timezone.utc)


def _expiry(start: datetime, ttl: timedelta) -> datetime:
    """Return *start* + *ttl*, clamped to the latest representable time."""
    try:
        return start + ttl
    except OverflowError:
        return _LATEST


class EntryCache:
    """Read, write, and expire cache entries.

    Args:
        store: The persisted store holding serialised entries.
        matcher: Policy matcher used to re-evaluate TTLs at read time.
        clock: Returns the current aware datetime. Injectable for tests.
    """

    def __init__(
        self,
        store: KeyValueStore,
        matcher: PolicyMatcher,
        clock: Optional[Clock] = None,
    ) -> None:
        self._store = store
        self._matcher = matcher
        self._clock = clock or utcnow

    @property
    def store(self) -> KeyValueStore:
        """The underlying persisted store."""
        return self._store

    def read(self, key: str) -> Optional[CacheEntry]:
        """Return the fresh entry stored under *key*, or ``None``.

        Expired entries are deleted before ``None`` is returned.
        """
        entry = self.peek(key)
        if entry is None:
            return None
        if self.is_expired(entry):
            logger.debug("Cache entry %s for %s expired", key, entry.url)
            self.delete(key)
            return None
        return entry

    def peek(self, key: str) -> Optional[CacheEntry]:
        """Decode the entry under *key* without checking or enforcing expiry."""
        try:
            raw = self._store.get(key)
        except StoreError as exc:
            logger.debug("Cache read failed for %s: %s", key, exc)
            return None
        if raw is None:
            return None
        try:
            return CacheEntry.from_bytes(raw)
        except ValueError as exc:
            logger.debug("Cache entry %s could not be decoded: %s", key, exc)
            return None

    def is_expired(self, entry: CacheEntry, now: Optional[datetime] = None) -> bool:
        """Apply the freshness rule to *entry*.

        Args:
            entry: A decoded entry.
            now: Reference time. Defaults to the cache clock.
        """
        if now is None:
            now = self._clock()
        if entry.fetched_at is not None:
            return now - entry.fetched_at > self._matcher.resolve_ttl(entry.url)
        return now > entry.expires_at

    def expires_at(self, entry: CacheEntry) -> datetime:
        """Return when *entry* goes stale under the current policies."""
        if entry.fetched_at is not None:
            return _expiry(entry.fetched_at, self._matcher.resolve_ttl(entry.url))
        return entry.expires_at

    def write(
        self,
        key: str,
        data: bytes,
        requested_url: str,
        final_url: str,
        ttl: timedelta,
    ) -> None:
        """Store *data* under *key* with ``fetched_at`` set to now.

        Failures are logged and swallowed.
        """
        now = self._clock()
        try:
            raw = CacheEntry(
                data=data,
                url=requested_url,
                final_url=final_url,
                fetched_at=now,
                expires_at=_expiry(now, ttl),
            ).to_bytes()
        except (ValueError, OverflowError) as exc:
            logger.warning("Failed to encode cache entry for %s: %s", requested_url, exc)
            return

        try:
            self._store.put(key, raw)
        except StoreError as exc:
            logger.warning("Failed to store cache entry for %s: %s", requested_url, exc)
            return
        logger.debug("Cached %s (%d bytes, ttl %s)", requested_url, len(data), ttl)

    def delete(self, key: str) -> bool:
        """Remove the entry under *key*.

        Returns:
            ``True`` if an entry was removed, ``False`` if there was none or
            the store failed (the failure is logged).
        """
        try:
            return self._store.delete(key)
        except StoreError as exc:
            logger.warning("Failed to delete cache entry %s: %s", key, exc)
            return False

    def sweep(self) -> int:
        """Delete every expired or undecodable entry.

        An optional housekeeping pass; reads enforce expiry regardless.

        Returns:
            The number of entries removed.
        """
        now = self._clock()
        try:
            keys = list(self._store.keys())
        except StoreError as exc:
            logger.warning("Cache sweep could not list entries: %s", exc)
            return 0

        removed = 0
        for key in keys:
            try:
                raw = self._store.get(key)
            except StoreError as exc:
                logger.debug("Cache sweep skipped %s: %s", key, exc)
                continue
            if raw is None:
                continue
            try:
                stale = self.is_expired(CacheEntry.from_bytes(raw), now)
            except ValueError:
                stale = True
            if stale and self.delete(key):
                removed += 1
        logger.debug("Cache sweep removed %d of %d entries", removed, len(keys))
        return removed

    def clear(self) -> int:
        """Remove every entry. Store failures propagate as :class:`StoreError`."""
        return self._store.clear()

    def stats(self) -> dict[str, Any]:
        """Return ``entries`` (stored entry count) and ``policies`` (policy count)."""
        return {
            "entries": len(self._store),
            "policies": len(self._matcher),
        }
