"""Persistent response caching for fetchcache.

This package provides the storage half of the client:

* :func:`derive_key` -- SHA-256 content-addressed keys from request URLs.
* :class:`KeyValueStore` / :class:`DiskStore` -- the persisted byte store,
  backed by :mod:`diskcache`.
* :class:`EntryCache` -- encodes entries, enforces policy-driven expiry on
  read, and absorbs store faults.

The cache is consumed by :class:`~fetchcache.client.CachedClient`.
"""

from fetchcache.cache.cache import EntryCache
from fetchcache.cache.keys import derive_key
from fetchcache.cache.store import DiskStore, KeyValueStore

__all__ = ["DiskStore", "EntryCache", "KeyValueStore", "derive_key"]
