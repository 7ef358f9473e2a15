"""Caching HTTP fetch client.

This module provides :class:`CachedClient`, which wraps a
:class:`~fetchcache.transport.Transport` with a policy-driven persistent
cache:

- **Policy lookup** -- each URL resolves to a TTL through the ordered
  ``pattern=duration`` policies (first match wins). A zero TTL bypasses the
  cache entirely.
- **Cache read** -- a fresh entry is returned without touching the network.
- **Validation** -- an optional predicate over the body can reject cached
  content (the entry is dropped and re-fetched) or fresh content (returned
  but not cached).
- **Write-through** -- a successful, accepted fetch is stored before
  returning, keyed by the requested URL with the final URL kept as metadata.

Two ways to obtain a client:

* :meth:`CachedClient.open` -- an independent, caller-owned instance with an
  explicit cache directory and policy list. Preferred for libraries, tests,
  and multi-tenant use.
* :func:`get_client` / :func:`close_client` -- a lazily created process
  default built from :func:`~fetchcache.config.resolve_config`.

Concurrent calls are safe but uncoordinated: two simultaneous misses for the
same URL both fetch and both write.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Callable, Optional, Sequence

from fetchcache.cache import DiskStore, EntryCache, KeyValueStore, derive_key
from fetchcache.cache.cache import Clock
from fetchcache.config import resolve_config
from fetchcache.exceptions import InvalidUsageError
from fetchcache.models import CachePolicy, RequestConfig
from fetchcache.policy import PolicyMatcher, default_policy, load_policies
from fetchcache.transport import HttpTransport, Transport

logger = logging.getLogger(__name__)

Validator = Callable[[bytes], bool]
"""Predicate over a response body. ``False`` means "do not serve or cache"."""

DATA_SUBDIR = "data"


@dataclass
class FetchResult:
    """Outcome of :meth:`CachedClient.fetch`.

    Attributes:
        data: The response body.
        final_url: The post-redirect URL. Empty for hits on legacy entries
            that predate final-URL tracking.
        from_cache: Whether the body was served from the cache.
    """

    data: bytes
    final_url: str
    from_cache: bool = False


class CachedClient:
    """HTTP fetch client with a policy-driven persistent cache.

    Args:
        store: Persisted store for cache entries. Closed by :meth:`close`.
        policies: Ordered policies, highest priority first. Used as given:
            lists from :func:`~fetchcache.policy.load_policies` already end
            with the catch-all.
        transport: Network transport. Defaults to an :class:`HttpTransport`
            with default settings. Closed by :meth:`close`.
        validator: Default content validator applied to every fetch.
        clock: Time source for expiry, injectable for tests.

    Example::

        with CachedClient.open("/tmp/cache", load_policies("policies.txt")) as client:
            result = client.fetch("https://example.com/feed.xml")
            print(result.from_cache, result.final_url, len(result.data))
    """

    def __init__(
        self,
        store: KeyValueStore,
        policies: Sequence[CachePolicy],
        transport: Optional[Transport] = None,
        validator: Optional[Validator] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._store = store
        self._matcher = PolicyMatcher(policies)
        self._cache = EntryCache(store, self._matcher, clock=clock)
        self._transport = transport or HttpTransport()
        self._validator = validator
        self._closed = False

    @classmethod
    def open(
        cls,
        cache_dir: str | Path,
        policies: Optional[Sequence[CachePolicy]] = None,
        request: Optional[RequestConfig] = None,
        transport: Optional[Transport] = None,
        validator: Optional[Validator] = None,
    ) -> CachedClient:
        """Create an independent client with its own store handle.

        Args:
            cache_dir: Cache root; entries are stored in ``cache_dir/data``.
            policies: Ordered policies. ``None`` means the catch-all only.
            request: Settings for the default :class:`HttpTransport`.
                Ignored when *transport* is given.
            transport: Explicit transport to use.
            validator: Default content validator.

        Raises:
            StoreError: If the store cannot be opened.
        """
        store = DiskStore(Path(cache_dir) / DATA_SUBDIR)
        if policies is None:
            policies = [default_policy()]
        try:
            transport = transport or HttpTransport(request)
        except BaseException:
            store.close()
            raise
        return cls(store, policies, transport=transport, validator=validator)

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> CachedClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------------------ #

    @property
    def matcher(self) -> PolicyMatcher:
        """The policy matcher in effect."""
        return self._matcher

    @property
    def cache(self) -> EntryCache:
        """The entry cache, for inspection and housekeeping."""
        return self._cache

    @property
    def closed(self) -> bool:
        """Whether :meth:`close` has been called."""
        return self._closed

    # ------------------------------------------------------------------ #
    # Fetching
    # ------------------------------------------------------------------ #

    def fetch(
        self,
        url: str,
        validator: Optional[Validator] = None,
        refresh: bool = False,
    ) -> FetchResult:
        """Fetch *url*, serving from and filling the cache per its policy.

        Args:
            url: The URL to fetch. Policies are matched against it verbatim.
            validator: Content validator for this call; overrides the
                client default.
            refresh: Skip the cache read but still write the fresh result.

        Returns:
            The body, final URL, and whether it came from the cache.

        Raises:
            FetchError: If the network fetch fails. Nothing is cached.
            InvalidUsageError: If the client has been closed.
        """
        if self._closed:
            raise InvalidUsageError("CachedClient is closed")

        check = validator if validator is not None else self._validator
        key = derive_key(url)
        ttl = self._matcher.resolve_ttl(url)
        cacheable = ttl > timedelta(0)

        if not cacheable:
            logger.debug("Cache bypass (ttl %s): %s", ttl, url)
        elif not refresh:
            entry = self._cache.read(key)
            if entry is not None:
                if check is None or check(entry.data):
                    logger.debug("Cache hit: %s", url)
                    return FetchResult(entry.data, entry.final_url, from_cache=True)
                logger.debug("Cached content for %s rejected by validator", url)
                self._cache.delete(key)
            else:
                logger.debug("Cache miss: %s", url)

        response = self._transport.fetch(url)
        data = response.body

        accepted = check is None or check(data)
        if not accepted:
            logger.debug("Fetched content for %s rejected by validator, not caching", url)
        elif cacheable:
            self._cache.write(key, data, url, response.final_url, ttl)

        return FetchResult(data, response.final_url)

    def get(self, url: str) -> bytes:
        """Fetch *url* and return only the body, without any validator.

        Raises:
            FetchError: If the network fetch fails.
        """
        return self.fetch(url, validator=_accept_all).data

    def delete_url(self, url: str) -> bool:
        """Invalidate the cached entry for *url*, fresh or not.

        Returns:
            ``True`` if an entry was removed.
        """
        return self._cache.delete(derive_key(url))

    def resolve_ttl(self, url: str) -> timedelta:
        """Return the TTL the current policies assign to *url*."""
        return self._matcher.resolve_ttl(url)

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def close(self) -> None:
        """Release the store and transport. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            self._transport.close()
        finally:
            self._store.close()


def _accept_all(data: bytes) -> bool:
    return True


# ------------------------------------------------------------------ #
# Process default client
# ------------------------------------------------------------------ #

_client: Optional[CachedClient] = None
_client_lock = threading.Lock()


def get_client() -> CachedClient:
    """Return the process default :class:`CachedClient`, creating it once.

    The first call resolves configuration via
    :func:`~fetchcache.config.resolve_config`, loads the policy file, and
    opens the store. Concurrent first callers block until that single
    initialisation finishes and then share the instance.

    Raises:
        PolicyError: If the policy file is malformed. No client is created
            and the next call retries.
        StoreError: If the store cannot be opened.
    """
    global _client
    client = _client
    if client is not None:
        return client
    with _client_lock:
        if _client is None:
            resolved = resolve_config()
            policies = load_policies(resolved.policies_file, resolved.default_ttl)
            _client = CachedClient.open(
                resolved.cache_dir, policies, request=resolved.request
            )
            logger.debug(
                "Opened default client at %s with %d policies",
                resolved.cache_dir, len(policies),
            )
        return _client


def close_client() -> None:
    """Close the process default client and forget it.

    The next :func:`get_client` call re-initialises from scratch, reloading
    configuration and policies. A no-op when no default client exists.
    """
    global _client
    with _client_lock:
        client, _client = _client, None
    if client is not None:
        client.close()
