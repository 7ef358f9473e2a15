"""fetchcache -- an HTTP fetch client with a policy-driven persistent cache.

Response bodies are cached on disk and kept fresh according to an ordered
list of ``pattern=duration`` policies: the first regular expression that
matches a URL decides how long its body may be served from the cache.

Typical use::

    from fetchcache import CachedClient, load_policies

    with CachedClient.open(".fetchcache", load_policies("policies.txt")) as client:
        body = client.get("https://example.com/feed.xml")

Modules:
    client: :class:`CachedClient` and the process default client.
    policy: Policy parsing, loading, and TTL resolution.
    cache: Key derivation, the persisted store, and the entry cache.
    transport: The httpx-backed network transport.
    config: XDG-aware configuration and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    app: Typer CLI entry point.
"""

__version__ = "0.3.0"

from fetchcache.client import (  # noqa: E402
    CachedClient,
    FetchResult,
    close_client,
    get_client,
)
from fetchcache.exceptions import (  # noqa: E402
    FetchcacheError,
    FetchError,
    PolicyError,
)
from fetchcache.policy import (  # noqa: E402
    PolicyMatcher,
    load_policies,
    parse_policies,
)

__all__ = [
    "CachedClient",
    "FetchError",
    "FetchResult",
    "FetchcacheError",
    "PolicyError",
    "PolicyMatcher",
    "close_client",
    "get_client",
    "load_policies",
    "parse_policies",
]
