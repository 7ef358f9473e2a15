"""Inspect command -- show the cached entry for one URL.

Read-only: the entry is decoded without enforcing expiry, so stale entries
can still be examined. Prints the key, URLs, timestamps, remaining
freshness under the current policies, size, and a body preview, and can
save the body to a file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import typer

from fetchcache.cache import derive_key
from fetchcache.cache.cache import utcnow
from fetchcache.commands.context import client_from_context
from fetchcache.exit_codes import EXIT_NOT_FOUND
from fetchcache.output import error, format_response, success, warning
from fetchcache.policy import format_duration

PREVIEW_BYTES = 200


def _preview(data: bytes) -> str:
    text = data[:PREVIEW_BYTES].decode("utf-8", errors="replace")
    if len(data) > PREVIEW_BYTES:
        text += "..."
    return text


def inspect_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="URL to look up in the cache."),
    outfile: Optional[Path] = typer.Option(
        None, "--outfile", help="Save the cached body to this file."
    ),
) -> None:
    """Show the cache entry stored for a URL.

    Example::

        fetchcache inspect https://example.com/feed.xml
        fetchcache --json inspect https://example.com/feed.xml --outfile body.xml
    """
    key = derive_key(url)
    with client_from_context(ctx) as (client, _):
        cache = client.cache
        entry = cache.peek(key)
        if entry is None:
            error(f"No cache entry found for URL: {url}")
            raise typer.Exit(code=EXIT_NOT_FOUND)

        now = utcnow()
        expires_at = cache.expires_at(entry)
        expired = cache.is_expired(entry, now)
        ttl = client.resolve_ttl(entry.url)

    details: dict[str, Any] = {
        "key": key,
        "url": entry.url,
    }
    if entry.final_url and entry.final_url != entry.url:
        details["final_url"] = entry.final_url
    details["fetched_at"] = entry.fetched_at.isoformat() if entry.fetched_at else "-"
    details["expires_at"] = expires_at.isoformat()
    details["ttl"] = format_duration(ttl)
    details["expires_in"] = format_duration(expires_at - now)
    details["expired"] = expired
    details["size"] = len(entry.data)
    details["preview"] = _preview(entry.data)
    format_response(details)

    if outfile is not None:
        outfile.write_bytes(entry.data)
        success(f"Cache content saved to: {outfile}")

    if expired:
        warning("This cache entry is expired")
