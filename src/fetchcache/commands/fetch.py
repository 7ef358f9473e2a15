"""Fetch and delete commands -- use and invalidate the cache for one URL.

``fetchcache fetch URL`` writes the body to stdout (or to ``-o FILE``) and
reports on stderr whether it was served from the cache. ``fetchcache
delete URL`` drops the URL's entry regardless of its freshness.
"""

from __future__ import annotations

import typer

from fetchcache.commands.context import client_from_context
from fetchcache.output import debug, get_output, info, success


def fetch_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="URL to fetch."),
    refresh: bool = typer.Option(
        False, "--refresh", "-r", help="Ignore any cached copy but store the fresh one."
    ),
) -> None:
    """Fetch a URL through the cache.

    Example::

        fetchcache fetch https://example.com/feed.xml
        fetchcache -o feed.xml fetch --refresh https://example.com/feed.xml
    """
    with client_from_context(ctx) as (client, _):
        debug(f"TTL for {url}: {client.resolve_ttl(url)}")
        result = client.fetch(url, refresh=refresh)

    info(f"Cache {'hit' if result.from_cache else 'miss'}: {url}")
    if result.final_url and result.final_url != url:
        info(f"Final URL: {result.final_url}")
    get_output().print_body(result.data)


def delete_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="URL whose cache entry should be removed."),
) -> None:
    """Remove the cached entry for a URL.

    Example::

        fetchcache delete https://example.com/feed.xml
    """
    with client_from_context(ctx) as (client, _):
        removed = client.delete_url(url)

    if removed:
        success(f"Removed cache entry for {url}")
    else:
        info(f"No cache entry for {url}")
