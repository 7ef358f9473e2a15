"""Cache commands -- statistics and housekeeping for the persisted store.

Provides ``fetchcache cache stats``, ``fetchcache cache sweep`` (drop every
expired or unreadable entry now instead of waiting for reads to find them),
and ``fetchcache cache clear``.
"""

from __future__ import annotations

import typer

from fetchcache.client import DATA_SUBDIR
from fetchcache.commands.context import client_from_context
from fetchcache.output import format_response, info, success


cache_app = typer.Typer(no_args_is_help=True)


@cache_app.command("stats")
def cache_stats(ctx: typer.Context) -> None:
    """Show the cache location, entry count, and policy count.

    Example::

        fetchcache cache stats --json
    """
    with client_from_context(ctx) as (client, resolved):
        stats = client.cache.stats()

    format_response({
        "directory": str(resolved.cache_dir / DATA_SUBDIR),
        "policies_file": str(resolved.policies_file),
        **stats,
    })


@cache_app.command("sweep")
def cache_sweep(ctx: typer.Context) -> None:
    """Delete expired and undecodable entries.

    Example::

        fetchcache cache sweep
    """
    with client_from_context(ctx) as (client, _):
        removed = client.cache.sweep()
    success(f"Removed {removed} expired entr{'y' if removed == 1 else 'ies'}.")


@cache_app.command("clear")
def cache_clear(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Delete every cache entry.

    Asks for confirmation unless ``--force`` is given.

    Example::

        fetchcache cache clear --force
    """
    if not force and not typer.confirm("Delete all cached responses?"):
        info("Cancelled.")
        raise typer.Exit()

    with client_from_context(ctx) as (client, _):
        removed = client.cache.clear()
    success(f"Cleared {removed} cache entr{'y' if removed == 1 else 'ies'}.")
