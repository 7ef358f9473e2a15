"""Helpers shared by commands that need policies or a client.

Commands read the global ``--cache-dir`` and ``--policies`` options from
``ctx.obj`` (populated by :func:`~fetchcache.app.main_callback`) and resolve
them through :func:`~fetchcache.config.resolve_config`. Library errors are
reported on stderr and turned into a :class:`typer.Exit` carrying the
error's exit code.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import typer

from fetchcache.client import CachedClient
from fetchcache.config import ResolvedConfig, resolve_config
from fetchcache.exceptions import FetchcacheError
from fetchcache.models import CachePolicy
from fetchcache.output import error
from fetchcache.policy import load_policies


def _option(ctx: typer.Context, name: str):  # noqa: ANN202
    return ctx.obj.get(name) if ctx.obj else None


def resolve_from_context(ctx: typer.Context) -> tuple[ResolvedConfig, list[CachePolicy]]:
    """Resolve configuration and load policies for the current invocation.

    Raises:
        typer.Exit: With the error's exit code on a config or policy error.
    """
    try:
        resolved = resolve_config(
            cli_cache_dir=_option(ctx, "cache_dir"),
            cli_policies_file=_option(ctx, "policies"),
        )
        policies = load_policies(resolved.policies_file, resolved.default_ttl)
    except FetchcacheError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    return resolved, policies


@contextmanager
def client_from_context(ctx: typer.Context) -> Iterator[tuple[CachedClient, ResolvedConfig]]:
    """Open a :class:`CachedClient` for the invocation and close it afterwards.

    Raises:
        typer.Exit: With the error's exit code if the client cannot be
            opened or a :class:`FetchcacheError` escapes the block.
    """
    resolved, policies = resolve_from_context(ctx)
    try:
        client = CachedClient.open(resolved.cache_dir, policies, request=resolved.request)
    except FetchcacheError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    try:
        yield client, resolved
    except FetchcacheError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    finally:
        client.close()
