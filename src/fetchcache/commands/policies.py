"""Policies commands -- list the effective policies and test URLs against them.

Policies are loaded exactly as the client loads them, so ``policies show``
includes the catch-all appended after the file's own rules.
"""

from __future__ import annotations

import typer

from fetchcache.commands.context import resolve_from_context
from fetchcache.output import format_response, info, print_table
from fetchcache.policy import PolicyMatcher, format_duration


policies_app = typer.Typer(no_args_is_help=True)


@policies_app.command("show")
def policies_show(ctx: typer.Context) -> None:
    """List policies in priority order.

    Example::

        fetchcache policies show
        fetchcache --json --policies ./policies.txt policies show
    """
    resolved, policies = resolve_from_context(ctx)
    info(f"Policies file: {resolved.policies_file}")

    rows = [
        [str(index), policy.pattern.pattern, format_duration(policy.ttl)]
        for index, policy in enumerate(policies, start=1)
    ]
    print_table(["#", "Pattern", "TTL"], rows, title=f"Cache policies ({len(rows)})")


@policies_app.command("match")
def policies_match(
    ctx: typer.Context,
    url: str = typer.Argument(help="URL to resolve."),
) -> None:
    """Show which policy decides the TTL of a URL.

    Example::

        fetchcache policies match https://api.example.com/users
    """
    _, policies = resolve_from_context(ctx)
    matcher = PolicyMatcher(policies)
    policy = matcher.match(url)
    ttl = matcher.resolve_ttl(url)

    format_response({
        "url": url,
        "pattern": policy.pattern.pattern if policy is not None else None,
        "ttl": format_duration(ttl),
        "cached": ttl.total_seconds() > 0,
    })
