"""Built-in CLI sub-commands for fetchcache.

This package groups the Typer sub-command modules that form the CLI's
command tree:

* :mod:`~fetchcache.commands.fetch` -- fetch a URL through the cache and
  invalidate single entries.
* :mod:`~fetchcache.commands.inspect` -- show one cached entry's metadata
  and optionally dump its body.
* :mod:`~fetchcache.commands.policies` -- list policies and test URLs
  against them.
* :mod:`~fetchcache.commands.cache` -- store statistics, sweeping, clearing.
* :mod:`~fetchcache.commands.config` -- view and modify global settings.

Multi-command groups export a :class:`typer.Typer` sub-application; single
commands export a plain callback registered on the root app.
"""
