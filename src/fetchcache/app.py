"""The ``fetchcache`` command line.

The root callback turns the global flags into an
:class:`~fetchcache.output.OutputManager`, routes library logging to stderr,
and leaves ``--cache-dir``/``--policies`` in ``ctx.obj`` for the
sub-commands, which resolve them through
:func:`~fetchcache.commands.context.resolve_from_context`.

:func:`main` is the console-script entry point. A
:class:`~fetchcache.exceptions.FetchcacheError` that escapes a command exits
with that error's code; anything else leaves a traceback in
``<data_dir>/logs`` and exits with :data:`EXIT_GENERIC_FAILURE`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from fetchcache import __version__
from fetchcache.commands.cache import cache_app
from fetchcache.commands.config import config_app
from fetchcache.commands.fetch import delete_command, fetch_command
from fetchcache.commands.inspect import inspect_command
from fetchcache.commands.policies import policies_app
from fetchcache.exceptions import FetchcacheError
from fetchcache.exit_codes import EXIT_GENERIC_FAILURE
from fetchcache.output import OutputFormat, OutputManager, error, set_output

EXIT_INTERRUPTED = 130

app = typer.Typer(
    name="fetchcache",
    help="Fetch URLs through a policy-driven persistent cache.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command("fetch")(fetch_command)
app.command("delete")(delete_command)
app.command("inspect")(inspect_command)
app.add_typer(policies_app, name="policies", help="Inspect cache policies.")
app.add_typer(cache_app, name="cache", help="Cache statistics and housekeeping.")
app.add_typer(config_app, name="config", help="Configuration management.")


def configure_logging(console: Console, verbose: bool) -> None:
    """Send ``fetchcache.*`` log records to *console*.

    Failed cache writes and deletes are logged at WARNING and always shown.
    Hits, misses and bypasses are DEBUG records, shown with ``--verbose``.
    """
    logger = logging.getLogger("fetchcache")
    logger.handlers = [RichHandler(console=console, show_path=False, show_time=verbose)]
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


def _show_version(value: bool) -> None:
    if value:
        typer.echo(f"fetchcache {__version__}")
        raise typer.Exit()


def _select_format(json_output: bool, plain_output: bool) -> OutputFormat:
    if json_output:
        return OutputFormat.JSON
    if plain_output:
        return OutputFormat.PLAIN
    return OutputFormat.AUTO


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_show_version, is_eager=True,
        help="Show version and exit.",
    ),
    cache_dir: Optional[str] = typer.Option(
        None, "--cache-dir", help="Cache root; entries live in its data/ subdirectory."
    ),
    policies: Optional[str] = typer.Option(
        None, "--policies", help="Policy file with one pattern=duration rule per line."
    ),
    json_output: bool = typer.Option(False, "--json", help="Print data as JSON."),
    plain_output: bool = typer.Option(False, "--plain", help="Print data as plain text."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colour."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print warnings and errors."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log cache decisions."),
    output_file: Optional[str] = typer.Option(
        None, "-o", "--output", help="Write data to this file instead of stdout."
    ),
) -> None:
    """Fetch URLs through a policy-driven persistent cache."""
    output = OutputManager(
        format=_select_format(json_output, plain_output),
        no_color=no_color,
        quiet=quiet,
        verbose=verbose,
        output_file=output_file,
    )
    set_output(output)
    configure_logging(output.stderr_console, verbose)

    ctx.ensure_object(dict)
    ctx.obj.update(cache_dir=cache_dir, policies=policies, verbose=verbose)


def _on_sigint(signum: int, frame: Any) -> None:  # noqa: ANN401
    sys.stderr.write("\nCancelled.\n")
    sys.exit(EXIT_INTERRUPTED)


def _write_crash_log() -> Path:
    """Save the traceback being handled under ``<data_dir>/logs``."""
    from fetchcache.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    path = logs_dir / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    path.write_text(traceback.format_exc(), encoding="utf-8")
    return path


def _setup_signal_handlers() -> None:
    signal.signal(signal.SIGINT, _on_sigint)


def main() -> None:
    """Console-script entry point.

    Raises:
        SystemExit: Always, with the command's exit code.
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)
    except FetchcacheError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception:
        error(f"Unexpected error. Debug log: {_write_crash_log()}")
        sys.exit(EXIT_GENERIC_FAILURE)
