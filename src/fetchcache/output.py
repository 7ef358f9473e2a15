"""Terminal output for the fetchcache CLI.

Data and diagnostics never share a stream:

* **stdout** carries what the user asked for: a response body, an entry
  report, a policy table. Scripts can pipe it safely.
* **stderr** carries everything else: hit/miss notes, warnings, errors, and
  the log records routed there by :func:`~fetchcache.app.configure_logging`.

Rich rendering is used only when stdout is a terminal and colour is allowed
(``NO_COLOR``, ``TERM=dumb`` and ``--no-color`` all turn it off). The
:class:`OutputManager` built in :func:`~fetchcache.app.main_callback` is
installed globally; commands use the module-level helpers below.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """Rendering of structured data on stdout.

    ``AUTO`` becomes ``RICH`` on a colour-capable terminal and ``PLAIN``
    everywhere else.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


def _is_tty() -> bool:
    isatty = getattr(sys.stdout, "isatty", None)
    return bool(isatty and isatty())


def _should_disable_color() -> bool:
    """Return True when ``NO_COLOR`` is set to anything or ``TERM`` is ``dumb``."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


def _to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


class OutputManager:
    """Writes command results to stdout and diagnostics to stderr.

    Args:
        format: Rendering for structured data.
        no_color: Disable colour and Rich markup.
        quiet: Drop ``info`` and ``success`` messages. Warnings and errors
            are always shown.
        verbose: Show ``debug`` messages.
        output_file: Send data to this file instead of stdout. Structured
            data and bodies replace the file; text lines are appended.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
        output_file: Optional[str] = None,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        self._output_file = output_file

        if format == OutputFormat.AUTO:
            use_rich = _is_tty() and not self._no_color
            format = OutputFormat.RICH if use_rich else OutputFormat.PLAIN
        self._format = format

        # Without a colour system Rich drops bold and italic as well.
        color_system = None if self._no_color else "auto"
        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            color_system=color_system,
            force_terminal=format == OutputFormat.RICH and not self._no_color,
        )
        self._stderr = Console(
            file=sys.stderr, stderr=True, no_color=self._no_color, color_system=color_system
        )

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    @property
    def stderr_console(self) -> Console:
        """The stderr console, shared with the CLI log handler."""
        return self._stderr

    # ------------------------------------------------------------------ #
    # Data (stdout or --output)
    # ------------------------------------------------------------------ #

    def print_body(self, body: bytes) -> None:
        """Write a response body byte for byte.

        With an output file the file is replaced in binary mode; otherwise
        the bytes go to the binary layer of stdout.
        """
        if self._output_file:
            with open(self._output_file, "wb") as f:
                f.write(body)
            return

        buffer = getattr(sys.stdout, "buffer", None)
        if buffer is None:
            sys.stdout.write(body.decode("utf-8", errors="replace"))
            sys.stdout.flush()
            return
        buffer.write(body)
        buffer.flush()

    def format_response(self, data: Any) -> None:
        """Render a dict, list, or scalar in the active format.

        An output file always receives JSON, whatever the format.
        """
        if self._output_file:
            text = _to_json(data) if isinstance(data, (dict, list)) else str(data)
            with open(self._output_file, "w", encoding="utf-8") as f:
                f.write(text if text.endswith("\n") else text + "\n")
        elif self._format == OutputFormat.JSON:
            self.print_data(_to_json(data))
        elif self._format == OutputFormat.RICH:
            self._stdout.print(Syntax(_to_json(data), "json", theme="monokai", word_wrap=True))
        else:
            for line in _plain_lines(data):
                self.print_data(line)

    def print_data(self, text: str) -> None:
        """Write one line of text to stdout, or append it to the output file."""
        if not self._output_file:
            print(text, file=sys.stdout, flush=True)
            return
        with open(self._output_file, "a", encoding="utf-8") as f:
            f.write(text if text.endswith("\n") else text + "\n")

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Render rows as a Rich table, a JSON array of objects, or TSV.

        The title is only shown by the Rich rendering.
        """
        if self._format == OutputFormat.JSON:
            self.print_data(_to_json([dict(zip(headers, row)) for row in rows]))
        elif self._format == OutputFormat.PLAIN:
            for row in [headers, *rows]:
                self.print_data("\t".join(row))
        else:
            table = Table(*headers, title=title, header_style="bold cyan")
            for row in rows:
                table.add_row(*row)
            self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(message)

    def success(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(message, style="green")

    def warning(self, message: str) -> None:
        self._diagnostic(message, prefix="Warning:", prefix_style="yellow")

    def error(self, message: str) -> None:
        self._diagnostic(message, prefix="Error:", prefix_style="bold red")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._diagnostic(f"[debug] {message}", style="dim")

    def _diagnostic(
        self,
        message: str,
        style: Optional[str] = None,
        prefix: Optional[str] = None,
        prefix_style: Optional[str] = None,
    ) -> None:
        if self._no_color:
            line = f"{prefix} {message}" if prefix else message
            print(line, file=sys.stderr, flush=True)
            return
        if prefix:
            self._stderr.print(f"[{prefix_style}]{prefix}[/{prefix_style}] {escape(message)}")
        else:
            self._stderr.print(message, style=style, markup=False)


def _plain_lines(data: Any) -> list[str]:
    """Flatten *data* to tab-separated lines for plain output."""
    if isinstance(data, dict):
        return [f"{key}\t{value}" for key, value in data.items()]
    if isinstance(data, list):
        return [
            "\t".join(str(v) for v in item.values()) if isinstance(item, dict) else str(item)
            for item in data
        ]
    return [str(data)]


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default one."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager. Used between tests."""
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_data(text: str) -> None:
    get_output().print_data(text)


def print_table(
    headers: list[str],
    rows: list[list[str]],
    title: Optional[str] = None,
) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def debug(message: str) -> None:
    get_output().debug(message)
