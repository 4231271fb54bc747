"""Rendering of ``agricache`` command results.

Results (cached values, entry listings, namespace stats, configuration)
go to stdout; status lines and errors go to stderr so that piped output
stays parseable. Three result formats are supported:

* ``json`` -- one JSON document per command, for scripts.
* ``plain`` -- tab-separated lines, for shell pipelines.
* ``rich`` -- tables and panels, for terminals.

``auto`` picks ``rich`` when stdout is a TTY and colour is allowed
(``NO_COLOR`` unset, ``TERM`` not ``dumb``, no ``--no-color``), ``plain``
otherwise. Remaining lifetimes are shown in milliseconds in JSON and as
short durations (``29m 59s``, ``expired``) everywhere else.

Library code never writes here; it logs through :mod:`logging`.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from agricache.models import CacheStats, EntryInfo


class OutputFormat(str, Enum):
    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


_UNITS = (("d", 86_400), ("h", 3_600), ("m", 60), ("s", 1))


def format_duration(ms: Optional[int]) -> str:
    """Render a remaining lifetime in ms as ``1h 30m``, ``expired`` or ``corrupt``."""
    if ms is None:
        return "corrupt"
    if ms < 0:
        return "expired"
    seconds = ms // 1000
    if seconds == 0:
        return "<1s"
    parts = []
    for suffix, unit in _UNITS:
        count, seconds = divmod(seconds, unit)
        if count:
            parts.append(f"{count}{suffix}")
    return " ".join(parts)


def flatten_config(data: dict[str, Any], parent: str = "") -> list[tuple[str, Any]]:
    """Flatten nested config sections into ``(dotted.key, value)`` pairs."""
    pairs: list[tuple[str, Any]] = []
    for name, value in data.items():
        dotted = f"{parent}.{name}" if parent else name
        if isinstance(value, dict):
            pairs.extend(flatten_config(value, dotted))
        else:
            pairs.append((dotted, value))
    return pairs


class OutputManager:
    """Writes command results to stdout and status lines to stderr.

    Args:
        format: Result format; ``AUTO`` is resolved at construction.
        no_color: Disable colour and Rich markup on both streams.
        quiet: Suppress :meth:`info` and :meth:`success` lines.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
    ) -> None:
        self._no_color = no_color or _color_disabled_by_env()
        self._quiet = quiet
        if format == OutputFormat.AUTO:
            format = OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
        self._format = format
        self._out = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=format == OutputFormat.RICH,
            highlight=False,
        )
        self._err = Console(file=sys.stderr, no_color=self._no_color, highlight=False)

    @property
    def format(self) -> OutputFormat:
        return self._format

    # ------------------------------------------------------------------ #
    # Results (stdout)
    # ------------------------------------------------------------------ #

    def show_value(self, key: str, value: Any, expires_in: int) -> None:
        """Render the live value cached under *key*."""
        if self._format == OutputFormat.JSON:
            self._write_json({"key": key, "data": value, "expires_in_ms": expires_in})
            return
        text = value if isinstance(value, str) else _dumps(value, indent=2)
        if self._format == OutputFormat.PLAIN:
            self._write(text)
            self.info(f"{key} expires in {format_duration(expires_in)}")
            return
        body = text if isinstance(value, str) else Syntax(text, "json", word_wrap=True)
        self._out.print(
            Panel(
                body,
                title=escape(key),
                subtitle=f"expires in {format_duration(expires_in)}",
            )
        )

    def show_entries(self, entries: list[EntryInfo]) -> None:
        """Render a namespace listing with size and remaining lifetime."""
        if self._format == OutputFormat.JSON:
            self._write_json([e.model_dump() for e in entries])
        elif self._format == OutputFormat.PLAIN:
            self._write("key\tsize\texpires_in")
            for e in entries:
                self._write(f"{e.key}\t{e.size}\t{format_duration(e.expires_in_ms)}")
        else:
            table = Table(title="Cached entries", header_style="bold cyan")
            table.add_column("Key")
            table.add_column("Size", justify="right")
            table.add_column("Expires in", justify="right")
            for e in entries:
                remaining = format_duration(e.expires_in_ms)
                if e.expires_in_ms is None or e.expires_in_ms < 0:
                    remaining = f"[red]{remaining}[/red]"
                table.add_row(escape(e.key), str(e.size), remaining)
            self._out.print(table)

    def show_stats(self, stats: CacheStats) -> None:
        """Render namespace occupancy against its capacity."""
        if self._format == OutputFormat.JSON:
            data = stats.model_dump()
            data["usage"] = round(stats.usage, 4)
            self._write_json(data)
            return
        rows = [
            ("prefix", stats.prefix),
            ("entries", str(stats.entries)),
            ("size", str(stats.size)),
            ("max_size", str(stats.max_size)),
            ("usage", f"{stats.usage:.2%}"),
            ("default_ttl", format_duration(stats.default_ttl_ms)),
        ]
        if self._format == OutputFormat.PLAIN:
            for name, value in rows:
                self._write(f"{name}\t{value}")
            return
        table = Table(title="Cache namespace", show_header=False)
        table.add_column(style="bold")
        table.add_column()
        for name, value in rows:
            table.add_row(name, escape(value))
        self._out.print(table)

    def show_config(self, data: dict[str, Any]) -> None:
        """Render the effective configuration as dotted ``section.key`` rows."""
        if self._format == OutputFormat.JSON:
            self._write_json(data)
            return
        pairs = [(k, "" if v is None else str(v)) for k, v in flatten_config(data)]
        if self._format == OutputFormat.PLAIN:
            for name, value in pairs:
                self._write(f"{name}\t{value}")
            return
        table = Table(header_style="bold cyan")
        table.add_column("Setting")
        table.add_column("Value")
        for name, value in pairs:
            table.add_row(name, escape(value))
        self._out.print(table)

    # ------------------------------------------------------------------ #
    # Status (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        if not self._quiet:
            self._status(message)

    def success(self, message: str) -> None:
        if not self._quiet:
            self._status(message, style="green")

    def warning(self, message: str) -> None:
        self._status(message, style="yellow", label="Warning")

    def error(self, message: str) -> None:
        self._status(message, style="bold red", label="Error")

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _status(self, message: str, style: str = "", label: str = "") -> None:
        if self._no_color:
            prefix = f"{label}: " if label else ""
            print(f"{prefix}{message}", file=sys.stderr, flush=True)
        elif label:
            self._err.print(f"[{style}]{label}:[/{style}] {escape(message)}")
        elif style:
            self._err.print(f"[{style}]{escape(message)}[/{style}]")
        else:
            self._err.print(escape(message))

    def _write(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def _write_json(self, data: Any) -> None:
        self._write(_dumps(data, indent=2))


def _dumps(data: Any, indent: Optional[int] = None) -> str:
    return json.dumps(data, indent=indent, ensure_ascii=False, default=str)


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _color_disabled_by_env() -> bool:
    """``NO_COLOR`` set to any value, or ``TERM=dumb``."""
    if os.environ.get("NO_COLOR") is not None:
        return True
    return os.environ.get("TERM") == "dumb"


_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the process-wide :class:`OutputManager`, creating a default one."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    global _output
    _output = None


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)
