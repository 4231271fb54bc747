"""Typer application factory and CLI entry point for agricache.

This module wires together the top-level Typer application and registers
the built-in sub-commands (``cache``, ``config``, ``net``). The CLI is an
administrative view over the on-disk durable store and the connectivity
probe; applications use the library API directly.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app.
:class:`~agricache.exceptions.AgricacheError` instances exit with their
``exit_code``; unhandled exceptions are written to a crash log under the
data directory.

See Also:
    :mod:`agricache.config`: Configuration resolution and store construction.
    :mod:`agricache.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any

import typer

from agricache import __version__
from agricache.commands.cache import cache_app
from agricache.commands.config import config_app
from agricache.commands.net import net_app
from agricache.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="agricache",
    help="Inspect and maintain the agricache durable cache.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.add_typer(cache_app, name="cache", help="Cache entry management.")
app.add_typer(config_app, name="config", help="Configuration management.")
app.add_typer(net_app, name="net", help="Connectivity checks.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"agricache {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Skip confirmations."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~agricache.output.OutputManager` from
    CLI flags and stores ``--force`` in ``ctx.obj``. ``--verbose`` routes
    the library's ``agricache`` logger to stderr at DEBUG level.
    """
    from agricache.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet))

    if verbose:
        _enable_debug_logging()

    ctx.ensure_object(dict)
    ctx.obj["force"] = force


def _enable_debug_logging() -> None:
    """Attach a stderr handler to the ``agricache`` logger at DEBUG level."""
    logger = logging.getLogger("agricache")
    if not any(getattr(h, "_agricache_cli", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("[debug] %(name)s: %(message)s"))
        handler._agricache_cli = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from agricache.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``agricache`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from agricache.exceptions import AgricacheError
        from agricache.output import error

        if isinstance(exc, AgricacheError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
