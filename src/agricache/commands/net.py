"""Network commands -- run the connectivity probe.

Provides the ``agricache net`` sub-command group. ``probe`` sends a HEAD
request to the given URL (or ``network.probe_url`` from config) through
:class:`~agricache.network.probe.ConnectivityProbe`.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import typer

from agricache.exit_codes import EXIT_CONNECTION_ERROR, EXIT_INVALID_USAGE
from agricache.output import error, success


net_app = typer.Typer(no_args_is_help=True)


@net_app.command("probe")
def net_probe(
    url: Optional[str] = typer.Argument(
        None, help="URL to probe (defaults to network.probe_url)."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Timeout in seconds (defaults to network.probe_timeout)."
    ),
) -> None:
    """Check whether URL is reachable.

    Raises:
        typer.Exit: With code 2 when no URL is configured, 6 when offline.

    Example::

        agricache net probe https://api.example.com/health
    """
    from agricache.config import resolve_config
    from agricache.network import ConnectivityProbe, ConnectivitySignal

    config = resolve_config()
    target = url or config.network.probe_url
    if not target:
        error("No URL given and network.probe_url is not set")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    probe = ConnectivityProbe(
        ConnectivitySignal(online=False),
        target,
        timeout=timeout or config.network.probe_timeout,
    )
    if not asyncio.run(probe.check()):
        error(f"Offline: {target} is unreachable")
        raise typer.Exit(code=EXIT_CONNECTION_ERROR)
    success(f"Online: {target} is reachable")
