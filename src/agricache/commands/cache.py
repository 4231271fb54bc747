"""Cache commands -- inspect and maintain the on-disk cache namespace.

Provides the ``agricache cache`` sub-command group. Every command opens
the durable store selected by the resolved configuration
(:func:`~agricache.config.open_store`), wraps it in a
:class:`~agricache.cache.engine.CacheEngine` and closes it on exit.
Keys are logical keys, without the namespace prefix.
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import typer

from agricache.cache import CacheEngine
from agricache.exit_codes import EXIT_NOT_FOUND
from agricache.output import error, get_output, info, success, warning


cache_app = typer.Typer(no_args_is_help=True)


@contextmanager
def _open_engine() -> Iterator[CacheEngine]:
    """Yield an engine over the configured store, closing the store afterwards."""
    from agricache.config import open_store, resolve_config

    config = resolve_config()
    store = open_store(config)
    try:
        yield CacheEngine.from_config(store, config.cache)
    finally:
        store.close()


@cache_app.command("stats")
def cache_stats() -> None:
    """Show entry count, occupied size and capacity of the cache namespace.

    Example::

        agricache cache stats --json
    """
    with _open_engine() as engine:
        stats = engine.stats()
    get_output().show_stats(stats)


@cache_app.command("keys")
def cache_keys() -> None:
    """List entries in the cache namespace with size and remaining lifetime.

    Expired and corrupt entries are listed too; run ``cleanup`` to purge them.
    """
    with _open_engine() as engine:
        entries = sorted(engine.entries(), key=lambda e: e.key)
    get_output().show_entries(entries)


@cache_app.command("get")
def cache_get(
    key: str = typer.Argument(help="Logical cache key."),
) -> None:
    """Print the live value stored under KEY and how long it has left.

    Expired or corrupt entries are purged and reported as missing.

    Raises:
        typer.Exit: With code 4 when there is no live entry.
    """
    with _open_engine() as engine:
        expires_in = engine.expires_in(key)
        value = engine.get(key)
    if expires_in is None:
        error(f"No live cache entry for '{key}'")
        raise typer.Exit(code=EXIT_NOT_FOUND)
    get_output().show_value(key, value, expires_in)


@cache_app.command("set")
def cache_set(
    key: str = typer.Argument(help="Logical cache key."),
    value: str = typer.Argument(help="Value; parsed as JSON when possible."),
    ttl: Optional[int] = typer.Option(
        None, "--ttl", help="Lifetime in milliseconds (default from config)."
    ),
) -> None:
    """Store VALUE under KEY.

    Example::

        agricache cache set weather_pune '{"temp": 31}' --ttl 1800000
    """
    with _open_engine() as engine:
        engine.set(key, _parse_value(value), ttl=ttl)
        stored = engine.has(key)
    if stored:
        success(f"Cached '{key}'")
    else:
        warning(f"Store rejected '{key}'; nothing cached")


@cache_app.command("delete")
def cache_delete(
    key: str = typer.Argument(help="Logical cache key."),
) -> None:
    """Remove the entry under KEY (no error if absent)."""
    with _open_engine() as engine:
        engine.delete(key)
    success(f"Deleted '{key}'")


@cache_app.command("clear")
def cache_clear(ctx: typer.Context) -> None:
    """Remove every entry in the cache namespace.

    Asks for confirmation unless ``--force`` is active. Keys outside the
    namespace are never touched.
    """
    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        if not typer.confirm("Remove all cached entries?"):
            info("Cancelled.")
            raise typer.Exit()
    with _open_engine() as engine:
        removed = engine.clear()
    success(f"Removed {removed} cached entries")


@cache_app.command("cleanup")
def cache_cleanup() -> None:
    """Remove expired and corrupt entries."""
    with _open_engine() as engine:
        removed = engine.cleanup_expired()
    success(f"Removed {removed} dead entries")


def _parse_value(value: str) -> Any:  # noqa: ANN401
    """Parse *value* as JSON if possible, returning the raw string on failure."""
    try:
        return json.loads(value)
    except (json.JSONDecodeError, TypeError):
        return value
