"""Exception hierarchy for agricache.

All exceptions inherit from :class:`AgricacheError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`agricache.exit_codes`.
The top-level error handler in :func:`agricache.app.main` catches
``AgricacheError`` and exits with the appropriate code.

Store errors are raised by :class:`~agricache.store.base.DurableStore`
implementations and are always absorbed by
:class:`~agricache.cache.engine.CacheEngine`; the cache is advisory and
never surfaces them to its callers. Only code that talks to a store
directly (the CLI opening the disk store, for instance) sees them.

Subclass hierarchy::

    AgricacheError (exit 1)
    +-- ConfigError            (exit 1)
    +-- StoreError             (exit 8)
        +-- QuotaExceededError     (exit 8)
        +-- StoreUnavailableError  (exit 8)
"""

from agricache.exit_codes import EXIT_GENERIC_FAILURE, EXIT_STORE_ERROR


class AgricacheError(Exception):
    """Base exception for all agricache errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(AgricacheError):
    """Raised for configuration problems (invalid JSON, bad env values)."""

    exit_code = EXIT_GENERIC_FAILURE


class StoreError(AgricacheError):
    """Base class for durable store failures."""

    exit_code = EXIT_STORE_ERROR


class QuotaExceededError(StoreError):
    """Raised by ``set_item`` when a write would exceed the store's capacity."""


class StoreUnavailableError(StoreError):
    """Raised when the backing store cannot be opened, read or written."""
