"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category. Exception classes in
:mod:`agricache.exceptions` carry the matching code, and CLI commands exit
with them directly for conditions that are not exceptions (a cache miss,
an offline probe). Library callers never see these numbers.

Example::

    $ agricache cache get weather_pune
    $ echo $?
    4   # EXIT_NOT_FOUND -- no live entry under that key
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_NOT_FOUND = 4
"""No live cache entry exists under the requested key."""

EXIT_CONNECTION_ERROR = 6
"""The connectivity probe could not reach its target."""

EXIT_STORE_ERROR = 8
"""The durable store rejected a write or could not be opened."""
