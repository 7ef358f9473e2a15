"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~fetchcache.exceptions.FetchcacheError` subclass.
Shell scripts wrapping ``fetchcache`` can inspect the exit code to tell a
network failure from a broken policy file without parsing stderr.

Example::

    $ fetchcache fetch https://example.com/feed.xml
    $ echo $?
    6   # EXIT_FETCH_ERROR -- the remote host could not be reached
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_NOT_FOUND = 4
"""No cache entry exists for the requested URL."""

EXIT_FETCH_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_POLICY_ERROR = 7
"""The cache policy source could not be read or parsed."""

EXIT_STORE_ERROR = 8
"""The persisted cache store could not be opened or operated."""
