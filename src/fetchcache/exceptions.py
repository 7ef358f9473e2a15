"""Exception hierarchy for fetchcache.

All exceptions inherit from :class:`FetchcacheError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`fetchcache.exit_codes`.
The top-level error handler in :func:`fetchcache.app.main` catches
``FetchcacheError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    FetchcacheError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- NotFoundError       (exit 4)
    +-- FetchError          (exit 6)
    +-- PolicyError         (exit 7)
    +-- StoreError          (exit 8)
    +-- ConfigError         (exit 1)

Only :class:`FetchError` and :class:`PolicyError` ever reach library callers.
:class:`StoreError` is raised by the persisted store and absorbed by
:class:`~fetchcache.cache.EntryCache`, so a cache fault shows up as a
re-fetch rather than a failure.
"""

from __future__ import annotations

from typing import Optional

from fetchcache.exit_codes import (
    EXIT_FETCH_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_POLICY_ERROR,
    EXIT_STORE_ERROR,
)


class FetchcacheError(Exception):
    """Base exception for all fetchcache errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`fetchcache.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(FetchcacheError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


class NotFoundError(FetchcacheError):
    """Raised when no cache entry exists for a URL being inspected."""

    exit_code = EXIT_NOT_FOUND


class FetchError(FetchcacheError):
    """Raised when the outbound fetch fails.

    Covers network-level failures (timeout, DNS resolution, connection
    refused, malformed URL) and, when the transport is configured with
    ``raise_for_status``, HTTP error statuses. Nothing is cached for a
    fetch that raised.

    Args:
        message: Human-readable error description.
        url: The URL that was requested.
        final_url: The post-redirect URL, when the transport got that far.
        status_code: The HTTP status for status errors, otherwise ``None``.
    """

    exit_code = EXIT_FETCH_ERROR

    def __init__(
        self,
        message: str,
        url: str = "",
        final_url: str = "",
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.url = url
        self.final_url = final_url
        self.status_code = status_code


class PolicyError(FetchcacheError):
    """Raised when a policy source contains a malformed pattern or duration, or cannot be read."""

    exit_code = EXIT_POLICY_ERROR


class StoreError(FetchcacheError):
    """Raised by the persisted store on a backend fault (I/O, SQLite, lock timeout)."""

    exit_code = EXIT_STORE_ERROR


class ConfigError(FetchcacheError):
    """Raised for configuration problems (invalid JSON, failed validation)."""

    exit_code = EXIT_GENERIC_FAILURE
