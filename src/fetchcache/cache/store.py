"""Persisted key-value stores backing the entry cache.

:class:`KeyValueStore` is the narrow interface the cache layer depends on:
opaque string keys mapped to byte values, with ``get``/``put``/``delete``/
``close`` plus the enumeration needed by sweeping and inspection.
:class:`DiskStore` implements it on :mod:`diskcache`, which persists to a
SQLite-indexed directory and serialises concurrent access (threads and
processes) on its own.

Backend failures surface as :class:`~fetchcache.exceptions.StoreError`.
"""

from __future__ import annotations

import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import diskcache

from fetchcache.exceptions import StoreError

_BACKEND_ERRORS = (OSError, sqlite3.Error, diskcache.Timeout)


class KeyValueStore(ABC):
    """Abstract byte-string key-value store.

    Implementations must be safe to call from multiple threads; the cache
    layer adds no locking of its own.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Return the value stored under *key*, or ``None`` when absent."""

    @abstractmethod
    def put(self, key: str, value: bytes) -> None:
        """Store *value* under *key*, replacing any previous value."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove *key*. Returns ``True`` if something was removed."""

    @abstractmethod
    def keys(self) -> Iterator[str]:
        """Iterate over every stored key."""

    @abstractmethod
    def clear(self) -> int:
        """Remove every entry and return how many were removed."""

    @abstractmethod
    def __len__(self) -> int:
        """Return the number of stored entries."""

    def close(self) -> None:
        """Release any resources held by the store."""


class DiskStore(KeyValueStore):
    """:class:`KeyValueStore` backed by a :class:`diskcache.Cache` directory.

    Args:
        directory: Directory holding the store. Created if missing.

    Raises:
        StoreError: If the directory or its database cannot be opened.

    Example::

        store = DiskStore("/tmp/fetchcache/data")
        store.put("k", b"v")
        assert store.get("k") == b"v"
        store.close()
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)
        self._closed = False
        with self._backend_errors("open"):
            self._cache = diskcache.Cache(str(self._directory))

    @property
    def directory(self) -> Path:
        """The directory the store persists to."""
        return self._directory

    @property
    def closed(self) -> bool:
        """Whether :meth:`close` has been called."""
        return self._closed

    def get(self, key: str) -> Optional[bytes]:
        with self._backend_errors("get"):
            return self._cache.get(key, default=None, retry=True)

    def put(self, key: str, value: bytes) -> None:
        with self._backend_errors("put"):
            self._cache.set(key, value, retry=True)

    def delete(self, key: str) -> bool:
        with self._backend_errors("delete"):
            return bool(self._cache.delete(key, retry=True))

    def keys(self) -> Iterator[str]:
        with self._backend_errors("keys"):
            return iter(list(self._cache.iterkeys()))

    def clear(self) -> int:
        with self._backend_errors("clear"):
            return self._cache.clear(retry=True)

    def __len__(self) -> int:
        with self._backend_errors("len"):
            return len(self._cache)

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache`. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self._cache.close()

    @contextmanager
    def _backend_errors(self, operation: str) -> Iterator[None]:
        """Translate backend exceptions into :class:`StoreError`."""
        if self._closed:
            raise StoreError(f"store {operation} on closed store at {self._directory}")
        try:
            yield
        except _BACKEND_ERRORS as exc:
            raise StoreError(
                f"store {operation} failed at {self._directory}: {exc}"
            ) from exc
