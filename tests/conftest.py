"""Shared test fixtures for fetchcache.

Provides in-memory stand-ins for the persisted store and the network
transport, a controllable clock, isolated config environments, and a CLI
runner. These fixtures are automatically discovered by pytest and available
to all test modules without explicit imports.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional, Union

import pytest

from fetchcache.cache.store import KeyValueStore
from fetchcache.client import CachedClient, Validator, close_client
from fetchcache.exceptions import StoreError
from fetchcache.output import reset_output
from fetchcache.policy import parse_policies
from fetchcache.transport import FetchedResponse, Transport


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class MemoryStore(KeyValueStore):
    """Dict-backed store whose operations can be made to fail on demand."""

    def __init__(self) -> None:
        self.data: dict[str, bytes] = {}
        self.closed = False
        self.fail_get = False
        self.fail_put = False
        self.fail_delete = False
        self.deleted: list[str] = []

    def get(self, key: str) -> Optional[bytes]:
        if self.fail_get:
            raise StoreError("get failed")
        return self.data.get(key)

    def put(self, key: str, value: bytes) -> None:
        if self.fail_put:
            raise StoreError("put failed")
        self.data[key] = value

    def delete(self, key: str) -> bool:
        if self.fail_delete:
            raise StoreError("delete failed")
        self.deleted.append(key)
        return self.data.pop(key, None) is not None

    def keys(self) -> Iterator[str]:
        return iter(list(self.data))

    def clear(self) -> int:
        count = len(self.data)
        self.data.clear()
        return count

    def __len__(self) -> int:
        return len(self.data)

    def close(self) -> None:
        self.closed = True


class FakeTransport(Transport):
    """Transport that counts fetches and serves canned outcomes.

    ``outcomes`` maps a URL to a :class:`FetchedResponse` or an exception to
    raise. Unmapped URLs return :attr:`body` with the URL as final URL.
    """

    def __init__(self, body: bytes = b"payload") -> None:
        self.body = body
        self.outcomes: dict[str, Union[FetchedResponse, Exception]] = {}
        self.calls: list[str] = []
        self.closed = False

    @property
    def count(self) -> int:
        return len(self.calls)

    def fetch(self, url: str) -> FetchedResponse:
        self.calls.append(url)
        outcome = self.outcomes.get(url)
        if isinstance(outcome, Exception):
            raise outcome
        if outcome is None:
            return FetchedResponse(body=self.body, final_url=url)
        return outcome

    def close(self) -> None:
        self.closed = True


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


# ---------------------------------------------------------------------------
# Auto-reset global state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_global_state() -> Iterator[None]:
    """Reset the global OutputManager, default client, and CLI logging.

    The OutputManager and the Rich log handler hold references to the
    streams CliRunner swaps in during a test; once the test finishes those
    streams are closed, so both are dropped here.
    """
    yield
    reset_output()
    close_client()
    logger = logging.getLogger("fetchcache")
    logger.handlers = []
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


# ---------------------------------------------------------------------------
# Cache fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def make_client(
    memory_store: MemoryStore,
    fake_transport: FakeTransport,
    clock: FrozenClock,
) -> Callable[..., CachedClient]:
    """Factory building a CachedClient over the in-memory doubles.

    Accepts policy lines (the catch-all is appended) and an optional default
    validator.
    """

    def _make(
        lines: Iterable[str] = (),
        validator: Optional[Validator] = None,
    ) -> CachedClient:
        return CachedClient(
            memory_store,
            parse_policies(lines),
            transport=fake_transport,
            validator=validator,
            clock=clock,
        )

    return _make


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path so that tests never touch real user
    config, forces the XDG layout, clears all FETCHCACHE_* environment
    variables, and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("fetchcache.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in ["FETCHCACHE_CACHE_DIR", "FETCHCACHE_POLICIES_FILE"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
