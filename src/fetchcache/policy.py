"""Cache policies: parsing, loading, and first-match-wins TTL resolution.

A policy source is UTF-8 text with one ``pattern=duration`` rule per line::

    # API responses go stale quickly
    \\.example\\.com/api=30s
    \\.example\\.com=5m      # everything else on example.com
    ^https://static\\.=1d
    /no-cache/=0

Parsing rules:

* blank lines and lines whose first non-space character is ``#`` are skipped;
* a ``#`` anywhere else starts an inline comment;
* the **last** ``=`` separates pattern from duration, so patterns may
  themselves contain ``=``;
* the pattern is a Python regular expression searched anywhere in the URL;
* the duration accepts ``ms``, ``s``, ``m``, ``h`` and ``d`` units, decimal
  magnitudes and compound forms such as ``1h30m``.

A catch-all policy (``.*`` with :data:`DEFAULT_TTL`) is always appended last,
so resolution always produces a TTL. A TTL of zero means "do not cache".
"""

from __future__ import annotations

import re
from datetime import timedelta
from pathlib import Path
from typing import Iterable, Optional, Sequence

from fetchcache.exceptions import PolicyError
from fetchcache.models import CachePolicy

DEFAULT_TTL = timedelta(minutes=10)
"""TTL of the catch-all policy appended to every loaded policy list."""

CATCH_ALL_PATTERN = ".*"

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ms|s|m|h|d)")

_UNIT_SECONDS = {
    "ms": 0.001,
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
}

# Longest accepted TTL: 2**63 nanoseconds, about 292 years.
MAX_DURATION = timedelta(microseconds=2**63 // 1000)


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``90s``, ``1h30m`` or ``1.5d``.

    A bare ``0`` is accepted as zero. Negative durations are rejected.

    Args:
        text: The duration string.

    Returns:
        The parsed :class:`~datetime.timedelta`.

    Raises:
        PolicyError: If *text* is empty or not a sequence of
            ``<number><unit>`` parts, or if it exceeds :data:`MAX_DURATION`.
    """
    value = text.strip()
    if value == "0":
        return timedelta(0)
    if not value:
        raise PolicyError("invalid duration: empty value")

    total = 0.0
    pos = 0
    while pos < len(value):
        match = _DURATION_PART.match(value, pos)
        if match is None:
            raise PolicyError(f"invalid duration: {text!r}")
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    if total > MAX_DURATION.total_seconds():
        raise PolicyError(f"invalid duration: {text!r} exceeds {format_duration(MAX_DURATION)}")
    return timedelta(seconds=total)


def format_duration(value: timedelta) -> str:
    """Render *value* in the policy-file notation, e.g. ``1d2h``, ``5m``, ``0s``.

    Sub-second remainders are dropped except for durations under a second,
    which are shown in milliseconds. Negative values get a leading ``-``.
    """
    if value < timedelta(0):
        return "-" + format_duration(-value)
    if value < timedelta(seconds=1):
        millis = value // timedelta(milliseconds=1)
        return f"{millis}ms" if millis else "0s"

    remaining = int(value.total_seconds())
    parts = []
    for unit, seconds in (("d", 86400), ("h", 3600), ("m", 60), ("s", 1)):
        count, remaining = divmod(remaining, seconds)
        if count:
            parts.append(f"{count}{unit}")
    return "".join(parts)


def default_policy(ttl: timedelta = DEFAULT_TTL) -> CachePolicy:
    """Return the catch-all policy matching every URL."""
    return CachePolicy(pattern=re.compile(CATCH_ALL_PATTERN), ttl=ttl)


def parse_policy_line(line: str) -> Optional[CachePolicy]:
    """Parse a single policy line.

    Returns:
        The parsed policy, or ``None`` for blank and comment-only lines.

    Raises:
        PolicyError: On a missing ``=``, an invalid regex, or an invalid
            duration.
    """
    text = line.strip()
    if not text or text.startswith("#"):
        return None

    if "#" in text:
        text = text[: text.index("#")].strip()

    pattern, sep, duration = text.rpartition("=")
    if not sep:
        raise PolicyError(f"invalid policy format: {text}")

    try:
        compiled = re.compile(pattern.strip())
    except re.error as exc:
        raise PolicyError(f"invalid regex pattern {pattern.strip()!r}: {exc}") from exc

    return CachePolicy(pattern=compiled, ttl=parse_duration(duration))


def parse_policies(
    lines: Iterable[str],
    default_ttl: timedelta = DEFAULT_TTL,
) -> list[CachePolicy]:
    """Parse an ordered sequence of policy lines.

    The catch-all policy is appended after every explicit policy.

    Args:
        lines: Policy source lines, in priority order.
        default_ttl: TTL of the appended catch-all policy.

    Returns:
        The ordered policy list, never empty.

    Raises:
        PolicyError: If any line is malformed. The whole load is aborted.
    """
    policies: list[CachePolicy] = []
    for lineno, line in enumerate(lines, start=1):
        try:
            policy = parse_policy_line(line)
        except PolicyError as exc:
            raise PolicyError(f"line {lineno}: {exc}") from exc
        if policy is not None:
            policies.append(policy)

    policies.append(default_policy(default_ttl))
    return policies


def load_policies(
    path: str | Path | None,
    default_ttl: timedelta = DEFAULT_TTL,
) -> list[CachePolicy]:
    """Load policies from a file.

    A missing file (or no path at all) is not an error: the result is just
    the catch-all policy.

    Args:
        path: Location of the policy file, or ``None``.
        default_ttl: TTL of the appended catch-all policy.

    Returns:
        The ordered policy list, never empty.

    Raises:
        PolicyError: If the file exists but cannot be read or contains a
            malformed line.
    """
    if not path:
        return [default_policy(default_ttl)]

    source = Path(path).expanduser()
    try:
        text = source.read_text(encoding="utf-8")
    except FileNotFoundError:
        return [default_policy(default_ttl)]
    except (OSError, UnicodeDecodeError) as exc:
        raise PolicyError(f"failed to read policies file {source}: {exc}") from exc

    try:
        return parse_policies(text.splitlines(), default_ttl)
    except PolicyError as exc:
        raise PolicyError(f"{source}: {exc}") from exc


class PolicyMatcher:
    """Resolve URLs to TTLs against an ordered policy list.

    Resolution is a linear scan; the first policy whose pattern occurs in the
    URL wins. Lists built by :func:`parse_policies` or :func:`load_policies`
    always end with a catch-all, so :meth:`resolve_ttl` always finds a match.
    For a hand-built list without one, an unmatched URL resolves to zero
    (not cached).

    Args:
        policies: Ordered policies. The sequence is copied.

    Example::

        matcher = PolicyMatcher(parse_policies([r".*\\.example\\.com=5m"]))
        matcher.resolve_ttl("http://api.example.com/x")  # timedelta(minutes=5)
    """

    def __init__(self, policies: Sequence[CachePolicy]) -> None:
        self._policies = tuple(policies)

    @property
    def policies(self) -> tuple[CachePolicy, ...]:
        """The ordered policies, highest priority first."""
        return self._policies

    def match(self, url: str) -> Optional[CachePolicy]:
        """Return the first policy matching *url*, or ``None``."""
        for policy in self._policies:
            if policy.matches(url):
                return policy
        return None

    def resolve_ttl(self, url: str) -> timedelta:
        """Return the TTL for *url*. Zero means the URL bypasses the cache."""
        policy = self.match(url)
        if policy is None:
            return timedelta(0)
        return policy.ttl

    def __len__(self) -> int:
        return len(self._policies)
