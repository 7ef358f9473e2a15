"""Canonical Pydantic models shared across all fetchcache modules.

This is the single source of truth for data shapes in the project. The models
fall into two groups:

**Cache models** -- the policy list and the persisted entry format:
    :class:`CachePolicy` and :class:`CacheEntry`.

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`CacheConfig`, :class:`RequestConfig`, :class:`OutputConfig`, and
    :class:`GlobalConfig`.

All models use Pydantic v2. :class:`CacheEntry` is written to the store as
JSON with its body base64-encoded, and tolerates entries written before the
``fetched_at`` and ``final_url`` fields existed.
"""

from __future__ import annotations

import base64
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from fetchcache import __version__


# --- Cache models ---


class CachePolicy(BaseModel):
    """A single ``pattern=duration`` rule.

    Policies are kept in an ordered list where the first pattern that matches
    a URL decides its TTL. A TTL of zero is valid and means "do not cache".

    Example::

        CachePolicy(pattern=re.compile(r"\\.example\\.com"), ttl=timedelta(minutes=5))
    """

    model_config = ConfigDict(frozen=True)

    pattern: re.Pattern[str] = Field(description="Regex searched anywhere in the URL")
    ttl: timedelta = Field(ge=timedelta(0), description="Freshness window for matching URLs")

    def matches(self, url: str) -> bool:
        """Return ``True`` if :attr:`pattern` occurs anywhere in *url*."""
        return self.pattern.search(url) is not None


class CacheEntry(BaseModel):
    """A cached response body together with its provenance.

    Attributes:
        data: The raw response body.
        url: The URL that was requested. Policies are matched against it.
        final_url: The URL after redirects, or ``""`` for legacy entries.
        fetched_at: When the body was fetched. ``None`` for legacy entries,
            which fall back to :attr:`expires_at`.
        expires_at: Absolute expiry computed at write time from the TTL then
            in effect.
    """

    data: bytes = b""
    url: str
    final_url: str = ""
    fetched_at: Optional[datetime] = None
    expires_at: datetime

    @field_validator("data", mode="before")
    @classmethod
    def _decode_data(cls, value: Any) -> Any:
        if value is None:
            return b""
        if isinstance(value, str):
            return base64.b64decode(value, validate=True)
        return value

    @field_validator("fetched_at", "expires_at")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_serializer("data", when_used="json")
    def _encode_data(self, value: bytes) -> str:
        return base64.b64encode(value).decode("ascii")

    def to_bytes(self) -> bytes:
        """Serialise the entry to the JSON bytes kept in the store."""
        return self.model_dump_json().encode("utf-8")

    @classmethod
    def from_bytes(cls, raw: bytes) -> CacheEntry:
        """Decode an entry previously produced by :meth:`to_bytes`.

        Raises:
            pydantic.ValidationError: If *raw* is not a valid entry.
        """
        return cls.model_validate_json(raw)


# --- Configuration models ---


class CacheConfig(BaseModel):
    """Cache location and policy settings stored in :class:`GlobalConfig`."""

    directory: Optional[str] = Field(
        default=None, description="Cache root (entries live in <directory>/data)"
    )
    policies_file: Optional[str] = Field(
        default=None, description="Path to the pattern=duration policy file"
    )
    default_ttl_seconds: int = Field(
        default=600, ge=0, description="TTL of the catch-all policy in seconds"
    )


class RequestConfig(BaseModel):
    """HTTP transport settings applied to every outbound fetch."""

    timeout: float = Field(default=30, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    max_retries: int = Field(
        default=0, ge=0, description="Retry attempts on connection errors"
    )
    user_agent: str = Field(
        default=f"fetchcache/{__version__}", description="User-Agent header"
    )
    raise_for_status: bool = Field(
        default=False, description="Treat HTTP 4xx/5xx responses as fetch errors"
    )


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/fetchcache/config.json``.

    Loaded and saved by :func:`~fetchcache.config.load_global_config` and
    :func:`~fetchcache.config.save_global_config`. Fields here have the
    lowest precedence and can be overridden by environment variables or CLI
    flags. See :func:`~fetchcache.config.resolve_config` for the full chain.
    """

    cache: CacheConfig = Field(default_factory=CacheConfig)
    request: RequestConfig = Field(default_factory=RequestConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
