"""Tests for duration parsing and formatting."""

from __future__ import annotations

from datetime import timedelta

import pytest

from fetchcache.exceptions import PolicyError
from fetchcache.policy import MAX_DURATION, format_duration, parse_duration


class TestParseDuration:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("30s", timedelta(seconds=30)),
            ("5m", timedelta(minutes=5)),
            ("2h", timedelta(hours=2)),
            ("1d", timedelta(days=1)),
            ("1h30m", timedelta(hours=1, minutes=30)),
            ("1d12h", timedelta(days=1, hours=12)),
            ("1.5h", timedelta(minutes=90)),
            ("250ms", timedelta(milliseconds=250)),
            ("1m30s500ms", timedelta(seconds=90, milliseconds=500)),
            ("0", timedelta(0)),
            ("0s", timedelta(0)),
            ("  10m  ", timedelta(minutes=10)),
        ],
    )
    def test_valid(self, text: str, expected: timedelta) -> None:
        assert parse_duration(text) == expected

    @pytest.mark.parametrize(
        "text",
        ["", "   ", "abc", "5", "5x", "-5m", "m", "1h 30m", "5 minutes", "1.h.5", "106752d", "99999999999999d"],
    )
    def test_invalid(self, text: str) -> None:
        with pytest.raises(PolicyError, match="invalid duration"):
            parse_duration(text)

    def test_longest_accepted(self) -> None:
        assert parse_duration("106751d") == timedelta(days=106751)
        assert parse_duration("106751d") < MAX_DURATION


class TestFormatDuration:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (timedelta(0), "0s"),
            (timedelta(seconds=1), "1s"),
            (timedelta(minutes=10), "10m"),
            (timedelta(hours=1, minutes=30), "1h30m"),
            (timedelta(days=1, hours=2), "1d2h"),
            (timedelta(milliseconds=250), "250ms"),
            (timedelta(seconds=-90), "-1m30s"),
        ],
    )
    def test_format(self, value: timedelta, expected: str) -> None:
        assert format_duration(value) == expected

    def test_format_parses_back(self) -> None:
        value = timedelta(days=2, hours=3, minutes=4, seconds=5)
        assert parse_duration(format_duration(value)) == value
