"""Tests for first-match-wins TTL resolution."""

from __future__ import annotations

import re
from datetime import timedelta

import pytest

from fetchcache.models import CachePolicy
from fetchcache.policy import DEFAULT_TTL, PolicyMatcher, parse_policies


@pytest.fixture()
def matcher() -> PolicyMatcher:
    return PolicyMatcher(parse_policies([
        r".*\.example\.com=5m",
        r".*\.test\.com=1s",
        r".*=10m",
    ]))


class TestResolveTTL:
    def test_example_domain(self, matcher: PolicyMatcher) -> None:
        assert matcher.resolve_ttl("http://api.example.com/x") == timedelta(minutes=5)

    def test_test_domain(self, matcher: PolicyMatcher) -> None:
        assert matcher.resolve_ttl("http://api.test.com/x") == timedelta(seconds=1)

    def test_other_domain(self, matcher: PolicyMatcher) -> None:
        assert matcher.resolve_ttl("http://other.com/x") == timedelta(minutes=10)

    @pytest.mark.parametrize("url", ["", "not a url", "ftp://x", "http://[::1]/"])
    def test_always_resolves(self, url: str) -> None:
        only_default = PolicyMatcher(parse_policies([]))
        assert only_default.resolve_ttl(url) == DEFAULT_TTL

    def test_first_match_wins(self) -> None:
        m = PolicyMatcher(parse_policies(["example=1m", r"api\.example=2m"]))
        assert m.resolve_ttl("http://api.example.com/") == timedelta(minutes=1)

    def test_explicit_policy_beats_catch_all(self) -> None:
        m = PolicyMatcher(parse_policies(["example=1h"], default_ttl=timedelta(seconds=1)))
        assert m.resolve_ttl("http://example.com/") == timedelta(hours=1)
        assert m.resolve_ttl("http://other.com/") == timedelta(seconds=1)

    def test_substring_match(self) -> None:
        m = PolicyMatcher(parse_policies(["/feeds/=1h"]))
        assert m.resolve_ttl("https://site.org/feeds/rss.xml") == timedelta(hours=1)

    def test_anchored_pattern(self) -> None:
        m = PolicyMatcher(parse_policies(["^https://static=1d"]))
        assert m.resolve_ttl("https://static.site.org/a.css") == timedelta(days=1)
        assert m.resolve_ttl("http://site.org/?u=https://static") == DEFAULT_TTL

    def test_zero_ttl_policy(self) -> None:
        m = PolicyMatcher(parse_policies(["/live/=0"]))
        assert m.resolve_ttl("https://site.org/live/score") == timedelta(0)

    def test_unmatched_without_catch_all_is_not_cached(self) -> None:
        m = PolicyMatcher([CachePolicy(pattern=re.compile("only"), ttl=timedelta(minutes=1))])
        assert m.resolve_ttl("http://elsewhere/") == timedelta(0)


class TestMatch:
    def test_returns_winning_policy(self, matcher: PolicyMatcher) -> None:
        policy = matcher.match("http://api.test.com/x")
        assert policy is not None
        assert policy.pattern.pattern == r".*\.test\.com"

    def test_returns_none_without_match(self) -> None:
        m = PolicyMatcher([])
        assert m.match("http://x/") is None

    def test_policies_are_ordered_and_copied(self) -> None:
        source = parse_policies(["a=1m"])
        m = PolicyMatcher(source)
        source.clear()
        assert len(m) == 2
        assert m.policies[0].pattern.pattern == "a"
