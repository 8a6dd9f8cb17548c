"""Due-check and interval table tests."""

from datetime import datetime, timedelta, timezone

import pytest

from src.monitor.due import INTERVALS, interval_duration, is_due

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_interval_table():
    assert interval_duration("12h") == timedelta(hours=12)
    assert interval_duration("1d") == timedelta(hours=24)
    assert interval_duration("1w") == timedelta(hours=168)


@pytest.mark.parametrize("code", ["", "2d", "weekly", "1m"])
def test_unknown_interval_behaves_as_one_day(code):
    assert interval_duration(code) == timedelta(hours=24)


@pytest.mark.parametrize("code", ["12h", "1d", "1w", "bogus"])
def test_never_crawled_is_always_due(code):
    assert is_due(NOW, None, code) is True


@pytest.mark.parametrize("code", list(INTERVALS))
def test_due_exactly_at_interval(code):
    last = NOW - INTERVALS[code]
    assert is_due(NOW, last, code) is True


@pytest.mark.parametrize("code", list(INTERVALS))
def test_not_due_just_before_interval(code):
    last = NOW - INTERVALS[code] + timedelta(seconds=1)
    assert is_due(NOW, last, code) is False


def test_unknown_interval_uses_one_day_threshold():
    assert is_due(NOW, NOW - timedelta(hours=23), "nope") is False
    assert is_due(NOW, NOW - timedelta(hours=24), "nope") is True


def test_recently_crawled_site_becomes_due_again():
    last = NOW
    assert is_due(NOW + timedelta(hours=11), last, "12h") is False
    assert is_due(NOW + timedelta(hours=12), last, "12h") is True
    # stays due until it is crawled
    assert is_due(NOW + timedelta(hours=13), last, "12h") is True
