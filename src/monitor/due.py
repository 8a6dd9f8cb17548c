"""Crawl interval table and the per-site due check."""

from __future__ import annotations

from datetime import datetime, timedelta

DEFAULT_INTERVAL = "1d"

INTERVALS: dict[str, timedelta] = {
    "12h": timedelta(hours=12),
    "1d": timedelta(hours=24),
    "1w": timedelta(hours=168),
}


def interval_duration(interval: str) -> timedelta:
    """Map an interval code to its duration; unknown codes behave as ``1d``."""
    return INTERVALS.get(interval, INTERVALS[DEFAULT_INTERVAL])


def is_due(now: datetime, last_crawled_at: datetime | None, interval: str) -> bool:
    """A site is due once ``interval`` has fully elapsed since its last crawl.

    Never-crawled sites are always due.
    """
    if last_crawled_at is None:
        return True
    return now - last_crawled_at >= interval_duration(interval)
