"""
Shared pytest fixtures: metrics documents built around a fixed clock.
"""

from datetime import datetime, timedelta, timezone

import pytest

NOW = datetime(2025, 10, 30, 12, 0, tzinfo=timezone.utc)


def iso(dt):
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def series(values, end=NOW, step_minutes=60):
    """Points ending at ``end`` spaced ``step_minutes`` apart, oldest first."""
    count = len(values)
    return [
        {"time": iso(end - timedelta(minutes=step_minutes * (count - 1 - i))), "value": v}
        for i, v in enumerate(values)
    ]


def coin_data(count=30, end=NOW, step_minutes=60):
    return {
        "price": series([0.5 + i * 0.01 for i in range(count)], end, step_minutes),
        "open_interest_aggregated": series([1_000_000 + i * 10_000 for i in range(count)], end, step_minutes),
        "long_short_ratio": series([1.2 + (i % 2) * 0.1 for i in range(count)], end, step_minutes),
        "top_account_ratio": series([2.0 - i * 0.01 for i in range(count)], end, step_minutes),
        "top_position_ratio": series([1.5 for _ in range(count)], end, step_minutes),
    }


def build_document(end=NOW, count=30, step_minutes=60):
    return {
        "symbols": ["TAG", "SOLV", "PLAY"],
        "last_updated": end.strftime("%Y-%m-%d %H:%M:%S"),
        "data": {
            "TAG": coin_data(count, end, step_minutes),
            "SOLV": {"price": series([10.0, 9.0, 8.0], end, step_minutes)},
            "PLAY": {},
        },
    }


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def document():
    return build_document()


@pytest.fixture
def live_document():
    """A document whose newest point is half an hour old, clear of window edges."""
    end = datetime.now(timezone.utc).replace(second=0, microsecond=0) - timedelta(minutes=30)
    return build_document(end=end)


@pytest.fixture
def utc():
    return timezone.utc


@pytest.fixture
def make_series():
    return series
