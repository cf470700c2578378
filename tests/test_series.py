from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from monitor.series import (
    build_rows,
    change_summary,
    filter_range,
    filter_window,
    index_by_time,
    parse_time,
    pct_change,
    select_points,
    window_cutoff,
)


def test_parse_time_zulu_suffix():
    assert parse_time("2025-10-30T12:00:00Z") == datetime(2025, 10, 30, 12, tzinfo=timezone.utc)


def test_parse_time_naive_uses_given_zone():
    shanghai = ZoneInfo("Asia/Shanghai")
    parsed = parse_time("2025-10-30 08:00:00", shanghai)
    assert parsed.tzinfo is not None
    assert parsed == datetime(2025, 10, 30, 0, tzinfo=timezone.utc)


def test_parse_time_rejects_garbage():
    with pytest.raises(ValueError):
        parse_time("yesterday")


def test_filter_window_keeps_only_recent_points(make_series, now):
    points = make_series(list(range(30)), end=now)
    kept = filter_window(points, 24, now=now)

    cutoff = window_cutoff(24, now)
    assert len(kept) == 25
    assert all(parse_time(p["time"]) >= cutoff for p in kept)
    assert kept[-1] == points[-1]


def test_filter_window_boundary_is_inclusive(now):
    points = [{"time": (now - timedelta(hours=1)).isoformat(), "value": 1.0}]
    assert filter_window(points, 1, now=now) == points


def test_filter_window_handles_missing_series(now):
    assert filter_window(None, 24, now=now) == []


def test_filter_window_drops_unreadable_times(now):
    points = [{"time": "not a time", "value": 1.0}, {"value": 2.0},
              {"time": now.isoformat(), "value": 3.0}]
    assert [p["value"] for p in filter_window(points, 1, now=now)] == [3.0]


def test_filter_range_whole_days(utc):
    points = [
        {"time": "2025-10-29T23:59:00Z", "value": 1},
        {"time": "2025-10-30T00:00:00Z", "value": 2},
        {"time": "2025-10-30T23:59:59Z", "value": 3},
        {"time": "2025-10-31T00:00:00Z", "value": 4},
    ]
    kept = filter_range(points, date(2025, 10, 30), date(2025, 10, 30), tz=utc)
    assert [p["value"] for p in kept] == [2, 3]


def test_filter_range_open_bounds(utc):
    points = [
        {"time": "2025-10-28T10:00:00Z", "value": 1},
        {"time": "2025-10-30T10:00:00Z", "value": 2},
    ]
    assert [p["value"] for p in filter_range(points, start=date(2025, 10, 29), tz=utc)] == [2]
    assert [p["value"] for p in filter_range(points, end=date(2025, 10, 29), tz=utc)] == [1]


def test_date_range_overrides_quick_range(make_series, now, utc):
    points = make_series(list(range(72)), end=now)
    quick = select_points(points, 1, now=now, tz=utc)
    custom = select_points(points, 1, start=date(2025, 10, 28), end=date(2025, 10, 28), now=now, tz=utc)

    assert len(quick) == 2
    assert len(custom) == 24
    assert all(p["time"].startswith("2025-10-28") for p in custom)


def test_index_by_time_first_point_wins():
    points = [{"time": "a", "value": 1}, {"time": "a", "value": 2}, {"time": "b", "value": 3}]
    assert index_by_time(points) == {"a": 1, "b": 3}
    assert index_by_time(None) == {}


@pytest.mark.parametrize("current,previous,expected", [
    (110.0, 100.0, 10.0),
    (90.0, 100.0, -10.0),
    (100.0, 100.0, 0.0),
    (5.0, 0.0, 0.0),
    (None, 100.0, 0.0),
    (100.0, None, 0.0),
])
def test_pct_change(current, previous, expected):
    assert pct_change(current, previous) == pytest.approx(expected)


def test_pct_change_sign_follows_direction():
    for previous, current in [(1.0, 1.5), (2.0, 0.5), (0.3, 0.31), (50.0, 49.0)]:
        change = pct_change(current, previous)
        assert (change > 0) == (current > previous)
        assert (change < 0) == (current < previous)


def test_change_summary_first_to_last(make_series):
    summary = change_summary(make_series([2.0, 3.0, 2.5]))
    assert summary["value"] == pytest.approx(0.5)
    assert summary["percent"] == pytest.approx(25.0)
    assert summary["current"] == 2.5


def test_change_summary_short_series(make_series):
    assert change_summary([]) == {"value": 0.0, "percent": 0.0, "current": None}
    assert change_summary(make_series([4.0])) == {"value": 0.0, "percent": 0.0, "current": 4.0}


def test_build_rows_newest_first_with_changes(make_series):
    prices = make_series([1.0, 2.0, 1.5])
    coin = {
        "price": prices,
        "open_interest_aggregated": make_series([100.0, 200.0, 200.0]),
        "long_short_ratio": make_series([1.0, 1.1, 0.9]),
    }
    rows = build_rows(coin, prices)

    assert [r["time"] for r in rows] == [p["time"] for p in reversed(prices)]
    newest, middle, oldest = rows
    assert newest["price_change"] == pytest.approx(-25.0)
    assert middle["price_change"] == pytest.approx(100.0)
    assert oldest["price_change"] == 0.0
    assert middle["open_interest_change"] == pytest.approx(100.0)
    assert newest["open_interest_change"] == 0.0
    assert newest["long_short_change"] < 0
    # series absent from the coin
    assert newest["top_account"] is None
    assert newest["top_account_change"] == 0.0


def test_build_rows_metric_gap_gives_zero_change(make_series):
    prices = make_series([1.0, 2.0, 3.0])
    oi = make_series([100.0, 200.0, 300.0])
    del oi[1]
    rows = build_rows({"price": prices, "open_interest_aggregated": oi}, prices)

    assert rows[0]["open_interest"] == 300.0
    assert rows[0]["open_interest_change"] == 0.0
    assert rows[1]["open_interest"] is None


def test_change_summary_null_endpoint(make_series):
    points = make_series([2.0, 3.0, None])
    assert change_summary(points) == {"value": 0.0, "percent": 0.0, "current": None}

    points = make_series([2.0, 3.0])
    del points[0]["value"]
    assert change_summary(points) == {"value": 0.0, "percent": 0.0, "current": 3.0}


def test_build_rows_tolerates_null_price(make_series):
    prices = make_series([1.0, 2.0, None])
    del prices[0]["value"]
    rows = build_rows({"price": prices}, prices)

    assert rows[0]["price"] is None
    assert rows[0]["price_change"] == 0.0
    assert rows[1]["price_change"] == 0.0
    assert rows[2]["price"] is None
