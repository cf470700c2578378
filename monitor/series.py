"""
Time-series helpers for the metrics document.

Every metric is a list of ``{"time": str, "value": float}`` points. Series for
the same coin are joined on the exact time string, the same way the data
producer writes them.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Dict, Iterable, Iterator, List, Optional, Tuple
from zoneinfo import ZoneInfo

from monitor import config

logger = logging.getLogger(__name__)

Point = Dict[str, object]

# table row key -> metric name, in display order after price
ROW_METRICS = (
    ("open_interest", "open_interest_aggregated"),
    ("long_short", "long_short_ratio"),
    ("top_account", "top_account_ratio"),
    ("top_position", "top_position_ratio"),
)


def display_tz(name: Optional[str] = None) -> tzinfo:
    return ZoneInfo(name or config.DISPLAY_TIMEZONE)


def parse_time(value, tz: Optional[tzinfo] = None) -> datetime:
    """Parse an ISO-8601 timestamp into an aware datetime.

    Naive timestamps are read in ``tz`` (the display timezone by default).
    Raises ValueError when the value is not a timestamp.
    """
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=tz or display_tz())
    return dt


def _now(now: Optional[datetime] = None) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def _timed(points: Optional[Iterable[Point]], tz: Optional[tzinfo]) -> Iterator[Tuple[Point, datetime]]:
    for point in points or []:
        try:
            yield point, parse_time(point["time"], tz)
        except (KeyError, TypeError, ValueError):
            logger.debug("Skipping point with unreadable time: %r", point)


def window_cutoff(hours: float, now: Optional[datetime] = None) -> datetime:
    return _now(now) - timedelta(hours=hours)


def filter_window(points, hours: float, now: Optional[datetime] = None,
                  tz: Optional[tzinfo] = None) -> List[Point]:
    """Keep the points no older than ``hours`` before ``now`` (inclusive)."""
    cutoff = window_cutoff(hours, now)
    return [p for p, ts in _timed(points, tz) if ts >= cutoff]


def filter_range(points, start: Optional[date] = None, end: Optional[date] = None,
                 tz: Optional[tzinfo] = None) -> List[Point]:
    """Keep the points between the start of ``start`` and the end of ``end``.

    Both bounds are calendar days in the display timezone and both are
    inclusive. A missing bound leaves that side open.
    """
    tz = tz or display_tz()
    lower = datetime.combine(start, time.min, tzinfo=tz) if start else None
    upper = datetime.combine(end + timedelta(days=1), time.min, tzinfo=tz) if end else None
    kept = []
    for point, ts in _timed(points, tz):
        if lower is not None and ts < lower:
            continue
        if upper is not None and ts >= upper:
            continue
        kept.append(point)
    return kept


def select_points(points, hours: float, start: Optional[date] = None, end: Optional[date] = None,
                  now: Optional[datetime] = None, tz: Optional[tzinfo] = None) -> List[Point]:
    """Apply the active filter: a custom date range wins over the quick range."""
    if start is not None or end is not None:
        return filter_range(points, start, end, tz)
    return filter_window(points, hours, now, tz)


def index_by_time(points) -> Dict[str, float]:
    """Map time string -> value; the first point wins on duplicate times."""
    index: Dict[str, float] = {}
    for point in points or []:
        t = point.get("time")
        if t is not None and t not in index:
            index[t] = point.get("value")
    return index


def pct_change(current: Optional[float], previous: Optional[float]) -> float:
    """Percentage change from ``previous`` to ``current``; 0.0 when undefined."""
    if current is None or previous is None or previous == 0:
        return 0.0
    return (current - previous) / previous * 100


def change_summary(points: List[Point]) -> Dict[str, Optional[float]]:
    """First-to-last change over a filtered series.

    A missing or null value at either end makes the change 0.
    """
    if not points:
        return {"value": 0.0, "percent": 0.0, "current": None}
    last = points[-1].get("value")
    first = points[0].get("value")
    if len(points) < 2 or last is None or first is None:
        return {"value": 0.0, "percent": 0.0, "current": last}
    return {"value": last - first, "percent": pct_change(last, first), "current": last}


def build_rows(coin_data: Dict[str, list], price_points: List[Point]) -> List[Dict[str, object]]:
    """Join all metrics onto the price timestamps, newest row first.

    Each metric carries its change against the row before it (by price
    order). A metric change is 0 when either side of the pair is missing.
    """
    indexes = {key: index_by_time(coin_data.get(metric)) for key, metric in ROW_METRICS}
    rows = []
    prev = None
    for point in price_points:
        t = point["time"]
        price = point.get("value")
        row = {
            "time": t,
            "price": price,
            "price_change": pct_change(price, prev.get("value")) if prev else 0.0,
        }
        for key, _metric in ROW_METRICS:
            current = indexes[key].get(t)
            previous = indexes[key].get(prev["time"]) if prev else None
            row[key] = current
            row[f"{key}_change"] = pct_change(current, previous)
        rows.append(row)
        prev = point
    rows.reverse()
    return rows
