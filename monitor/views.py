"""
Dashboard view composition.

Turns the raw metrics document plus the user's selection (coin, quick time
range or custom dates, table page) into the JSON the page renders.
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from monitor import config
from monitor.exceptions import DataUnavailableError, InvalidQueryError
from monitor.formatting import (
    axis_label,
    direction,
    format_change,
    format_millions,
    format_oi_axis,
    format_open_interest,
    format_price,
    format_ratio,
    format_row_price,
    format_row_time,
    format_signed_amount,
    format_signed_percent,
)
from monitor.series import (
    build_rows,
    change_summary,
    display_tz,
    index_by_time,
    parse_time,
    select_points,
)

logger = logging.getLogger(__name__)

# table cell key -> formatter, in column order
TABLE_COLUMNS = (
    ("price", format_row_price),
    ("open_interest", format_millions),
    ("long_short", format_ratio),
    ("top_account", format_ratio),
    ("top_position", format_ratio),
)


def validate_document(document):
    """Check the top-level shape of the metrics document and return it."""
    if not isinstance(document, dict):
        raise DataUnavailableError("document is not a JSON object")
    if not isinstance(document.get("symbols"), list):
        raise DataUnavailableError("document has no 'symbols' list")
    if not isinstance(document.get("data"), dict):
        raise DataUnavailableError("document has no 'data' mapping")
    return document


# ---------------------------------------------------------------------------
# Query resolution
# ---------------------------------------------------------------------------
def resolve_coin(document, coin=None):
    symbols = document.get("symbols") or []
    if coin and coin in symbols:
        return coin
    if config.DEFAULT_COIN in symbols:
        return config.DEFAULT_COIN
    return symbols[0] if symbols else None


def resolve_hours(hours=None):
    if hours is None or hours == "":
        return config.DEFAULT_HOURS
    try:
        hours = int(hours)
    except (TypeError, ValueError):
        raise InvalidQueryError(f"hours must be one of {config.TIME_RANGES}") from None
    if hours not in config.TIME_RANGES:
        raise InvalidQueryError(f"hours must be one of {config.TIME_RANGES}")
    return hours


def parse_date(text) -> Optional[date]:
    if text is None or text == "":
        return None
    if isinstance(text, date):
        return text
    try:
        return date.fromisoformat(str(text))
    except ValueError:
        raise InvalidQueryError(f"invalid date: {text!r} (expected YYYY-MM-DD)") from None


def paginate(rows: List[Any], page=1, per_page=config.PAGE_SIZE) -> Dict[str, Any]:
    """Slice one page out of ``rows``; out-of-range pages are clamped."""
    per_page = max(1, min(int(per_page or config.PAGE_SIZE), config.MAX_PAGE_SIZE))
    total = len(rows)
    total_pages = (total + per_page - 1) // per_page
    page = max(1, min(int(page or 1), max(total_pages, 1)))
    start = (page - 1) * per_page
    return {
        "rows": rows[start:start + per_page],
        "page": page,
        "per_page": per_page,
        "total": total,
        "total_pages": total_pages,
    }


# ---------------------------------------------------------------------------
# Panels
# ---------------------------------------------------------------------------
def _describe_change(summary):
    percent = summary["percent"]
    return {
        **summary,
        "direction": direction(percent),
        "text": format_change(percent),
        "percent_text": format_signed_percent(percent),
    }


def _axis(points, tz):
    return [axis_label(parse_time(p["time"], tz), tz) for p in points]


def coin_icon(symbol):
    if not config.ICON_URL or not symbol:
        return None
    return config.ICON_URL.format(symbol=symbol.lower())


def oi_axis(values, ticks=5):
    """Fixed open-interest axis: bounds, step and pre-formatted tick labels."""
    values = [v for v in values if v is not None]
    if not values:
        return {"min": None, "max": None, "interval": None, "ticks": []}
    lo, hi = min(values), max(values)
    if lo == hi:
        pad = abs(lo) * 0.05 or 1.0
        lo, hi = max(lo - pad, 0.0), hi + pad
    interval = (hi - lo) / (ticks - 1)
    marks = [lo + i * interval for i in range(ticks)]
    return {
        "min": lo,
        "max": hi,
        "interval": interval,
        "ticks": [{"value": v, "text": format_oi_axis(v)} for v in marks],
    }


def price_panel(price_points, oi_points, tz=None):
    """Headline price, change over the window and the price/OI chart series."""
    tz = tz or display_tz()
    summary = change_summary(price_points)
    latest = summary["current"] if summary["current"] is not None else 0.0
    oi_index = index_by_time(oi_points)
    prices = [p.get("value") for p in price_points]
    open_interest = [oi_index.get(p["time"]) for p in price_points]
    return {
        "latest": latest,
        "latest_text": format_price(latest),
        "change": {
            **_describe_change(summary),
            "value_text": format_signed_amount(summary["value"]),
        },
        "series": {
            "labels": [p["time"] for p in price_points],
            "axis_labels": _axis(price_points, tz),
            "price": prices,
            "price_text": [format_price(v) for v in prices],
            "open_interest": open_interest,
            "open_interest_text": [format_open_interest(v) for v in open_interest],
            "open_interest_axis": oi_axis(open_interest),
        },
    }


def ratio_panel(filtered: Dict[str, list], tz=None):
    """One card per ratio metric plus chart series on the long/short timeline."""
    tz = tz or display_tz()
    cards = []
    for metric, title in config.RATIO_METRICS:
        summary = change_summary(filtered.get(metric) or [])
        cards.append({
            "metric": metric,
            "title": title,
            "current_text": format_ratio(summary["current"]),
            "change": _describe_change(summary),
        })

    timeline = filtered.get("long_short_ratio") or []
    series = {
        "labels": [p["time"] for p in timeline],
        "axis_labels": _axis(timeline, tz),
    }
    for metric, _title in config.RATIO_METRICS:
        index = index_by_time(filtered.get(metric))
        series[metric] = [index.get(p["time"]) for p in timeline]
    return {"cards": cards, "series": series}


def format_row(row, tz=None):
    tz = tz or display_tz()
    cells = []
    for key, fmt in TABLE_COLUMNS:
        change = row[f"{key}_change"]
        cells.append({
            "key": key,
            "value": row[key],
            "text": fmt(row[key]),
            "change": change,
            "change_text": format_change(change),
            "direction": direction(change),
        })
    return {
        "time": row["time"],
        "time_text": format_row_time(parse_time(row["time"], tz), tz),
        "cells": cells,
    }


# ---------------------------------------------------------------------------
# Full dashboard
# ---------------------------------------------------------------------------
def build_dashboard(document, coin=None, hours=None, start=None, end=None, page=1,
                    per_page=config.PAGE_SIZE, now: Optional[datetime] = None, tz=None):
    validate_document(document)
    tz = tz or display_tz()
    hours = resolve_hours(hours)
    start_date = parse_date(start)
    end_date = parse_date(end)
    if start_date and end_date and start_date > end_date:
        raise InvalidQueryError("start date is after end date")

    selected = resolve_coin(document, coin)
    if coin and coin != selected:
        logger.debug("Coin %s not in document, showing %s", coin, selected)
    coin_data = (document["data"].get(selected) if selected else None) or {}

    filtered = {
        metric: select_points(coin_data.get(metric), hours, start_date, end_date, now, tz)
        for metric in config.METRICS
    }

    table = paginate(build_rows(coin_data, filtered["price"]), page, per_page)
    table["rows"] = [format_row(r, tz) for r in table["rows"]]

    return {
        "coin": selected,
        "symbols": [
            {"symbol": s, "icon": coin_icon(s), "selected": s == selected}
            for s in document["symbols"]
        ],
        "last_updated": document.get("last_updated"),
        "range": {
            "hours": hours,
            "start": start_date.isoformat() if start_date else None,
            "end": end_date.isoformat() if end_date else None,
            "custom": start_date is not None or end_date is not None,
        },
        "poll_interval": config.POLL_INTERVAL,
        "price": price_panel(filtered["price"], filtered["open_interest_aggregated"], tz),
        "ratios": ratio_panel(filtered, tz),
        "table": table,
    }
