"""Display formatting for prices, open interest and ratios."""

from datetime import datetime

UP = "▲"
DOWN = "▼"
MISSING = "-"


def price_decimals(value):
    if value < 1:
        return 8
    if value < 10:
        return 5
    return 2


def format_price(value):
    """Headline price: more decimals the smaller the coin."""
    if value is None:
        return MISSING
    return f"${value:.{price_decimals(value)}f}"


def format_row_price(value):
    if value is None:
        return MISSING
    return f"${value:.{8 if value < 1 else 5}f}"


def format_signed_amount(value):
    sign = "+" if value >= 0 else "-"
    return f"{sign}${abs(value):.8f}"


def format_millions(value):
    if value is None:
        return MISSING
    return f"${value / 1_000_000:.2f}M"


def format_open_interest(value):
    if value is None:
        return MISSING
    if value >= 1_000_000:
        return format_millions(value)
    return f"${value:.0f}"


def format_oi_axis(value):
    if value >= 1_000_000:
        return f"${value / 1_000_000:.1f}M"
    return f"${value / 1000:.0f}K"


def format_ratio(value):
    if value is None:
        return MISSING
    return f"{value:.2f}"


def direction(change):
    if change > 0:
        return "up"
    if change < 0:
        return "down"
    return "flat"


def format_change(change):
    """Arrow plus magnitude, e.g. '▲ 1.23%'; empty for no change."""
    if not change:
        return ""
    arrow = UP if change > 0 else DOWN
    return f"{arrow} {abs(change):.2f}%"


def format_signed_percent(change):
    # zero reads as a gain, like the headline arrow
    return f"{'+' if change >= 0 else ''}{change:.2f}%"


def format_row_time(dt: datetime, tz=None):
    if tz is not None:
        dt = dt.astimezone(tz)
    return dt.strftime("%m/%d %H:%M")


def axis_label(dt: datetime, tz=None):
    """'H:MM' on five-minute marks, blank otherwise."""
    if tz is not None:
        dt = dt.astimezone(tz)
    if dt.minute % 5 == 0:
        return f"{dt.hour}:{dt.minute:02d}"
    return ""
