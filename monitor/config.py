"""
Runtime configuration.

Values come from the environment (a local .env file is honoured) and fall
back to the hard-coded data source the dashboard was built around.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# ---------------------------------------------------------------------------
# Data sources
# ---------------------------------------------------------------------------
GIST_ID = os.environ.get("MONITOR_GIST_ID", "9ce448847985c295b725dc774130964f")

# Raw file on the data branch; the poller reads this one.
DATA_URL = os.environ.get(
    "MONITOR_DATA_URL",
    "https://raw.githubusercontent.com/lovecloo/crypto-monitor-web/data/public/data.json",
)

# Gist mirror forwarded unchanged by /api/data.
PROXY_URL = os.environ.get(
    "MONITOR_PROXY_URL",
    f"https://gist.githubusercontent.com/lovecloo/{GIST_ID}/raw/data.json",
)

REQUEST_TIMEOUT = float(os.environ.get("MONITOR_REQUEST_TIMEOUT", "10"))
POLL_INTERVAL = int(os.environ.get("MONITOR_POLL_INTERVAL", "30"))  # seconds

# ---------------------------------------------------------------------------
# View defaults
# ---------------------------------------------------------------------------
DEFAULT_COIN = os.environ.get("MONITOR_DEFAULT_COIN", "TAG")
TIME_RANGES = (1, 6, 24)  # hours
DEFAULT_HOURS = int(os.environ.get("MONITOR_DEFAULT_HOURS", "24"))
PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Naive timestamps in the document are read in this zone.
DISPLAY_TIMEZONE = os.environ.get("MONITOR_TIMEZONE", "Asia/Shanghai")

METRICS = (
    "price",
    "open_interest_aggregated",
    "long_short_ratio",
    "top_account_ratio",
    "top_position_ratio",
)

RATIO_METRICS = (
    ("long_short_ratio", "全网多空比"),
    ("top_account_ratio", "大户账户多空比"),
    ("top_position_ratio", "大户持仓多空比"),
)

# Coin icon URL; {symbol} is the lower-cased ticker. Empty disables icons.
ICON_URL = os.environ.get(
    "MONITOR_ICON_URL",
    "https://raw.githubusercontent.com/spothq/cryptocurrency-icons/master/128/color/{symbol}.png",
)

ERROR_MESSAGE = "数据加载失败"
PROXY_ERROR_MESSAGE = "Failed to fetch data"

# ---------------------------------------------------------------------------
# Server / logging
# ---------------------------------------------------------------------------
HOST = os.environ.get("MONITOR_HOST", "0.0.0.0")
PORT = int(os.environ.get("MONITOR_PORT", "5555"))
DEBUG = os.environ.get("MONITOR_DEBUG", "").lower() in {"1", "true", "yes"}

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.environ.get("LOG_FORMAT", "")
LOG_DIR = os.environ.get("LOG_DIR", "logs")

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}
