"""
Vercel Serverless Function - Crypto Monitor API
Serves both the frontend HTML and API endpoints.
Uses in-memory TTL cache (persists across warm invocations).
"""

import json
import logging
import os
import random
import sys
import time
from datetime import datetime
from http.server import BaseHTTPRequestHandler
from urllib.parse import urlencode, urlparse, parse_qs

# ---------------------------------------------------------------------------
# Plain GETs only, so urllib covers them and the function bundle stays lean.
# The monitor package pulls in python-dotenv, not requests.
# ---------------------------------------------------------------------------
from urllib.request import urlopen, Request
from urllib.error import URLError

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from monitor import config  # noqa: E402
from monitor.exceptions import DataUnavailableError, InvalidQueryError  # noqa: E402
from monitor.views import build_dashboard, validate_document  # noqa: E402

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# In-memory TTL cache (survives across warm invocations on Vercel)
# ---------------------------------------------------------------------------
# ts: last good refresh, checked: last attempt (good or not)
_cache = {"data": None, "ts": 0, "checked": 0, "error": None}
CACHE_TTL = config.POLL_INTERVAL


def _get_json(url, params=None, headers=None):
    """GET a JSON document using stdlib urllib."""
    if params:
        url = f"{url}?{urlencode(params)}"
    req = Request(url, headers=headers or {})
    try:
        with urlopen(req, timeout=config.REQUEST_TIMEOUT) as resp:
            return json.loads(resp.read())
    except (URLError, OSError) as e:
        raise DataUnavailableError(f"request to {url} failed: {e}") from e
    except ValueError as e:
        raise DataUnavailableError(f"response from {url} is not JSON") from e


def fetch_document():
    """Fetch the metrics document, served from cache while fresh.

    One upstream attempt per ``CACHE_TTL``, failed or not.
    """
    now = time.time()
    if now - _cache["checked"] < CACHE_TTL:
        if _cache["data"]:
            return _cache["data"]
        raise DataUnavailableError(_cache["error"] or "no data loaded yet")

    _cache["checked"] = now
    params = {"t": int(now * 1000), "_": random.random()}
    try:
        document = validate_document(_get_json(config.DATA_URL, params, config.NO_CACHE_HEADERS))
    except DataUnavailableError as e:
        _cache["error"] = str(e)
        # Stale beats nothing on a cold CDN
        if _cache["data"]:
            logger.warning("Refresh failed, serving cached document: %s", e)
            return _cache["data"]
        raise

    _cache["data"] = document
    _cache["ts"] = time.time()
    _cache["error"] = None
    return document


# ---------------------------------------------------------------------------
# Read the HTML template once at module level (cold start)
# ---------------------------------------------------------------------------
_html_template = None


def get_html():
    global _html_template
    if _html_template is None:
        # Try multiple paths (local dev vs Vercel)
        for path in ["templates/index.html", "api/../templates/index.html",
                     os.path.join(os.path.dirname(__file__), "..", "templates", "index.html")]:
            try:
                with open(path, "r", encoding="utf-8") as f:
                    _html_template = f.read()
                    break
            except FileNotFoundError:
                continue
        if _html_template is None:
            _html_template = "<h1>Template not found</h1>"
    return _html_template


def _arg(qs, name, default=None):
    values = qs.get(name)
    return values[0] if values else default


def _int_arg(qs, name, default):
    try:
        return int(_arg(qs, name, default))
    except (TypeError, ValueError):
        return default


# ---------------------------------------------------------------------------
# Vercel handler
# ---------------------------------------------------------------------------
class handler(BaseHTTPRequestHandler):
    def do_GET(self):
        parsed = urlparse(self.path)
        path = parsed.path.rstrip("/") or "/"
        qs = parse_qs(parsed.query)

        try:
            if path == "/api/data":
                self._handle_data()
            elif path == "/api/view":
                self._handle_view(qs)
            elif path == "/api/symbols":
                self._handle_symbols()
            elif path == "/api/status":
                self._handle_status()
            else:
                # Serve HTML
                self._respond(200, get_html(), content_type="text/html; charset=utf-8")
        except InvalidQueryError as e:
            self._json_response({"error": str(e)}, status=400)
        except DataUnavailableError as e:
            logger.error("Dashboard data unavailable: %s", e)
            self._json_response({"error": config.ERROR_MESSAGE}, status=503, no_cache=True)

    def _handle_data(self):
        try:
            payload = _get_json(config.PROXY_URL, headers={"Cache-Control": "no-cache"})
        except DataUnavailableError as e:
            logger.error("Failed to fetch data: %s", e)
            self._json_response({"error": config.PROXY_ERROR_MESSAGE}, status=500)
            return
        self._json_response(payload, no_cache=True)

    def _handle_view(self, qs):
        view = build_dashboard(
            fetch_document(),
            coin=_arg(qs, "coin"),
            hours=_arg(qs, "hours"),
            start=_arg(qs, "start"),
            end=_arg(qs, "end"),
            page=_int_arg(qs, "page", 1),
            per_page=_int_arg(qs, "per_page", config.PAGE_SIZE),
        )
        self._json_response(view, no_cache=True)

    def _handle_symbols(self):
        document = fetch_document()
        self._json_response({
            "symbols": document["symbols"],
            "default": config.DEFAULT_COIN,
            "last_updated": document.get("last_updated"),
        })

    def _handle_status(self):
        document = _cache["data"]
        self._json_response({
            "status": "online", "source": config.DATA_URL,
            "poll_interval": config.POLL_INTERVAL,
            "cache_age": time.time() - _cache["ts"] if _cache["ts"] else None,
            "cached_symbols": len(document["symbols"]) if document else 0,
            "last_updated": document.get("last_updated") if document else None,
            "last_refresh": datetime.fromtimestamp(_cache["ts"]).isoformat() if _cache["ts"] else None,
            "last_error": _cache["error"],
        })

    def _json_response(self, data, status=200, no_cache=False):
        headers = config.NO_CACHE_HEADERS if no_cache else None
        self._respond(status, json.dumps(data, ensure_ascii=False),
                      content_type="application/json; charset=utf-8", headers=headers)

    def _respond(self, status, body, content_type="text/plain", headers=None):
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Access-Control-Allow-Origin", "*")
        for name, value in (headers or {}).items():
            self.send_header(name, value)
        self.end_headers()
        self.wfile.write(body.encode() if isinstance(body, str) else body)
