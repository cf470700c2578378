"""
Remote metrics document: fetching, the in-process cache and the poller.

The cache is replaced wholesale on every successful refresh. A failed
refresh keeps the last good document and records the error.
"""

import logging
import random
import threading
import time
from datetime import datetime

import requests

from monitor import config
from monitor.exceptions import DataUnavailableError
from monitor.views import validate_document

logger = logging.getLogger(__name__)

# ts: last good refresh, checked: last attempt (good or not)
_cache = {"data": None, "ts": 0.0, "checked": 0.0, "error": None}
_lock = threading.Lock()
_stop = threading.Event()
_poller = None


def _get_json(url, params=None, headers=None, timeout=None):
    try:
        r = requests.get(url, params=params, headers=headers,
                         timeout=timeout or config.REQUEST_TIMEOUT)
        r.raise_for_status()
        return r.json()
    except requests.RequestException as e:
        raise DataUnavailableError(f"request to {url} failed: {e}") from e
    except ValueError as e:
        raise DataUnavailableError(f"response from {url} is not JSON") from e


def fetch_document(url=None, timeout=None):
    """GET the metrics document, bypassing any CDN cache in between."""
    url = url or config.DATA_URL
    params = {"t": int(time.time() * 1000), "_": random.random()}
    document = _get_json(url, params=params, headers=config.NO_CACHE_HEADERS, timeout=timeout)
    return validate_document(document)


def proxy_fetch(url=None, timeout=None):
    """Fetch the gist copy as-is for the pass-through endpoint."""
    return _get_json(url or config.PROXY_URL, headers={"Cache-Control": "no-cache"}, timeout=timeout)


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------
def update_cache(url=None):
    """Refresh the cached document. Returns True when the refresh succeeded."""
    try:
        document = fetch_document(url)
    except DataUnavailableError as e:
        logger.warning("Data refresh failed: %s", e)
        with _lock:
            _cache["error"] = str(e)
            _cache["checked"] = time.time()
        return False

    with _lock:
        _cache["data"] = document
        _cache["ts"] = _cache["checked"] = time.time()
        _cache["error"] = None
    logger.info("Cache updated: %d symbols, last_updated=%s",
                len(document["symbols"]), document.get("last_updated"))
    return True


def get_document(max_age=None):
    """Return the cached document, refreshing it when older than ``max_age``.

    At most one refresh is attempted per ``max_age``, failed or not; during an
    outage requests get the last good document (or the error) without waiting
    on the remote.
    """
    max_age = config.POLL_INTERVAL if max_age is None else max_age
    now = time.time()
    with _lock:
        stale = now - _cache["checked"] > max_age
        if stale:
            _cache["checked"] = now
    if stale:
        update_cache()
    with _lock:
        document, error = _cache["data"], _cache["error"]
    if document is None:
        raise DataUnavailableError(error or "no data loaded yet")
    return document


def cache_status():
    with _lock:
        document, ts, error = _cache["data"], _cache["ts"], _cache["error"]
    return {
        "cache_age": time.time() - ts if ts > 0 else None,
        "cached_symbols": len(document["symbols"]) if document else 0,
        "last_updated": document.get("last_updated") if document else None,
        "last_refresh": datetime.fromtimestamp(ts).isoformat() if ts > 0 else None,
        "last_error": error,
    }


def reset_cache():
    with _lock:
        _cache.update({"data": None, "ts": 0.0, "checked": 0.0, "error": None})


# ---------------------------------------------------------------------------
# Poller
# ---------------------------------------------------------------------------
def _poll_loop(interval):
    while not _stop.wait(interval):
        update_cache()


def start_poller(interval=None):
    """Start the background refresh thread (once per process)."""
    global _poller
    if _poller is not None and _poller.is_alive():
        return _poller
    interval = interval or config.POLL_INTERVAL
    _stop.clear()
    _poller = threading.Thread(target=_poll_loop, args=(interval,), name="monitor-poller", daemon=True)
    _poller.start()
    logger.info("Poller started, refresh every %ss", interval)
    return _poller


def stop_poller(timeout=5):
    global _poller
    _stop.set()
    if _poller is not None:
        _poller.join(timeout)
        _poller = None
