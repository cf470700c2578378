"""
Crypto Monitor - Web Dashboard
Price, open interest and long/short ratios polled from a published data.json
"""

import logging

from flask import Flask, render_template, jsonify, request as flask_request
from flask_cors import CORS

from monitor import config, source
from monitor.exceptions import DataUnavailableError, InvalidQueryError
from monitor.logging_config import log_config, setup_logging
from monitor.views import build_dashboard

app = Flask(__name__)
CORS(app)

logger = logging.getLogger(__name__)


def _no_cache(response):
    response.headers.update(config.NO_CACHE_HEADERS)
    return response


@app.errorhandler(InvalidQueryError)
def handle_invalid_query(e):
    return jsonify({"error": str(e)}), 400


@app.errorhandler(DataUnavailableError)
def handle_data_unavailable(e):
    logger.error("Dashboard data unavailable: %s", e)
    return _no_cache(jsonify({"error": config.ERROR_MESSAGE})), 503


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.route("/")
def index():
    return render_template("index.html")


@app.route("/api/data")
def get_data():
    """Pass the published document through untouched, never cached."""
    try:
        payload = source.proxy_fetch()
    except DataUnavailableError as e:
        logger.error("Failed to fetch data: %s", e)
        return jsonify({"error": config.PROXY_ERROR_MESSAGE}), 500
    return _no_cache(jsonify(payload))


@app.route("/api/view")
def get_view():
    args = flask_request.args
    document = source.get_document()
    view = build_dashboard(
        document,
        coin=args.get("coin"),
        hours=args.get("hours"),
        start=args.get("start"),
        end=args.get("end"),
        page=args.get("page", 1, type=int),
        per_page=args.get("per_page", config.PAGE_SIZE, type=int),
    )
    return _no_cache(jsonify(view))


@app.route("/api/symbols")
def get_symbols():
    document = source.get_document()
    return jsonify({
        "symbols": document["symbols"],
        "default": config.DEFAULT_COIN,
        "last_updated": document.get("last_updated"),
    })


@app.route("/api/status")
def get_status():
    return jsonify({
        "status": "online",
        "source": config.DATA_URL,
        "poll_interval": config.POLL_INTERVAL,
        **source.cache_status(),
    })


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    setup_logging()
    log_config()

    print("Loading metrics document...")
    source.update_cache()
    source.start_poller()

    status = source.cache_status()
    print("\n" + "=" * 60)
    print("CRYPTO MONITOR")
    print("=" * 60)
    print(f"\nServer running at: http://localhost:{config.PORT}")
    print(f"Symbols loaded: {status['cached_symbols']}")
    print("\nAPI Endpoints:")
    print("  GET /api/view         - Dashboard view (coin, hours, start, end, page)")
    print("  GET /api/data         - Raw document (proxied, no-cache)")
    print("  GET /api/symbols      - Available coins")
    print("  GET /api/status       - Server status")
    print(f"\nData: {config.DATA_URL} | Refresh: {config.POLL_INTERVAL}s")
    print("=" * 60 + "\n")

    # The reloader would start a second poller
    app.run(debug=config.DEBUG, use_reloader=False, port=config.PORT, host=config.HOST)
