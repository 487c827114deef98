# app.py
# Serves top S&P 500 constituents with their price change over a selected range
import os
import logging
from logging.handlers import RotatingFileHandler
from functools import partial
import requests
from flask import Flask, jsonify, request, send_from_directory
from flask_cors import CORS
from pydantic import TypeAdapter, ValidationError

# --- 1. Initialize Flask App and Basic Config ---
app = Flask(__name__, static_folder=None)
PORT = int(os.getenv("PORT", 3000))
PUBLIC_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "public")

CORS(app, resources={r"/api/*": {"origins": os.getenv("FRONTEND_ORIGIN", "*")}})

DEFAULT_LIMIT = 10
MAX_LIMIT = 100
MAX_CONCURRENCY = 10
UPSTREAM_TIMEOUT = float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "5"))

# --- 2. Define Logging Setup Function ---
def setup_logging(app):
    """Configures console logging, plus a rotating file when LOG_DIR is set."""
    log_level_str = os.environ.get("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handlers = []

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    log_directory = os.environ.get("LOG_DIR")
    if log_directory:
        os.makedirs(log_directory, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_directory, "sp500_bubbles.log"),
            maxBytes=5 * 1024 * 1024,  # 5 MB
            backupCount=5,
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    # prevent werkzeug from duplicating to root/stdout
    werk = logging.getLogger("werkzeug")
    werk.propagate = False
    for h in list(werk.handlers):
        if isinstance(h, logging.StreamHandler):
            werk.removeHandler(h)

    loggers_to_configure = [
        app.logger,
        logging.getLogger("ticker_source"),
        logging.getLogger("metric_logic"),
        logging.getLogger("batch_runner"),
        logging.getLogger("providers.intrinio_provider"),
    ]
    for logger in loggers_to_configure:
        logger.handlers.clear()
        for h in handlers:
            logger.addHandler(h)
        logger.setLevel(log_level)
        logger.propagate = False

    app.logger.info("S&P 500 bubbles service logging initialized.")
# --- End of Logging Setup ---
setup_logging(app)

# --- 3. Import Project-Specific Modules ---
from ticker_source import SlickchartsTickerSource, SourceUnavailable
from providers.intrinio_provider import IntrinioClient
from metric_logic import normalize_range, compute_metric
from batch_runner import run_all
from shared.contracts import TickerList, TickerMetricList, ErrorResponse, HealthResponse


def error_response(message: str, status: int = 500):
    return jsonify(ErrorResponse(error=message).model_dump()), status


def get_api_key() -> str | None:
    api_key = (os.getenv("INTRINIO_API_KEY") or "").strip()
    return api_key or None


def parse_limit(raw) -> int:
    """Parses the limit query value, clamping to [1, MAX_LIMIT]; junk falls back to the default."""
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        return DEFAULT_LIMIT
    return max(1, min(limit, MAX_LIMIT))


@app.route('/api/health', methods=['GET'])
def health_check():
    return jsonify(HealthResponse(ok=True).model_dump()), 200


@app.route('/api/sp500', methods=['GET'])
def sp500_endpoint():
    """
    Returns a JSON array of {ticker, price, changePercent} for the top `limit`
    S&P 500 constituents by index weight, with changePercent measured over `range`.
    """
    # Checked before anything touches the network.
    api_key = get_api_key()
    if not api_key:
        app.logger.error("INTRINIO_API_KEY is not configured; refusing /api/sp500 request.")
        return error_response("INTRINIO_API_KEY is not configured on the server.")

    range_key = normalize_range(request.args.get('range'))
    limit = parse_limit(request.args.get('limit'))
    concurrency = min(limit, MAX_CONCURRENCY)
    app.logger.info(f"Request received for /api/sp500. range={range_key}, limit={limit}")

    try:
        with requests.Session() as session:
            source = SlickchartsTickerSource(session, timeout=UPSTREAM_TIMEOUT)
            tickers = source.get_top_tickers(limit)[:limit]
            # Validate the scraped list against the TickerList contract before fanning out.
            try:
                TypeAdapter(TickerList).validate_python(tickers)
            except ValidationError as e:
                app.logger.error(f"Internal data validation error for scraped tickers: {e}")
                return error_response("Internal server error: malformed ticker data.")

            client = IntrinioClient(api_key, session, timeout=UPSTREAM_TIMEOUT)
            metrics = run_all(tickers, range_key, concurrency, partial(compute_metric, client=client))
    except SourceUnavailable as e:
        app.logger.error(f"Ticker source unavailable: {e}")
        return error_response(str(e))
    except Exception as e:
        app.logger.critical(f"An unhandled exception occurred in /api/sp500: {e}", exc_info=True)
        return error_response(str(e) or "Unexpected error fetching SP500 data")

    metrics = metrics[:limit]

    # Validate the output against the TickerMetric contract before returning.
    try:
        TypeAdapter(TickerMetricList).validate_python(metrics)
    except ValidationError as e:
        app.logger.error(f"Internal data validation error in /api/sp500: {e}")
        return error_response("Internal server error: malformed metric data.")

    return jsonify(metrics), 200


# Serve the client for every remaining route (single-page-app fallback)
@app.route('/', defaults={'path': ''})
@app.route('/<path:path>')
def serve_frontend(path):
    if path and os.path.isfile(os.path.join(PUBLIC_DIR, path)):
        return send_from_directory(PUBLIC_DIR, path)
    return send_from_directory(PUBLIC_DIR, 'index.html')


if __name__ == '__main__':
    is_debug = os.environ.get('FLASK_DEBUG', '0').lower() in ['true', '1', 't']
    app.logger.info(f"Server is running on port {PORT}")
    app.run(host='0.0.0.0', port=PORT, debug=is_debug)
