# providers/intrinio_provider.py
"""
Intrinio market-data adapter.

All Intrinio-specific details (URLs, query parameters, payload shapes,
pagination cursors) are confined here. Every public method degrades to None
on any upstream failure so that one bad ticker never aborts a batch.
"""
import os
import logging
import datetime as dt
from typing import List, Optional
from urllib.parse import quote

import requests
from pydantic import ValidationError

from shared.contracts import IntervalBar, DailyPrice, RealtimeQuote

logger = logging.getLogger(__name__)

INTRINIO_BASE_URL = os.getenv("INTRINIO_BASE_URL", "https://api-v2.intrinio.com")
# 15-minute delayed SIP data is available under the standard US price packages
INTRINIO_PRICE_SOURCE = os.getenv("INTRINIO_PRICE_SOURCE", "delayed_sip")

INTERVAL_SIZE = "15m"
INTRADAY_WINDOW_DAYS = 3 # spans weekends and overnight gaps
INTRADAY_PAGE_SIZE = 500
DAILY_PAGE_SIZE_CAP = 100


def _validate_rows(rows, model, ticker: str) -> list:
    """Validates each raw row against the contract, keeping only rows with a usable close."""
    validated = []
    for raw in rows or []:
        try:
            item = model.model_validate(raw)
        except ValidationError as e:
            logger.debug(f"Dropping malformed {model.__name__} row for {ticker}: {e}")
            continue
        if item.close is not None:
            validated.append(item)
    return validated


class IntrinioClient:
    """Thin wrapper over the Intrinio REST API using an injected requests session."""

    def __init__(self, api_key: str, session: requests.Session, timeout: float = 5.0,
                 base_url: str = INTRINIO_BASE_URL, source: str = INTRINIO_PRICE_SOURCE):
        self._api_key = api_key
        self._session = session
        self._timeout = timeout
        self._base_url = base_url.rstrip('/')
        self._source = source

    def _get_json(self, path: str, params: dict, ticker: str) -> dict | None:
        # The api_key travels in the query string, so only the path is ever logged.
        url = f"{self._base_url}{path}"
        try:
            resp = self._session.get(url, params={**params, "api_key": self._api_key}, timeout=self._timeout)
        except requests.exceptions.RequestException as e:
            logger.warning(f"Intrinio request failed for {ticker} ({path}): {e.__class__.__name__}")
            return None

        if not resp.ok:
            logger.warning(f"Intrinio returned {resp.status_code} for {ticker} ({path})")
            return None

        try:
            payload = resp.json()
        except ValueError as e:
            logger.warning(f"Intrinio returned invalid JSON for {ticker} ({path}): {e}")
            return None

        if not isinstance(payload, dict):
            logger.warning(f"Unexpected Intrinio payload type for {ticker} ({path}): {type(payload).__name__}")
            return None
        return payload

    def get_intraday_bars(self, ticker: str, now: dt.datetime | None = None) -> List[IntervalBar] | None:
        """
        Fetches the last few days of 15-minute bars for a ticker.

        Returns:
            Bars ordered oldest to newest (possibly empty), or None if the call failed.
        """
        end = now or dt.datetime.now(dt.timezone.utc)
        start = end - dt.timedelta(days=INTRADAY_WINDOW_DAYS)
        params = {
            "interval_size": INTERVAL_SIZE,
            "source": self._source,
            "start_date": start.strftime('%Y-%m-%d'),
            "start_time": start.strftime('%H:%M:%S'),
            "end_date": end.strftime('%Y-%m-%d'),
            "end_time": end.strftime('%H:%M:%S'),
            "timezone": "UTC",
            "page_size": INTRADAY_PAGE_SIZE,
        }
        payload = self._get_json(f"/securities/{quote(ticker, safe='')}/prices/intervals", params, ticker)
        if payload is None:
            return None

        bars = _validate_rows(payload.get('intervals'), IntervalBar, ticker)
        # An untimed bar cannot be placed in the series, so it is dropped.
        timed = [bar for bar in bars if bar.time]
        if len(timed) < len(bars):
            logger.debug(f"Dropping {len(bars) - len(timed)} untimed intraday bars for {ticker}")
        # Intrinio lists newest first.
        bars = sorted(timed, key=lambda bar: bar.time)
        logger.debug(f"Fetched {len(bars)} intraday bars for {ticker}")
        return bars

    def get_daily_prices(self, ticker: str, min_rows: int) -> List[DailyPrice] | None:
        """
        Walks the paginated end-of-day history, newest session first, until at
        least `min_rows` rows are collected or there are no further pages.

        Returns:
            Rows ordered newest to oldest, or None if any page request failed.
        """
        min_rows = max(1, int(min_rows))
        page_size = min(min_rows, DAILY_PAGE_SIZE_CAP)
        path = f"/securities/{quote(ticker, safe='')}/prices"

        rows: List[DailyPrice] = []
        next_page = None
        while len(rows) < min_rows:
            params = {"frequency": "daily", "sort_order": "desc", "page_size": page_size}
            if next_page:
                params["next_page"] = next_page

            payload = self._get_json(path, params, ticker)
            if payload is None:
                return None

            page_rows = payload.get('stock_prices') or []
            rows.extend(_validate_rows(page_rows, DailyPrice, ticker))

            next_page = payload.get('next_page')
            if not next_page or not page_rows:
                break

        logger.debug(f"Fetched {len(rows)} daily rows for {ticker} (wanted {min_rows})")
        return rows

    def get_realtime_price(self, ticker: str) -> Optional[float]:
        """Latest realtime (delayed) price, or None when unavailable."""
        payload = self._get_json(
            f"/securities/{quote(ticker, safe='')}/prices/realtime",
            {"source": self._source},
            ticker,
        )
        if payload is None:
            return None
        try:
            return RealtimeQuote.model_validate(payload).best_price()
        except ValidationError as e:
            logger.warning(f"Realtime quote for {ticker} failed contract validation: {e}")
            return None
