# ticker_source.py
"""
Sources of the ranked S&P 500 ticker list.

Callers depend only on TickerSource.get_top_tickers(); the extraction strategy
(regex over HTML today) can be replaced by another TickerSource subclass.
"""
import os
import re
import logging
from typing import List

import requests

logger = logging.getLogger(__name__)

TICKER_SOURCE_URL = os.getenv("TICKER_SOURCE_URL", "https://www.slickcharts.com/sp500")

# Each company row links to /symbol/<TICKER>. Dual-class shares carry one
# period separator (e.g. BRK.B).
SYMBOL_LINK_RE = re.compile(r'/symbol/([A-Za-z]+(?:\.[A-Za-z]+)?)"')

HEADERS = {
    'User-Agent': 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36'
}


class SourceUnavailable(Exception):
    """Raised when the ranked ticker list cannot be built."""
    pass


class TickerSource:
    """Abstract source of tickers ordered by index weight."""
    def get_top_tickers(self, limit: int) -> List[str]:
        raise NotImplementedError


def extract_tickers(html: str, limit: int) -> List[str]:
    """
    Extracts up to `limit` unique ticker symbols in document order.
    The listing shows each ticker more than once, so the first occurrence wins.
    """
    tickers = []
    seen = set()
    for match in SYMBOL_LINK_RE.finditer(html or ""):
        if len(tickers) >= limit:
            break
        ticker = match.group(1)
        if ticker not in seen:
            seen.add(ticker)
            tickers.append(ticker)
    return tickers


class SlickchartsTickerSource(TickerSource):
    """Scrapes the S&P 500 constituents page, which lists companies by index weight."""

    def __init__(self, session: requests.Session, url: str = TICKER_SOURCE_URL, timeout: float = 5.0):
        self._session = session
        self.url = url
        self._timeout = timeout

    def _fetch_html(self) -> str:
        try:
            response = self._session.get(self.url, headers=HEADERS, timeout=self._timeout)
        except requests.exceptions.RequestException as e:
            raise SourceUnavailable(f"Failed to fetch tickers from {self.url}: {e}") from e

        if not response.ok:
            raise SourceUnavailable(f"Failed to fetch tickers from {self.url}: {response.status_code} {response.reason}")
        return response.text

    def get_top_tickers(self, limit: int) -> List[str]:
        html = self._fetch_html()
        tickers = extract_tickers(html, limit)
        if not tickers:
            raise SourceUnavailable(f"No ticker symbols found at {self.url}")
        logger.info(f"Extracted {len(tickers)} tickers from {self.url}")
        return tickers
