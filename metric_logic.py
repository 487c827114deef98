# metric_logic.py
# Turns raw provider price series into a {ticker, price, changePercent} metric
import math
import logging

logger = logging.getLogger(__name__)

DEFAULT_RANGE = "day"

# Lookback distance per range. 'hour' is counted in 15-minute intraday bars
# (5 bars back is roughly 75 minutes); the others in trading sessions back.
HOURLY_BARS_BACK = 5
SESSIONS_BACK = {
    "day": 1,
    "week": 5,
    "month": 21,
    "year": 252,
}
VALID_RANGES = ("hour",) + tuple(SESSIONS_BACK)


def normalize_range(value) -> str:
    """Maps a raw query value onto a known range; anything unrecognized is 'day'."""
    if isinstance(value, str):
        candidate = value.strip().lower()
        if candidate in VALID_RANGES:
            return candidate
    return DEFAULT_RANGE


def empty_metric(ticker: str) -> dict:
    return {"ticker": ticker, "price": None, "changePercent": None}


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def percent_change(now, base):
    """
    ((now - base) / base) * 100, or None when either operand is missing,
    non-numeric or non-finite, or when base is zero.
    """
    if not _is_number(now) or not _is_number(base) or base == 0:
        return None
    change = (now - base) / base * 100
    return change if math.isfinite(change) else None


def compute_hourly_change(closes: list) -> dict:
    """
    Compares the last intraday close with the close HOURLY_BARS_BACK bars earlier.

    Args:
        closes (list): Intraday closes ordered oldest to newest.

    Returns:
        dict: {'now', 'base', 'changePercent'}; base and changePercent are None
              when fewer than HOURLY_BARS_BACK + 1 bars are available.
    """
    now = closes[-1] if closes else None
    if len(closes) < HOURLY_BARS_BACK + 1:
        return {"now": now, "base": None, "changePercent": None}
    base = closes[-1 - HOURLY_BARS_BACK]
    return {"now": now, "base": base, "changePercent": percent_change(now, base)}


def pick_session_base(closes: list | None, sessions_back: int):
    """
    Picks the comparison close from a newest-first daily series: the close
    `sessions_back` sessions ago, or the oldest available one if the series is shorter.
    """
    if not closes:
        return None
    if len(closes) > sessions_back:
        return closes[sessions_back]
    return closes[-1]


def compute_metric(ticker: str, range_key: str, client) -> dict:
    """
    Computes the metric for one ticker. Never raises: any failure degrades the
    affected field to None.

    Every range takes its current price from the latest intraday close, falling
    back to the realtime quote when no intraday bars are available, so the
    value reflects the live price rather than the previous session's close.
    """
    try:
        bars = client.get_intraday_bars(ticker) or []
        closes = [bar.close for bar in bars]
        now = closes[-1] if closes else None
        if now is None:
            now = client.get_realtime_price(ticker)

        if range_key == "hour":
            change = compute_hourly_change(closes)["changePercent"]
        else:
            sessions_back = SESSIONS_BACK.get(range_key, SESSIONS_BACK[DEFAULT_RANGE])
            rows = client.get_daily_prices(ticker, sessions_back + 1)
            base = pick_session_base([row.close for row in rows] if rows else None, sessions_back)
            change = percent_change(now, base)

        if now is None or change is None:
            logger.warning(f"Degraded metric for {ticker} (range={range_key}): price={now}, changePercent={change}")
        return {"ticker": ticker, "price": now, "changePercent": change}
    except Exception as e:
        logger.error(f"Unexpected error computing metric for {ticker}: {e}", exc_info=True)
        return empty_metric(ticker)
