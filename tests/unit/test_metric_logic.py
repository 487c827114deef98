# tests/unit/test_metric_logic.py
import math
import unittest
from unittest.mock import MagicMock

from metric_logic import (
    normalize_range,
    percent_change,
    compute_hourly_change,
    pick_session_base,
    compute_metric,
    empty_metric,
    SESSIONS_BACK,
)
from shared.contracts import IntervalBar, DailyPrice


def _bars(closes):
    return [IntervalBar(time=f"2025-01-06T15:{i:02d}:00Z", close=c) for i, c in enumerate(closes)]

def _rows(closes):
    return [DailyPrice(date=f"2025-01-{31 - i:02d}", close=c) for i, c in enumerate(closes)]

def _client(bars=None, realtime=None, daily=None):
    client = MagicMock()
    client.get_intraday_bars.return_value = bars
    client.get_realtime_price.return_value = realtime
    client.get_daily_prices.return_value = daily
    return client


class TestPercentChange(unittest.TestCase):
    def test_basic_gain(self):
        self.assertAlmostEqual(percent_change(110, 100), 10.0)

    def test_basic_loss(self):
        self.assertAlmostEqual(percent_change(90.0, 100.0), -10.0)

    def test_zero_base_is_none(self):
        self.assertIsNone(percent_change(110, 0))
        self.assertIsNone(percent_change(110, 0.0))

    def test_missing_operand_is_none(self):
        self.assertIsNone(percent_change(None, 100))
        self.assertIsNone(percent_change(110, None))
        self.assertIsNone(percent_change(None, None))

    def test_non_finite_operands_are_none(self):
        self.assertIsNone(percent_change(float('nan'), 100))
        self.assertIsNone(percent_change(110, float('inf')))
        self.assertIsNone(percent_change(float('-inf'), 100))

    def test_non_numeric_operands_are_none(self):
        self.assertIsNone(percent_change("110", 100))
        self.assertIsNone(percent_change(True, 1))

    def test_overflowing_result_is_none(self):
        """A tiny base can overflow the result to infinity; that must never be returned."""
        self.assertIsNone(percent_change(1e308, 1e-308))


class TestNormalizeRange(unittest.TestCase):
    def test_known_ranges_pass_through(self):
        for value in ("hour", "day", "week", "month", "year"):
            self.assertEqual(normalize_range(value), value)

    def test_case_and_whitespace_are_ignored(self):
        self.assertEqual(normalize_range(" WEEK "), "week")

    def test_unknown_or_missing_is_day(self):
        self.assertEqual(normalize_range("foo"), "day")
        self.assertEqual(normalize_range(""), "day")
        self.assertEqual(normalize_range(None), "day")

    def test_lookback_table(self):
        self.assertEqual(SESSIONS_BACK, {"day": 1, "week": 5, "month": 21, "year": 252})


class TestHourlyChange(unittest.TestCase):
    def test_five_bars_is_insufficient(self):
        result = compute_hourly_change([100, 101, 102, 103, 104])
        self.assertIsNone(result["base"])
        self.assertIsNone(result["changePercent"])
        self.assertEqual(result["now"], 104)

    def test_six_bars_compare_first_and_last(self):
        result = compute_hourly_change([100, 101, 102, 103, 104, 110])
        self.assertEqual(result["base"], 100)
        self.assertEqual(result["now"], 110)
        self.assertAlmostEqual(result["changePercent"], 10.0)

    def test_longer_series_uses_five_bars_back(self):
        result = compute_hourly_change([1, 2, 50, 51, 52, 53, 54, 55])
        self.assertEqual(result["base"], 50)
        self.assertAlmostEqual(result["changePercent"], 10.0)

    def test_empty_series(self):
        self.assertEqual(compute_hourly_change([]), {"now": None, "base": None, "changePercent": None})


class TestPickSessionBase(unittest.TestCase):
    def test_base_at_sessions_back(self):
        self.assertEqual(pick_session_base([105, 100, 98], 1), 100)

    def test_short_series_falls_back_to_oldest(self):
        self.assertEqual(pick_session_base([105, 100, 98], 5), 98)

    def test_exact_length_uses_position(self):
        self.assertEqual(pick_session_base([105, 104, 103, 102, 101, 100], 5), 100)

    def test_empty_or_missing(self):
        self.assertIsNone(pick_session_base([], 1))
        self.assertIsNone(pick_session_base(None, 1))


class TestComputeMetric(unittest.TestCase):
    def test_day_uses_intraday_close_against_previous_session(self):
        client = _client(bars=_bars([100, 108, 110]), daily=_rows([109, 100, 95]))

        result = compute_metric("AAPL", "day", client)

        self.assertEqual(result["ticker"], "AAPL")
        self.assertEqual(result["price"], 110)
        self.assertAlmostEqual(result["changePercent"], 10.0)
        client.get_daily_prices.assert_called_once_with("AAPL", 2)
        client.get_realtime_price.assert_not_called()

    def test_session_lookback_requests_enough_rows(self):
        for range_key, sessions in SESSIONS_BACK.items():
            client = _client(bars=_bars([100]), daily=_rows([100]))
            compute_metric("MSFT", range_key, client)
            client.get_daily_prices.assert_called_once_with("MSFT", sessions + 1)

    def test_year_with_short_history_uses_oldest_row(self):
        client = _client(bars=_bars([150]), daily=_rows([149, 140, 120, 100]))
        result = compute_metric("NVDA", "year", client)
        self.assertAlmostEqual(result["changePercent"], 50.0)

    def test_hour_path_never_fetches_daily_history(self):
        client = _client(bars=_bars([100, 101, 102, 103, 104, 110]))

        result = compute_metric("AAPL", "hour", client)

        self.assertEqual(result["price"], 110)
        self.assertAlmostEqual(result["changePercent"], 10.0)
        client.get_daily_prices.assert_not_called()

    def test_hour_with_five_bars_keeps_price(self):
        client = _client(bars=_bars([100, 101, 102, 103, 104]))
        result = compute_metric("AAPL", "hour", client)
        self.assertEqual(result, {"ticker": "AAPL", "price": 104, "changePercent": None})

    def test_realtime_fallback_when_no_intraday_bars(self):
        client = _client(bars=[], realtime=121.0, daily=_rows([120.0, 110.0]))

        result = compute_metric("AAPL", "day", client)

        self.assertEqual(result["price"], 121.0)
        self.assertAlmostEqual(result["changePercent"], 10.0)
        client.get_realtime_price.assert_called_once_with("AAPL")

    def test_all_upstream_failures_degrade_to_nulls(self):
        client = _client(bars=None, realtime=None, daily=None)
        self.assertEqual(compute_metric("BAD", "week", client), empty_metric("BAD"))

    def test_price_survives_missing_history(self):
        client = _client(bars=_bars([100.0]), daily=None)
        result = compute_metric("AAPL", "month", client)
        self.assertEqual(result["price"], 100.0)
        self.assertIsNone(result["changePercent"])

    def test_base_is_the_unadjusted_session_close(self):
        client = _client(bars=_bars([110.0]), daily=[DailyPrice.model_validate({"date": "2025-01-03", "close": 109.0}),
                                                      DailyPrice.model_validate({"date": "2025-01-02", "close": 100.0, "adj_close": 50.0})])
        result = compute_metric("AAPL", "day", client)
        self.assertAlmostEqual(result["changePercent"], 10.0)

    def test_zero_base_yields_null_change(self):
        client = _client(bars=_bars([5.0]), daily=_rows([4.0, 0.0]))
        result = compute_metric("ZERO", "day", client)
        self.assertEqual(result["price"], 5.0)
        self.assertIsNone(result["changePercent"])

    def test_unexpected_exception_is_absorbed(self):
        client = MagicMock()
        client.get_intraday_bars.side_effect = RuntimeError("boom")
        self.assertEqual(compute_metric("AAPL", "day", client), empty_metric("AAPL"))

    def test_change_is_always_finite_or_none(self):
        client = _client(bars=_bars([1e308]), daily=_rows([1.0, 1e-308]))
        result = compute_metric("HUGE", "day", client)
        change = result["changePercent"]
        self.assertTrue(change is None or math.isfinite(change))


if __name__ == '__main__':
    unittest.main()
