# shared/contracts.py
"""
This module defines the Pydantic models that serve as the formal data contracts
for the S&P 500 bubbles service: what we accept from upstream providers and
what we hand to the browser client.

The client reads exactly the field names declared on TickerMetric. There is no
alternate spelling of any field.
"""

from typing import List, Optional, TypeAlias
from pydantic import BaseModel, ConfigDict, Field

# --- Contract 1: TickerList ---
TickerList: TypeAlias = List[str]
"""Ranked ticker symbols, heaviest index weight first (e.g., ["MSFT", "AAPL"])."""


# --- Contract 2: IntervalBar ---
class IntervalBar(BaseModel):
    """One intraday price bar from the market-data provider."""
    model_config = ConfigDict(extra='ignore')

    time: Optional[str] = None
    close: Optional[float] = Field(None, allow_inf_nan=False)


# --- Contract 3: DailyPrice ---
class DailyPrice(BaseModel):
    """One end-of-day session record."""
    model_config = ConfigDict(extra='ignore')

    date: Optional[str] = None
    close: Optional[float] = Field(None, allow_inf_nan=False)


# --- Contract 4: RealtimeQuote ---
class RealtimeQuote(BaseModel):
    """Subset of the realtime price payload used as a fallback for the current price."""
    model_config = ConfigDict(extra='ignore')

    normal_market_hours_last_price: Optional[float] = Field(None, allow_inf_nan=False)
    last_price: Optional[float] = Field(None, allow_inf_nan=False)
    eod_close_price: Optional[float] = Field(None, allow_inf_nan=False)

    def best_price(self) -> Optional[float]:
        for value in (self.normal_market_hours_last_price, self.last_price, self.eod_close_price):
            if value is not None:
                return value
        return None


# --- Contract 5: TickerMetric ---
class TickerMetric(BaseModel):
    """
    The unit served by GET /api/sp500. Both numeric fields are independently
    nullable; a ticker is never dropped because one of them is unknown.
    """
    model_config = ConfigDict(extra='forbid')

    ticker: str = Field(..., min_length=1)
    price: Optional[float] = Field(None, allow_inf_nan=False, description="Most recent known close")
    changePercent: Optional[float] = Field(None, allow_inf_nan=False, description="Percent change over the requested range")

TickerMetricList: TypeAlias = List[TickerMetric]


# --- Contract 6: Service responses ---
class ErrorResponse(BaseModel):
    error: str

class HealthResponse(BaseModel):
    ok: bool
