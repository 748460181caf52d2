"""
PURPOSE: Moving averages over candle closes.

The compiled EMA pullback reads `latest_ema()` when the execution context
carries no pre-computed `ema<period>` value.
"""

import math
from typing import Optional

import pandas as pd


def last_finite(series: pd.Series) -> Optional[float]:
    """Last value of `series` as a float, None when empty, NaN or infinite."""
    if series.empty:
        return None
    try:
        value = float(series.iloc[-1])
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def sma(series: pd.Series, period: int) -> pd.Series:
    """
    PURPOSE: Rolling mean over `period` bars.

    Args:
        series: Price or volume series
        period: Window length in bars

    Returns:
        pd.Series: SMA values, NaN until `period` bars are available
    """
    if period < 1:
        raise ValueError("Period must be >= 1")
    return series.rolling(window=period).mean()


def ema(series: pd.Series, period: int) -> pd.Series:
    """
    PURPOSE: Exponential moving average seeded from the first bar.

    Args:
        series: Price series
        period: EMA span in bars

    Returns:
        pd.Series: EMA values for every bar (no warm-up gap)
    """
    if period < 1:
        raise ValueError("Period must be >= 1")
    return series.ewm(span=period, adjust=False).mean()


def latest_ema(candles: pd.DataFrame, period: int) -> Optional[float]:
    """
    PURPOSE: EMA of the close at the most recent candle.

    Returns None until the frame holds at least `period` candles, so a short
    history never produces a barely-seeded average.
    """
    if "close" not in candles.columns or len(candles) < period:
        return None
    return last_finite(ema(candles["close"].astype(float), period))
