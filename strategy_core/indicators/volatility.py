"""
PURPOSE: True range and ATR over candle frames, for ATR-multiple stops.
"""

from typing import Optional

import pandas as pd

from .trend import last_finite


def true_range(candles: pd.DataFrame) -> pd.Series:
    """
    PURPOSE: Per-bar true range: the widest of high-low and the gaps from the previous close.

    Args:
        candles: Frame with high, low and close columns

    Returns:
        pd.Series: True range; the first bar falls back to its high-low range
    """
    high = candles["high"].astype(float)
    low = candles["low"].astype(float)
    prev_close = candles["close"].astype(float).shift(1)
    ranges = pd.concat([high - low, (high - prev_close).abs(), (low - prev_close).abs()], axis=1)
    return ranges.max(axis=1)


def atr(candles: pd.DataFrame, period: int = 14) -> pd.Series:
    """
    PURPOSE: Average True Range with Wilder smoothing (alpha = 1 / period).

    Args:
        candles: Frame with high, low and close columns
        period: ATR period (default 14)

    Returns:
        pd.Series: ATR in price units
    """
    if period < 1:
        raise ValueError("Period must be >= 1")
    return true_range(candles).ewm(alpha=1.0 / period, adjust=False).mean()


def latest_atr(candles: pd.DataFrame, period: int = 14) -> Optional[float]:
    """ATR at the most recent candle; None for fewer than two candles or missing columns."""
    if len(candles) < 2 or not {"high", "low", "close"}.issubset(candles.columns):
        return None
    return last_finite(atr(candles, period))
