"""
PURPOSE: RSI for the optional EMA pullback filter.
"""

from typing import Optional

import numpy as np
import pandas as pd

from .trend import last_finite

NEUTRAL_RSI = 50.0


def rsi(close: pd.Series, period: int = 14) -> pd.Series:
    """
    PURPOSE: Calculate Relative Strength Index (RSI) from simple average gains and losses.

    Args:
        close: Close price series
        period: RSI period (default 14)

    Returns:
        pd.Series: RSI values (0-100); NaN until `period` changes are available.
            A window with no losses reads 100, a flat window reads 50.
    """
    if period < 1:
        raise ValueError("Period must be >= 1")

    delta = close.diff()
    avg_gain = delta.clip(lower=0).rolling(window=period).mean()
    avg_loss = (-delta).clip(lower=0).rolling(window=period).mean()

    values = 100 - (100 / (1 + avg_gain / avg_loss))
    values = values.where(avg_loss != 0, 100.0)
    values = values.where(~((avg_gain == 0) & (avg_loss == 0)), NEUTRAL_RSI)
    return values.where(avg_gain.notna(), np.nan)


def latest_rsi(candles: pd.DataFrame, period: int) -> Optional[float]:
    """RSI at the most recent candle; None until `period` price changes exist."""
    if "close" not in candles.columns or len(candles) <= period:
        return None
    return last_finite(rsi(candles["close"].astype(float), period))
