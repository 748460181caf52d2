"""
PURPOSE: Volume reads for the volume-confirmed breakout.
"""

from typing import Optional

import pandas as pd

from .trend import last_finite, sma


def prior_average_volume(candles: pd.DataFrame, bars: int) -> Optional[float]:
    """
    PURPOSE: Mean volume of the `bars` candles before the current one.

    The current candle is excluded so a volume spike cannot raise its own
    baseline. Fewer prior candles than `bars` shortens the window.

    Args:
        candles: Frame with a volume column
        bars: Window length in candles

    Returns:
        Optional[float]: Average volume, or None without volume data or prior candles
    """
    if "volume" not in candles.columns or len(candles) < 2:
        return None
    window = max(1, min(bars, len(candles) - 1))
    return last_finite(sma(candles["volume"].astype(float).shift(1), window))


def is_volume_surge(candles: pd.DataFrame, bars: int, multiplier: float) -> bool:
    """True when the current candle's volume exceeds `multiplier` times the prior average."""
    average = prior_average_volume(candles, bars)
    current = last_finite(candles["volume"]) if "volume" in candles.columns else None
    if average is None or current is None:
        return False
    return current > average * multiplier
