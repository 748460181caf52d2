"""
PURPOSE: Indicator fallbacks for compiled strategies.
Computed from the candle frame only when the execution engine's context
does not already carry the value (ema20, rsi14, atr14, ...).
"""

from .momentum import latest_rsi, rsi
from .trend import ema, last_finite, latest_ema, sma
from .volatility import atr, latest_atr, true_range
from .volume import is_volume_surge, prior_average_volume

__all__ = [
    "ema",
    "sma",
    "latest_ema",
    "rsi",
    "latest_rsi",
    "true_range",
    "atr",
    "latest_atr",
    "prior_average_volume",
    "is_volume_surge",
    "last_finite",
]
