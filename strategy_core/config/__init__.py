"""
PURPOSE: Export configuration settings and constants for the strategy core.

This module centralizes access to the runtime settings and the closed
enumerations shared by the schema, normalizer, compiler and event store.
"""

from .constants import (
    Direction,
    EventType,
    FormatVersion,
    Pattern,
    PositionSizing,
    SessionName,
    Side,
    StopLossType,
    TakeProfitType,
    ensure_pattern_coverage,
)
from .settings import Settings, settings

__all__ = [
    "settings",
    "Settings",
    "Pattern",
    "Direction",
    "Side",
    "StopLossType",
    "TakeProfitType",
    "PositionSizing",
    "SessionName",
    "EventType",
    "FormatVersion",
    "ensure_pattern_coverage",
]
