"""
PURPOSE: Closed enumerations and domain constants for the strategy core.

Every value here is part of the persisted canonical contract or of the
defaults the conversational layer announces to the user, so none of them
are environment-configurable.
"""

from enum import Enum
from typing import Iterable, Mapping


class Pattern(str, Enum):
    """Supported trade-setup archetypes (the canonical `pattern` discriminator)."""

    OPENING_RANGE_BREAKOUT = "opening_range_breakout"
    EMA_PULLBACK = "ema_pullback"
    BREAKOUT = "breakout"


class Direction(str, Enum):
    """Trade direction bias."""

    LONG = "long"
    SHORT = "short"
    BOTH = "both"


class Side(str, Enum):
    """Side of a concrete entry (a signal is never 'both')."""

    LONG = "long"
    SHORT = "short"


class EntryOn(str, Enum):
    BREAK_HIGH = "break_high"
    BREAK_LOW = "break_low"
    BOTH = "both"


class PullbackConfirmation(str, Enum):
    TOUCH = "touch"
    CLOSE_ABOVE = "close_above"
    BOUNCE = "bounce"


class RsiDirection(str, Enum):
    ABOVE = "above"
    BELOW = "below"


class LevelType(str, Enum):
    RESISTANCE = "resistance"
    SUPPORT = "support"
    BOTH = "both"


class BreakoutConfirmation(str, Enum):
    CLOSE = "close"
    VOLUME = "volume"
    NONE = "none"


class StopLossType(str, Enum):
    FIXED_TICKS = "fixed_ticks"
    STRUCTURE = "structure"
    ATR_MULTIPLE = "atr_multiple"
    OPPOSITE_RANGE = "opposite_range"


class TakeProfitType(str, Enum):
    RR_RATIO = "rr_ratio"
    FIXED_TICKS = "fixed_ticks"
    STRUCTURE = "structure"


class PositionSizing(str, Enum):
    FIXED_CONTRACTS = "fixed_contracts"
    RISK_PERCENT = "risk_percent"


class SessionName(str, Enum):
    NY = "ny"
    LONDON = "london"
    ASIA = "asia"
    CUSTOM = "custom"


class EventType(str, Enum):
    """Discriminator values of the persisted strategy events."""

    STRATEGY_CREATED = "STRATEGY_CREATED"
    PARAM_UPDATED = "PARAM_UPDATED"
    PATTERN_CHANGED = "PATTERN_CHANGED"
    DEFAULTS_APPLIED = "DEFAULTS_APPLIED"


class FormatVersion(str, Enum):
    """Storage format markers for persisted strategy records."""

    EVENTS_V1 = "events_v1"
    CANONICAL_V1 = "canonical_v1"
    LEGACY = "legacy"


EVENT_VERSION = 1

# ════════════════════════════════════════════════════════════════
# Sessions (Eastern Time, HH:MM)
# ════════════════════════════════════════════════════════════════

DEFAULT_TIMEZONE = "America/New_York"

SESSION_WINDOWS: dict[SessionName, tuple[str, str]] = {
    SessionName.NY: ("09:30", "16:00"),
    SessionName.LONDON: ("03:00", "11:30"),
    SessionName.ASIA: ("20:00", "04:00"),
}

# ════════════════════════════════════════════════════════════════
# Shared defaults (must match what the chat layer tells the user)
# ════════════════════════════════════════════════════════════════

DEFAULT_STOP_TICKS = 20
DEFAULT_TARGET_RR = 2.0
DEFAULT_RISK_PERCENT = 1.0
DEFAULT_MAX_CONTRACTS = 10
DEFAULT_SESSION = SessionName.NY
DEFAULT_DIRECTION = Direction.BOTH

DEFAULT_ATR_MULTIPLE = 1.5
DEFAULT_STRUCTURE_BUFFER_TICKS = 2
DEFAULT_RANGE_BUFFER_TICKS = 1
PERCENT_STOP_TICKS_PER_UNIT = 40

DEFAULT_OPENING_RANGE_MINUTES = 15
DEFAULT_EMA_PERIOD = 20
DEFAULT_RSI_PERIOD = 14
DEFAULT_RSI_THRESHOLD = 30.0
DEFAULT_LOOKBACK_PERIOD = 20

# ════════════════════════════════════════════════════════════════
# Bounds (inclusive)
# ════════════════════════════════════════════════════════════════

OPENING_RANGE_MINUTES_BOUNDS = (5, 120)
EMA_PERIOD_BOUNDS = (5, 200)
RSI_PERIOD_BOUNDS = (2, 50)
RSI_THRESHOLD_BOUNDS = (0.0, 100.0)
LOOKBACK_PERIOD_BOUNDS = (5, 100)
CONTRACTS_BOUNDS = (1, 20)
RISK_PERCENT_BOUNDS = (0.1, 5.0)

STOP_TICKS_BOUNDS = (1, 1000)
TARGET_TICKS_BOUNDS = (1, 2000)
BUFFER_TICKS_BOUNDS = (0, 100)
MAX_ATR_MULTIPLE = 10.0
MAX_RR_RATIO = 20.0


def ensure_pattern_coverage(table: Mapping | Iterable, owner: str) -> None:
    """
    PURPOSE: Fail at import time when a per-pattern table misses or adds a pattern.

    Every module that switches on `Pattern` keeps its variants in a table
    and calls this once, so adding a pattern without a schema variant,
    extractor, default set or compiler breaks loudly instead of drifting.

    Args:
        table: Mapping (or iterable) keyed by Pattern.
        owner: Name of the table, used in the error message.

    Raises:
        RuntimeError: If the table keys differ from the Pattern enum.
    """
    keys = {Pattern(key) for key in table}
    expected = set(Pattern)
    if keys != expected:
        missing = sorted(p.value for p in expected - keys)
        raise RuntimeError(f"{owner} does not cover every pattern; missing: {missing}")
