"""
PURPOSE: The shared default policy for new and re-patterned strategies.

These values are announced to the user by the conversational layer
("we'll assume a 20-tick stop and a 1:2 target"), applied when a strategy is
created or its pattern changes during replay, and used by the normalizer
when a fragment is missing. Keeping them in one module is what keeps those
three in agreement.

CALLED BY:
    - strategy_builder/normalizer.py (missing stop/target/sizing/session)
    - events/store.py (STRATEGY_CREATED and PATTERN_CHANGED folds)
"""

from dataclasses import dataclass
from typing import Any, Union

from strategy_core.config.constants import (
    DEFAULT_DIRECTION,
    DEFAULT_EMA_PERIOD,
    DEFAULT_LOOKBACK_PERIOD,
    DEFAULT_MAX_CONTRACTS,
    DEFAULT_OPENING_RANGE_MINUTES,
    DEFAULT_RISK_PERCENT,
    DEFAULT_SESSION,
    DEFAULT_STOP_TICKS,
    DEFAULT_TARGET_RR,
    DEFAULT_TIMEZONE,
    BreakoutConfirmation,
    Direction,
    EntryOn,
    LevelType,
    Pattern,
    PositionSizing,
    PullbackConfirmation,
    StopLossType,
    TakeProfitType,
    ensure_pattern_coverage,
)
from strategy_core.errors import NormalizationError
from strategy_core.instruments.registry import InstrumentSpec, resolve, supported_symbols

DEFAULT_ENTRIES: dict[Pattern, dict[str, Any]] = {
    Pattern.OPENING_RANGE_BREAKOUT: {
        "periodMinutes": DEFAULT_OPENING_RANGE_MINUTES,
        "entryOn": EntryOn.BOTH.value,
    },
    Pattern.EMA_PULLBACK: {
        "emaPeriod": DEFAULT_EMA_PERIOD,
        "pullbackConfirmation": PullbackConfirmation.TOUCH.value,
    },
    Pattern.BREAKOUT: {
        "lookbackPeriod": DEFAULT_LOOKBACK_PERIOD,
        "levelType": LevelType.BOTH.value,
        "confirmation": BreakoutConfirmation.CLOSE.value,
    },
}

ensure_pattern_coverage(DEFAULT_ENTRIES, "DEFAULT_ENTRIES")


@dataclass(frozen=True)
class DefaultAnnouncement:
    """A default the user is told about: where it lands, its value, and why."""

    path: str
    value: Any
    explanation: str


DEFAULT_ANNOUNCEMENTS: tuple[DefaultAnnouncement, ...] = (
    DefaultAnnouncement(
        "exit.stopLoss",
        {"type": StopLossType.FIXED_TICKS.value, "value": DEFAULT_STOP_TICKS},
        f"Fixed {DEFAULT_STOP_TICKS}-tick stop when no stop was described.",
    ),
    DefaultAnnouncement(
        "exit.takeProfit",
        {"type": TakeProfitType.RR_RATIO.value, "value": DEFAULT_TARGET_RR},
        "Industry-standard 1:2 risk:reward ratio.",
    ),
    DefaultAnnouncement(
        "risk.riskPercent",
        DEFAULT_RISK_PERCENT,
        "Conservative position sizing. Risk no more than 1% of account per trade.",
    ),
    DefaultAnnouncement(
        "risk.maxContracts",
        DEFAULT_MAX_CONTRACTS,
        f"Never trade more than {DEFAULT_MAX_CONTRACTS} contracts on a single signal.",
    ),
    DefaultAnnouncement(
        "direction",
        DEFAULT_DIRECTION.value,
        "Trade both directions for maximum opportunity.",
    ),
    DefaultAnnouncement(
        "time.session",
        DEFAULT_SESSION.value,
        "Most liquid trading hours for US futures. Highest volume, tightest spreads.",
    ),
)


def default_exit() -> dict[str, Any]:
    return {
        "stopLoss": {"type": StopLossType.FIXED_TICKS.value, "value": DEFAULT_STOP_TICKS},
        "takeProfit": {"type": TakeProfitType.RR_RATIO.value, "value": DEFAULT_TARGET_RR},
    }


def default_risk() -> dict[str, Any]:
    return {
        "positionSizing": PositionSizing.RISK_PERCENT.value,
        "riskPercent": DEFAULT_RISK_PERCENT,
        "maxContracts": DEFAULT_MAX_CONTRACTS,
    }


def default_time() -> dict[str, Any]:
    return {"session": DEFAULT_SESSION.value, "timezone": DEFAULT_TIMEZONE}


def default_entry(pattern: Union[Pattern, str]) -> dict[str, Any]:
    """Fresh copy of the default entry payload for `pattern`."""
    return dict(DEFAULT_ENTRIES[Pattern(pattern)])


def pattern_defaults(
    pattern: Union[Pattern, str],
    instrument: Union[InstrumentSpec, str],
    direction: Union[Direction, str] = DEFAULT_DIRECTION,
) -> dict[str, Any]:
    """
    PURPOSE: Build the complete default strategy document for a pattern.

    Shared defaults: 20-tick stop, 1:2 target, 1% risk capped at 10 contracts,
    NY session. Entry defaults come from DEFAULT_ENTRIES.

    Args:
        pattern: Target pattern.
        instrument: Instrument spec or symbol/alias.
        direction: Direction bias to keep.

    Returns:
        dict[str, Any]: Persisted-shape (camelCase) strategy document.

    Raises:
        NormalizationError: If the instrument does not resolve. There is no
            silent fallback to another contract.
    """
    if isinstance(instrument, InstrumentSpec):
        spec = instrument
    else:
        spec = resolve(instrument)
        if spec is None:
            raise NormalizationError(
                f"Unknown instrument: {instrument}. Supported: {', '.join(supported_symbols())}"
            )

    pattern = Pattern(pattern)
    return {
        "pattern": pattern.value,
        "direction": Direction(direction).value,
        "instrument": spec.model_dump(mode="json", by_alias=True),
        "entry": default_entry(pattern),
        "exit": default_exit(),
        "risk": default_risk(),
        "time": default_time(),
    }
