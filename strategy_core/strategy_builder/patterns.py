"""
PURPOSE: Ordered, documented keyword rule tables that classify loose rule
fragments.

Each table is a tuple of rules evaluated top to bottom; the first rule whose
predicate matches wins. Order is meaningful and is the thing to read when a
classification looks wrong:

    PATTERN_RULES      opening range -> EMA pullback -> generic breakout
    STOP_LOSS_RULES    structure -> ATR -> opposite range -> percent/midpoint -> units
    TAKE_PROFIT_RULES  R:R -> structure -> ticks/dollars/points -> R:R fallback

Opening-range text also contains "range" and "break", so it is checked before
the generic breakout rule. EMA pullback needs BOTH an EMA-family indicator
label and a pullback term so a bare "above the 200 EMA" filter does not flip the pattern.

CALLED BY:
    - strategy_builder/normalizer.py
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from strategy_core.config.constants import (
    DEFAULT_ATR_MULTIPLE,
    DEFAULT_RANGE_BUFFER_TICKS,
    DEFAULT_STOP_TICKS,
    DEFAULT_STRUCTURE_BUFFER_TICKS,
    DEFAULT_TARGET_RR,
    MAX_ATR_MULTIPLE,
    MAX_RR_RATIO,
    PERCENT_STOP_TICKS_PER_UNIT,
    Direction,
    Pattern,
    StopLossType,
    TakeProfitType,
)
from strategy_core.instruments.registry import InstrumentSpec
from strategy_core.schemas.fragments import EntryCondition, ExitCondition
from strategy_core.utils.logger import get_logger

logger = get_logger("strategy_builder.patterns")


# ════════════════════════════════════════════════════════════════
# Pattern classification
# ════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class EntryText:
    """Lower-cased views over the entry fragments that the predicates read."""

    indicators: tuple[str, ...]
    descriptions: str

    @classmethod
    def from_entries(cls, entries: Sequence[EntryCondition]) -> "EntryText":
        return cls(
            indicators=tuple((e.indicator or "").lower() for e in entries),
            descriptions=" ".join((e.description or "").lower() for e in entries),
        )

    def any_match(self, regex: re.Pattern) -> bool:
        """True when any indicator label or the joined descriptions match."""
        return any(regex.search(i) for i in self.indicators) or bool(regex.search(self.descriptions))

    def indicator_match(self, regex: re.Pattern) -> bool:
        """True when any indicator label matches; descriptions are not read."""
        return any(regex.search(i) for i in self.indicators)


@dataclass(frozen=True)
class PatternRule:
    pattern: Pattern
    name: str
    matches: Callable[[EntryText], bool]


_ORB_TERMS = re.compile(r"opening range|\borb\b|range breakout|morning range")
_EMA_TERMS = re.compile(r"\bema\s*-?\d*\b|\d+\s*ema\b|exponential moving average|moving average|ma pullback|bounce off")
_PULLBACK_TERMS = re.compile(r"pull\s?back|retracement|retrace|bounce|touch")
_BREAKOUT_TERMS = re.compile(r"breakout|break above|break below|resistance|support|\blevel\b")

PATTERN_RULES: tuple[PatternRule, ...] = (
    PatternRule(
        Pattern.OPENING_RANGE_BREAKOUT,
        "opening range keywords",
        lambda text: text.any_match(_ORB_TERMS),
    ),
    PatternRule(
        Pattern.EMA_PULLBACK,
        "EMA-family indicator and pullback term",
        lambda text: text.indicator_match(_EMA_TERMS) and text.any_match(_PULLBACK_TERMS),
    ),
    PatternRule(
        Pattern.BREAKOUT,
        "generic breakout keywords",
        lambda text: text.any_match(_BREAKOUT_TERMS),
    ),
)


def detect_pattern(entries: Sequence[EntryCondition]) -> Optional[Pattern]:
    """
    PURPOSE: Classify entry fragments into one of the supported patterns.

    Args:
        entries: Entry condition fragments.

    Returns:
        Optional[Pattern]: First matching pattern, or None when nothing matches.
    """
    text = EntryText.from_entries(entries)
    for rule in PATTERN_RULES:
        if rule.matches(text):
            logger.debug("pattern_detected", pattern=rule.pattern.value, rule=rule.name)
            return rule.pattern
    return None


# Vocabulary per one-sided direction
DIRECTION_RULES: tuple[tuple[Direction, re.Pattern[str]], ...] = (
    (Direction.LONG, re.compile(r"\b(above|break.*up|long|buy|bullish)\b")),
    (Direction.SHORT, re.compile(r"\b(below|break.*down|short|sell|bearish)\b")),
)


def detect_direction(entries: Sequence[EntryCondition]) -> Direction:
    """
    Classify directional bias from the entry fragments.

    Both or neither vocabulary present resolves to BOTH, never to an error.
    """
    text = " ".join(
        f"{e.indicator} {e.relation} {e.description or ''}".lower() for e in entries
    )
    matched = [direction for direction, terms in DIRECTION_RULES if terms.search(text)]
    return matched[0] if len(matched) == 1 else Direction.BOTH


# ════════════════════════════════════════════════════════════════
# Exit parsing
# ════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ExitRule:
    """
    One exit classification rule.

    `matches(description, exit)` decides; `build(exit, instrument)` returns
    the `{type, value}` payload in persisted (camelCase) form.
    """

    name: str
    matches: Callable[[str, ExitCondition], bool]
    build: Callable[[ExitCondition, InstrumentSpec], dict[str, Any]]


def _units_to_ticks(value: float, unit: str, instrument: InstrumentSpec) -> Optional[int]:
    """Convert a ticks/dollars/points amount into whole ticks, None for other units."""
    if value <= 0:
        return None
    unit = (unit or "").lower()
    if unit == "ticks":
        ticks = value
    elif unit == "dollars":
        ticks = value / instrument.tick_value
    elif unit == "points":
        ticks = value / instrument.tick_size
    else:
        return None
    return max(1, int(round(ticks)))


def _is_tick_unit(exit_condition: ExitCondition) -> bool:
    return exit_condition.value > 0 and (exit_condition.unit or "").lower() in ("ticks", "dollars", "points")


_ATR_MULTIPLE = re.compile(r"(\d+(?:\.\d+)?)\s*(?:x|times|\*)?\s*atr|atr\s*(?:x|\*)\s*(\d+(?:\.\d+)?)")


def _atr_stop(exit_condition: ExitCondition, instrument: InstrumentSpec) -> dict[str, Any]:
    multiple = exit_condition.value
    if not 0 < multiple <= MAX_ATR_MULTIPLE:
        matched = _ATR_MULTIPLE.search((exit_condition.description or "").lower())
        multiple = float(matched.group(1) or matched.group(2)) if matched else DEFAULT_ATR_MULTIPLE
    return {"type": StopLossType.ATR_MULTIPLE.value, "value": multiple}


def _fallback_stop(exit_condition: ExitCondition, instrument: InstrumentSpec) -> dict[str, Any]:
    ticks = _units_to_ticks(exit_condition.value, exit_condition.unit, instrument)
    if ticks is None and (exit_condition.unit or "").lower() == "percent" and exit_condition.value > 0:
        ticks = int(round(exit_condition.value * PERCENT_STOP_TICKS_PER_UNIT))
    return {"type": StopLossType.FIXED_TICKS.value, "value": ticks or DEFAULT_STOP_TICKS}


STOP_LOSS_RULES: tuple[ExitRule, ...] = (
    ExitRule(
        "swing/structure stop",
        lambda desc, _: bool(re.search(r"swing|structure|pullback low|pullback high", desc)),
        lambda *_: {"type": StopLossType.STRUCTURE.value, "value": DEFAULT_STRUCTURE_BUFFER_TICKS},
    ),
    ExitRule(
        "ATR stop",
        lambda desc, _: "atr" in desc,
        _atr_stop,
    ),
    ExitRule(
        "opposite side of the range",
        lambda desc, _: bool(re.search(r"opposite|other side|range", desc)),
        lambda *_: {"type": StopLossType.OPPOSITE_RANGE.value, "value": DEFAULT_RANGE_BUFFER_TICKS},
    ),
    ExitRule(
        "percent of range / midpoint",
        lambda desc, _: bool(re.search(r"%|percent|midpoint", desc)),
        lambda *_: {"type": StopLossType.OPPOSITE_RANGE.value, "value": DEFAULT_RANGE_BUFFER_TICKS},
    ),
    ExitRule(
        "unit fallback",
        lambda desc, _: True,
        _fallback_stop,
    ),
)


_RR_TERMS = re.compile(
    r"r:r|\brr\b|risk\s*[:/-]?\s*(?:to\s*)?reward|reward\s*[:/-]?\s*(?:to\s*)?risk|\d+(?:\.\d+)?\s*r\b|\d+(?:\.\d+)?\s*:\s*\d+(?:\.\d+)?"
)
_RATIO = re.compile(r"(\d+(?:\.\d+)?)\s*:\s*(\d+(?:\.\d+)?)")
_R_MULTIPLE = re.compile(r"(\d+(?:\.\d+)?)\s*r\b")


def parse_reward_ratio(description: str, value: float) -> float:
    """
    PURPOSE: Read a reward-to-risk multiple from "1:2", "2:1", "2R" or a bare value.

    Args:
        description: Lower-cased target description.
        value: Numeric value on the fragment.

    Returns:
        float: Reward multiple; the default 2.0 when nothing sensible is found.
    """
    matched = _RATIO.search(description)
    if matched:
        first, second = float(matched.group(1)), float(matched.group(2))
        if first > 0 and second > 0:
            ratio = second if first == 1 else first if second == 1 else second / first
            if 0 < ratio <= MAX_RR_RATIO:
                return ratio
    matched = _R_MULTIPLE.search(description)
    if matched and 0 < float(matched.group(1)) <= MAX_RR_RATIO:
        return float(matched.group(1))
    if 0 < value <= MAX_RR_RATIO:
        return float(value)
    return DEFAULT_TARGET_RR


def _rr_target(exit_condition: ExitCondition, instrument: InstrumentSpec) -> dict[str, Any]:
    ratio = parse_reward_ratio((exit_condition.description or "").lower(), exit_condition.value)
    return {"type": TakeProfitType.RR_RATIO.value, "value": ratio}


def _structure_target(exit_condition: ExitCondition, instrument: InstrumentSpec) -> dict[str, Any]:
    return {"type": TakeProfitType.STRUCTURE.value, "value": max(exit_condition.value, 0)}


def _fixed_target(exit_condition: ExitCondition, instrument: InstrumentSpec) -> dict[str, Any]:
    ticks = _units_to_ticks(exit_condition.value, exit_condition.unit, instrument)
    return {"type": TakeProfitType.FIXED_TICKS.value, "value": ticks}


TAKE_PROFIT_RULES: tuple[ExitRule, ...] = (
    ExitRule(
        "risk:reward vocabulary or percent unit",
        lambda desc, exit_condition: bool(_RR_TERMS.search(desc)) or exit_condition.unit == "percent",
        _rr_target,
    ),
    ExitRule(
        "structure level / range extension",
        lambda desc, _: bool(re.search(r"resistance|support|level|range|extension|structure|swing", desc)),
        _structure_target,
    ),
    ExitRule(
        "ticks/dollars/points",
        lambda desc, exit_condition: _is_tick_unit(exit_condition),
        _fixed_target,
    ),
    ExitRule(
        "risk:reward fallback",
        lambda desc, _: True,
        _rr_target,
    ),
)


def _first_exit(exits: Sequence[ExitCondition], exit_type: str) -> Optional[ExitCondition]:
    return next((e for e in exits if (e.type or "").lower() == exit_type), None)


def _apply_rules(
    rules: Sequence[ExitRule],
    exit_condition: ExitCondition,
    instrument: InstrumentSpec,
    kind: str,
) -> dict[str, Any]:
    description = (exit_condition.description or "").lower()
    for rule in rules:
        if rule.matches(description, exit_condition):
            logger.debug("exit_rule_matched", kind=kind, rule=rule.name)
            return rule.build(exit_condition, instrument)
    raise RuntimeError(f"{kind} rule table has no catch-all rule")


def parse_stop_loss(exits: Sequence[ExitCondition], instrument: InstrumentSpec) -> dict[str, Any]:
    """
    PURPOSE: Choose the stop-loss type and value for the first stop fragment.

    Args:
        exits: Exit condition fragments.
        instrument: Resolved instrument (dollar/point conversions).

    Returns:
        dict[str, Any]: `{type, value}`; `{fixed_ticks, 20}` when no stop was given.
    """
    stop = _first_exit(exits, "stop_loss")
    if stop is None:
        return {"type": StopLossType.FIXED_TICKS.value, "value": DEFAULT_STOP_TICKS}
    return _apply_rules(STOP_LOSS_RULES, stop, instrument, "stop_loss")


def parse_take_profit(exits: Sequence[ExitCondition], instrument: InstrumentSpec) -> dict[str, Any]:
    """
    PURPOSE: Choose the take-profit type and value for the first target fragment.

    Returns:
        dict[str, Any]: `{type, value}`; `{rr_ratio, 2}` when no target was given.
    """
    target = _first_exit(exits, "take_profit")
    if target is None:
        return {"type": TakeProfitType.RR_RATIO.value, "value": DEFAULT_TARGET_RR}
    return _apply_rules(TAKE_PROFIT_RULES, target, instrument, "take_profit")
