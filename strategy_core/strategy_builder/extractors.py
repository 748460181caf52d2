"""
PURPOSE: Pattern-specific entry extractors.

Each extractor reads the fragments of one pattern and returns that pattern's
`entry` payload in persisted (camelCase) form. Numeric periods are clamped to
the schema bounds here, so a malformed number in free text degrades to the
nearest sensible value instead of failing validation.

CALLED BY:
    - strategy_builder/normalizer.py
"""

import re
from typing import Any, Callable, Optional, Sequence

from strategy_core.config.constants import (
    DEFAULT_EMA_PERIOD,
    DEFAULT_LOOKBACK_PERIOD,
    DEFAULT_OPENING_RANGE_MINUTES,
    DEFAULT_RSI_PERIOD,
    DEFAULT_RSI_THRESHOLD,
    EMA_PERIOD_BOUNDS,
    LOOKBACK_PERIOD_BOUNDS,
    OPENING_RANGE_MINUTES_BOUNDS,
    RSI_PERIOD_BOUNDS,
    RSI_THRESHOLD_BOUNDS,
    BreakoutConfirmation,
    EntryOn,
    LevelType,
    Pattern,
    PullbackConfirmation,
    RsiDirection,
    ensure_pattern_coverage,
)
from strategy_core.schemas.fragments import EntryCondition, Filter, ParsedRules
from strategy_core.utils.math_utils import clamp, clamp_int, first_number

# ════════════════════════════════════════════════════════════════
# Opening range breakout
# ════════════════════════════════════════════════════════════════

_MINUTES = re.compile(r"(\d+)\s*-?\s*(?:min|minute|m\b)")
_HIGH_SIDE = re.compile(r"above|\bhigh\b|long only")
_LOW_SIDE = re.compile(r"below|\blow\b|short only")


def extract_opening_range(rules: ParsedRules) -> dict[str, Any]:
    """
    PURPOSE: Read the opening-range period and the side to trade.

    Args:
        rules: Parsed rule fragments.

    Returns:
        dict[str, Any]: `{periodMinutes, entryOn}`; period clamped to [5, 120].
    """
    period = DEFAULT_OPENING_RANGE_MINUTES
    high_side = low_side = False

    for entry in rules.entry_conditions:
        text = entry.text()
        matched = _MINUTES.search(text)
        if matched:
            period = int(matched.group(1))
        high_side = high_side or bool(_HIGH_SIDE.search(text))
        low_side = low_side or bool(_LOW_SIDE.search(text))

    if high_side and not low_side:
        entry_on = EntryOn.BREAK_HIGH
    elif low_side and not high_side:
        entry_on = EntryOn.BREAK_LOW
    else:
        entry_on = EntryOn.BOTH

    return {
        "periodMinutes": clamp_int(period, OPENING_RANGE_MINUTES_BOUNDS),
        "entryOn": entry_on.value,
    }


# ════════════════════════════════════════════════════════════════
# EMA pullback
# ════════════════════════════════════════════════════════════════

_EMA_PERIOD_PATTERNS = (
    re.compile(r"\bema\s*-?\s*\(?(\d+)"),
    re.compile(r"(\d+)\s*-?\s*(?:period\s+)?(?:ema|ma|period)\b"),
)
_CLOSE_CONFIRM = re.compile(r"closes? (?:back )?(?:above|below)|close back|candle close")
_BOUNCE_CONFIRM = re.compile(r"bounce|rejection|reject")
_RSI_PERIOD = re.compile(r"rsi\s*\(?\s*(\d+)")
_RSI_ABOVE = re.compile(r"above|over|greater|>")


def _ema_period(entry: EntryCondition) -> Optional[int]:
    text = entry.text()
    for pattern in _EMA_PERIOD_PATTERNS:
        matched = pattern.search(text)
        if matched:
            return int(matched.group(1))
    if entry.period:
        return entry.period
    return None


def _rsi_filter(
    indicator: str,
    period: Optional[int],
    value: Optional[float],
    condition_text: str,
) -> dict[str, Any]:
    matched = _RSI_PERIOD.search(indicator)
    if period is None and matched:
        period = int(matched.group(1))
    threshold = value if value is not None else first_number(_RSI_PERIOD.sub("", condition_text))
    direction = RsiDirection.ABOVE if _RSI_ABOVE.search(condition_text) else RsiDirection.BELOW
    return {
        "period": clamp_int(period or DEFAULT_RSI_PERIOD, RSI_PERIOD_BOUNDS),
        "threshold": clamp(
            DEFAULT_RSI_THRESHOLD if threshold is None else float(threshold), *RSI_THRESHOLD_BOUNDS
        ),
        "direction": direction.value,
    }


def _find_rsi_filter(filters: Sequence[Filter], entries: Sequence[EntryCondition]) -> Optional[dict[str, Any]]:
    """RSI filter from the first RSI filter fragment, else the first RSI entry fragment."""
    for item in filters:
        label = f"{item.indicator or ''} {item.type}".lower()
        if "rsi" in label:
            condition = f"{item.condition or ''} {item.description or ''}".lower()
            return _rsi_filter(label, item.period, item.value, condition)
    for entry in entries:
        if "rsi" in (entry.indicator or "").lower():
            condition = f"{entry.relation} {entry.description or ''}".lower()
            return _rsi_filter(entry.indicator.lower(), entry.period, entry.value, condition)
    return None


def extract_ema_pullback(rules: ParsedRules) -> dict[str, Any]:
    """
    PURPOSE: Read the EMA period, pullback confirmation style and optional RSI filter.

    RSI entry fragments describe the filter, not the EMA, so their periods are
    not read as EMA periods.

    Returns:
        dict[str, Any]: `{emaPeriod, pullbackConfirmation, rsiFilter?}`.
    """
    period = DEFAULT_EMA_PERIOD
    confirmation = PullbackConfirmation.TOUCH

    for entry in rules.entry_conditions:
        if "rsi" in (entry.indicator or "").lower():
            continue
        found = _ema_period(entry)
        if found is not None:
            period = found
        text = entry.text()
        if _CLOSE_CONFIRM.search(text):
            confirmation = PullbackConfirmation.CLOSE_ABOVE
        elif _BOUNCE_CONFIRM.search(text):
            confirmation = PullbackConfirmation.BOUNCE

    payload: dict[str, Any] = {
        "emaPeriod": clamp_int(period, EMA_PERIOD_BOUNDS),
        "pullbackConfirmation": confirmation.value,
    }
    rsi_filter = _find_rsi_filter(rules.filters, rules.entry_conditions)
    if rsi_filter is not None:
        payload["rsiFilter"] = rsi_filter
    return payload


# ════════════════════════════════════════════════════════════════
# Generic breakout
# ════════════════════════════════════════════════════════════════

_LOOKBACK = re.compile(r"(\d+)\s*-?\s*(?:period|bar|candle|day|session)s?\b")
_NO_CONFIRMATION = re.compile(r"no confirmation|without confirmation|immediately|intrabar|on touch")


def extract_breakout(rules: ParsedRules) -> dict[str, Any]:
    """
    PURPOSE: Read the breakout lookback, which levels to trade and the confirmation.

    Returns:
        dict[str, Any]: `{lookbackPeriod, levelType, confirmation}`; lookback clamped to [5, 100].
    """
    lookback = DEFAULT_LOOKBACK_PERIOD
    level_type = LevelType.BOTH
    confirmation = BreakoutConfirmation.CLOSE

    for entry in rules.entry_conditions:
        text = entry.text()
        matched = _LOOKBACK.search(text)
        if matched:
            lookback = int(matched.group(1))
        elif entry.period:
            lookback = entry.period

        if "resistance" in text and "support" not in text:
            level_type = LevelType.RESISTANCE
        elif "support" in text and "resistance" not in text:
            level_type = LevelType.SUPPORT

        if _NO_CONFIRMATION.search(text):
            confirmation = BreakoutConfirmation.NONE
        elif "volume" in text:
            confirmation = BreakoutConfirmation.VOLUME
        elif "close" in text:
            confirmation = BreakoutConfirmation.CLOSE

    return {
        "lookbackPeriod": clamp_int(lookback, LOOKBACK_PERIOD_BOUNDS),
        "levelType": level_type.value,
        "confirmation": confirmation.value,
    }


ENTRY_EXTRACTORS: dict[Pattern, Callable[[ParsedRules], dict[str, Any]]] = {
    Pattern.OPENING_RANGE_BREAKOUT: extract_opening_range,
    Pattern.EMA_PULLBACK: extract_ema_pullback,
    Pattern.BREAKOUT: extract_breakout,
}

ensure_pattern_coverage(ENTRY_EXTRACTORS, "ENTRY_EXTRACTORS")


def extract_entry(pattern: Pattern, rules: ParsedRules) -> dict[str, Any]:
    """Dispatch to the extractor registered for `pattern`."""
    return ENTRY_EXTRACTORS[pattern](rules)
