"""
PURPOSE: Turn loose LLM-extracted rule fragments into a validated canonical
strategy.

Pipeline:
    1. Instrument  -> registry resolution (unknown is blocking)
    2. Pattern     -> PATTERN_RULES (unknown is blocking)
    3. Direction, exits, risk and time -> rule tables and defaults
    4. Entry       -> the pattern's extractor
    5. Candidate   -> validate(); the built dict is never trusted on its own

Blocking errors accumulate, so an unknown instrument and an unknown pattern
are reported together, and no pattern payload is built once either is hit.

CALLED BY:
    - The strategy build route of the conversational layer (outside this package)
"""

from typing import Any, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from strategy_core.config.constants import (
    CONTRACTS_BOUNDS,
    DEFAULT_MAX_CONTRACTS,
    SESSION_WINDOWS,
    Pattern,
    PositionSizing,
    SessionName,
)
from strategy_core.errors import NormalizationError
from strategy_core.instruments.registry import InstrumentSpec, resolve, supported_symbols
from strategy_core.schemas.fragments import Filter, PositionSizingInput, StrategyFragments
from strategy_core.schemas.results import NormalizationResult
from strategy_core.schemas.validator import format_validation_errors, validate
from strategy_core.strategy_builder.defaults import default_risk, default_time
from strategy_core.strategy_builder.extractors import extract_entry
from strategy_core.strategy_builder.patterns import (
    detect_direction,
    detect_pattern,
    parse_stop_loss,
    parse_take_profit,
)
from strategy_core.utils.logger import get_logger
from strategy_core.utils.math_utils import clamp_int
from strategy_core.utils.time_utils import classify_session, normalize_hhmm

logger = get_logger("strategy_builder.normalizer")

_TIME_FILTER_TYPES = ("time_window", "session", "time")
_SESSION_KEYWORDS: tuple[tuple[str, SessionName], ...] = (
    ("new york", SessionName.NY),
    ("ny", SessionName.NY),
    ("rth", SessionName.NY),
    ("london", SessionName.LONDON),
    ("asia", SessionName.ASIA),
    ("tokyo", SessionName.ASIA),
)


def normalize_risk(sizing: Optional[PositionSizingInput]) -> dict[str, Any]:
    """
    PURPOSE: Map a sizing descriptor onto the canonical risk block.

    `fixed` becomes fixed_contracts with the count and ceiling clamped to
    [1, 20]. `risk_percent` and `kelly` become risk_percent; the percent is
    passed through unclamped so the validator can reject an oversized value
    instead of it being silently rewritten.

    Args:
        sizing: Sizing fragment, or None.

    Returns:
        dict[str, Any]: Persisted-shape risk block (1% / 10 contracts when absent).
    """
    if sizing is None:
        return default_risk()

    method = (sizing.method or "").strip().lower()
    if method == "fixed":
        count = clamp_int(sizing.value or 1, CONTRACTS_BOUNDS)
        ceiling = clamp_int(sizing.max_contracts, CONTRACTS_BOUNDS) if sizing.max_contracts else count
        return {
            "positionSizing": PositionSizing.FIXED_CONTRACTS.value,
            "maxContracts": max(ceiling, count),
            "contracts": count,
        }

    return {
        "positionSizing": PositionSizing.RISK_PERCENT.value,
        "riskPercent": sizing.value,
        "maxContracts": clamp_int(sizing.max_contracts or DEFAULT_MAX_CONTRACTS, CONTRACTS_BOUNDS),
    }


def _named_session(time_filter: Filter) -> Optional[SessionName]:
    text = f"{time_filter.type} {time_filter.description or ''} {time_filter.condition or ''}".lower()
    for keyword, session in _SESSION_KEYWORDS:
        if keyword in text.split() or (" " in keyword and keyword in text):
            return session
    return None


def normalize_time(filters: Sequence[Filter]) -> dict[str, Any]:
    """
    PURPOSE: Map the first time-window filter onto a named or custom session.

    09:30-16:00 -> ny, 03:00-11:30 -> london, 20:00-04:00 -> asia; any other
    window is kept as a custom session with its bounds zero-padded to HH:MM.
    A session filter without bounds is matched by name ("London session").

    Returns:
        dict[str, Any]: Persisted-shape time block (ny when no filter).
    """
    time_filter = next((f for f in filters if (f.type or "").lower() in _TIME_FILTER_TYPES), None)
    if time_filter is None:
        return default_time()

    if not time_filter.start and not time_filter.end:
        session = _named_session(time_filter)
        if session is None:
            return default_time()
        return {**default_time(), "session": session.value}

    default_start, default_end = SESSION_WINDOWS[SessionName.NY]
    start = normalize_hhmm(time_filter.start) or time_filter.start or default_start
    end = normalize_hhmm(time_filter.end) or time_filter.end or default_end

    session = classify_session(start, end)
    if session != SessionName.CUSTOM:
        return {**default_time(), "session": session.value}
    return {**default_time(), "session": SessionName.CUSTOM.value, "customStart": start, "customEnd": end}


def _coerce_fragments(
    fragments: Union[StrategyFragments, Mapping[str, Any]],
) -> StrategyFragments:
    if isinstance(fragments, StrategyFragments):
        return fragments
    try:
        return StrategyFragments.model_validate(fragments)
    except ValidationError as exc:
        raise NormalizationError(format_validation_errors(exc)) from exc


def normalize(fragments: Union[StrategyFragments, Mapping[str, Any]]) -> NormalizationResult:
    """
    PURPOSE: Normalize rule fragments into a validated canonical strategy.

    Args:
        fragments: StrategyFragments model or its snake_case dict form.

    Returns:
        NormalizationResult: `canonical` on success; `errors` (and `partial`
            when a candidate was built but rejected) on failure.
    """
    try:
        parsed = _coerce_fragments(fragments)
    except NormalizationError as exc:
        logger.warning("normalize_bad_input", errors=exc.errors)
        return NormalizationResult(success=False, errors=exc.errors)

    rules = parsed.parsed_rules
    errors: list[str] = []

    logger.info(
        "normalize_start",
        strategy_name=parsed.strategy_name,
        instrument=parsed.instrument,
        entry_count=len(rules.entry_conditions),
        exit_count=len(rules.exit_conditions),
    )

    instrument: Optional[InstrumentSpec] = resolve(parsed.instrument)
    if instrument is None:
        errors.append(
            f"Unknown instrument: {parsed.instrument}. Supported: {', '.join(supported_symbols())}"
        )

    pattern: Optional[Pattern] = detect_pattern(rules.entry_conditions)
    if pattern is None:
        errors.append("Could not detect strategy pattern. Supported: ORB, EMA Pullback, Breakout")

    if instrument is None or pattern is None:
        logger.warning("normalize_blocked", errors=errors)
        return NormalizationResult(success=False, errors=errors)

    candidate: dict[str, Any] = {
        "pattern": pattern.value,
        "direction": detect_direction(rules.entry_conditions).value,
        "instrument": instrument.model_dump(mode="json", by_alias=True),
        "entry": extract_entry(pattern, rules),
        "exit": {
            "stopLoss": parse_stop_loss(rules.exit_conditions, instrument),
            "takeProfit": parse_take_profit(rules.exit_conditions, instrument),
        },
        "risk": normalize_risk(rules.position_sizing),
        "time": normalize_time(rules.filters),
    }

    validation = validate(candidate)
    if not validation.success:
        logger.warning("normalize_rejected", pattern=pattern.value, errors=validation.errors)
        return NormalizationResult(success=False, errors=validation.errors, partial=candidate)

    logger.info(
        "normalize_complete",
        pattern=pattern.value,
        instrument=instrument.symbol,
        direction=candidate["direction"],
    )
    return NormalizationResult(success=True, canonical=validation.data)


def normalize_or_raise(fragments: Union[StrategyFragments, Mapping[str, Any]]):
    """
    Raising variant of `normalize()`.

    Raises:
        NormalizationError: Carrying every normalization or validation message.
    """
    result = normalize(fragments)
    if not result.success:
        raise NormalizationError(result.errors)
    return result.canonical
