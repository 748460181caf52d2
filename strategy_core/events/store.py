"""
PURPOSE: Event-sourced strategy state: fold, replay and edit helpers.

The canonical strategy is never edited in place. Each edit is appended to the
log as an immutable event, and the current strategy is the pure fold of that
log, re-checked by the validator after every replay:

    STRATEGY_CREATED  -> pattern defaults for (pattern, instrument, direction)
    PARAM_UPDATED     -> one typed path set on a copy of the state
    PATTERN_CHANGED   -> defaults of the new pattern, keeping instrument and direction
    DEFAULTS_APPLIED  -> a batch of typed path writes

Replaying the same log always yields the same strategy, and a pattern switch
carries no stale entry parameters across.

CALLED BY:
    - events/log.py (EventLog.replay, migrate_record)
    - The strategy edit routes of the conversational layer (outside this package)
"""

from datetime import datetime
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence, Union, assert_never

from pydantic import ValidationError

from strategy_core.config.constants import Pattern
from strategy_core.errors import NormalizationError, ReplayError
from strategy_core.events.paths import (
    DIFFABLE_PATHS,
    canonical_path,
    get_value,
    resolve_path,
    set_value,
    to_plain,
)
from strategy_core.events.types import (
    EVENT_ADAPTER,
    DefaultsApplied,
    DefaultValue,
    ParamUpdated,
    PatternChanged,
    StrategyCreated,
    StrategyEventBase,
)
from strategy_core.instruments.registry import resolve
from strategy_core.schemas.canonical import StrategyBase, to_snapshot
from strategy_core.schemas.results import ReplayResult
from strategy_core.schemas.validator import format_validation_errors, parse_canonical, validate
from strategy_core.strategy_builder.defaults import DEFAULT_ANNOUNCEMENTS, DefaultAnnouncement, pattern_defaults
from strategy_core.utils.logger import get_logger
from strategy_core.utils.time_utils import get_utc_now

logger = get_logger("events.store")

EventInput = Union[StrategyEventBase, Mapping[str, Any]]


def parse_event(event: EventInput) -> StrategyEventBase:
    """
    Coerce a persisted event dict (camelCase or snake_case) into its typed model.

    Raises:
        pydantic.ValidationError: If the event is malformed.
    """
    if isinstance(event, StrategyEventBase):
        return event
    return EVENT_ADAPTER.validate_python(event)


def parse_events(events: Iterable[EventInput]) -> list[StrategyEventBase]:
    """
    Coerce a whole log, reporting every malformed event.

    Raises:
        ReplayError: With one "events[i].path: message" entry per problem.
    """
    parsed: list[StrategyEventBase] = []
    errors: list[str] = []
    for index, event in enumerate(events):
        try:
            parsed.append(parse_event(event))
        except ValidationError as exc:
            tag = str(event.get("type", "")) if isinstance(event, Mapping) else ""
            errors.extend(f"events[{index}].{message}" for message in format_validation_errors(exc, tag))
    if errors:
        raise ReplayError(errors)
    return parsed


def apply_event(state: Mapping[str, Any], event: EventInput) -> dict[str, Any]:
    """
    PURPOSE: Fold one event into the state. Pure: `state` is never modified.

    Args:
        state: Current folded state (empty before STRATEGY_CREATED).
        event: Event model or persisted dict.

    Returns:
        dict[str, Any]: New state in persisted (camelCase) shape.

    Raises:
        ReplayError: Unknown instrument, edits before creation, or bad paths.
    """
    event = parse_event(event)

    if isinstance(event, StrategyCreated):
        return _defaults(event.pattern, event.instrument, event.direction)
    elif isinstance(event, ParamUpdated):
        _require_created(state, event)
        return set_value(state, event.path, event.value)
    elif isinstance(event, PatternChanged):
        _require_created(state, event)
        current = state.get("pattern")
        if current != event.from_pattern.value:
            logger.warning(
                "pattern_change_source_mismatch",
                state_pattern=current,
                from_pattern=event.from_pattern.value,
                to_pattern=event.to_pattern.value,
            )
        instrument = (state.get("instrument") or {}).get("symbol")
        return _defaults(event.to_pattern, instrument, state.get("direction"))
    elif isinstance(event, DefaultsApplied):
        _require_created(state, event)
        new_state = dict(state)
        for default in event.defaults:
            new_state = set_value(new_state, default.path, default.value)
        return new_state
    else:
        assert_never(event)


def _defaults(pattern: Pattern, instrument: Optional[str], direction: Any) -> dict[str, Any]:
    try:
        return pattern_defaults(pattern, instrument or "", direction)
    except NormalizationError as exc:
        raise ReplayError(exc.errors) from exc
    except ValueError as exc:
        # A direction written by an earlier PARAM_UPDATED is only checked here
        raise ReplayError(f"direction: {exc}") from exc


def _require_created(state: Mapping[str, Any], event: StrategyEventBase) -> None:
    if not state:
        raise ReplayError(f"{event.type} before STRATEGY_CREATED")


def _fold_steps(events: Sequence[EventInput]) -> Iterator[dict[str, Any]]:
    """Yield the state after each event; errors carry the failing event index."""
    parsed = parse_events(events)
    if not parsed:
        raise ReplayError("No events to replay")
    if not isinstance(parsed[0], StrategyCreated):
        raise ReplayError("First event must be STRATEGY_CREATED")

    state: dict[str, Any] = {}
    for index, event in enumerate(parsed):
        try:
            state = apply_event(state, event)
        except ReplayError as exc:
            raise ReplayError(
                [f"Error applying event {index} ({event.type}): {message}" for message in exc.errors]
            ) from exc
        yield state


def fold(events: Sequence[EventInput]) -> dict[str, Any]:
    """
    Fold a log into its raw state without validating the result.

    Raises:
        ReplayError: For an empty log, a log that does not start with
            STRATEGY_CREATED, malformed events, or failed writes.
    """
    state: dict[str, Any] = {}
    for state in _fold_steps(events):
        pass
    return state


def replay(events: Sequence[EventInput]) -> ReplayResult:
    """
    PURPOSE: Derive the canonical strategy from an event log.

    Applies every event in order, then validates the folded state. Every
    failure (empty log, wrong first event, malformed event, bad path, invalid
    final state) is reported in the result, never raised.

    Args:
        events: Ordered events (models or persisted dicts).

    Returns:
        ReplayResult: `canonical` on success; `errors` and, when folding got
            that far, the `partial` state on failure.
    """
    events = list(events)
    event_count = len(events)

    state: dict[str, Any] = {}
    try:
        for state in _fold_steps(events):
            pass
    except ReplayError as exc:
        logger.warning("replay_failed", event_count=event_count, errors=exc.errors)
        return ReplayResult(
            success=False,
            errors=exc.errors,
            partial=state or None,
            event_count=event_count,
        )

    validation = validate(state)
    if not validation.success:
        logger.warning("replay_invalid_state", event_count=event_count, errors=validation.errors)
        return ReplayResult(
            success=False,
            errors=validation.errors,
            partial=state,
            event_count=event_count,
        )

    logger.debug("replay_complete", event_count=event_count, pattern=state.get("pattern"))
    return ReplayResult(success=True, canonical=validation.data, event_count=event_count)


# ════════════════════════════════════════════════════════════════
# Queries
# ════════════════════════════════════════════════════════════════


def _safe_events(events: Any) -> Optional[list[StrategyEventBase]]:
    if isinstance(events, (str, bytes)) or not isinstance(events, Iterable):
        return None
    try:
        return parse_events(list(events))
    except ReplayError:
        return None


def current_pattern(events: Sequence[EventInput]) -> Optional[Pattern]:
    """Pattern after the last PATTERN_CHANGED or STRATEGY_CREATED, None for an empty or malformed log."""
    for event in reversed(_safe_events(events) or []):
        if isinstance(event, PatternChanged):
            return event.to_pattern
        if isinstance(event, StrategyCreated):
            return event.pattern
    return None


def current_instrument(events: Sequence[EventInput]) -> Optional[str]:
    """Canonical symbol from STRATEGY_CREATED (the instrument never changes afterwards)."""
    for event in _safe_events(events) or []:
        if isinstance(event, StrategyCreated):
            spec = resolve(event.instrument)
            return spec.symbol if spec is not None else event.instrument
    return None


def is_valid_event_stream(events: Any) -> bool:
    """
    True for a well-formed log: every event parses, and a non-empty log
    starts with STRATEGY_CREATED. An empty log is valid (a new strategy).
    """
    parsed = _safe_events(events)
    if parsed is None:
        return False
    return not parsed or isinstance(parsed[0], StrategyCreated)


# ════════════════════════════════════════════════════════════════
# Log construction and edits
# ════════════════════════════════════════════════════════════════


def from_canonical(
    canonical: Union[StrategyBase, Mapping[str, Any]],
    preserve_parameters: bool = False,
    initial_message: str = "",
    timestamp: Optional[datetime] = None,
) -> list[StrategyEventBase]:
    """
    PURPOSE: Build an event log for an existing canonical strategy.

    By default the log is a single synthetic STRATEGY_CREATED; the snapshot
    itself remains the record of its parameters. With `preserve_parameters`
    a PARAM_UPDATED is appended for every value that differs from the
    pattern defaults, so replaying the log reproduces the snapshot exactly.

    Args:
        canonical: Canonical strategy model or snapshot document.
        preserve_parameters: Append PARAM_UPDATED events for non-default values.
        initial_message: Original user message, if known.
        timestamp: Event timestamp (defaults to now).

    Returns:
        list[StrategyEventBase]: New log.

    Raises:
        CanonicalValidationError: If `canonical` is not a valid strategy.
    """
    strategy = parse_canonical(canonical)
    timestamp = timestamp or get_utc_now()
    created = StrategyCreated(
        pattern=Pattern(strategy.pattern),
        instrument=strategy.instrument.symbol,
        direction=strategy.direction,
        initial_message=initial_message,
        timestamp=timestamp,
    )
    events: list[StrategyEventBase] = [created]
    if not preserve_parameters:
        return events

    snapshot = to_snapshot(strategy)
    defaults = pattern_defaults(strategy.pattern, strategy.instrument, strategy.direction)
    pattern = Pattern(strategy.pattern)
    for path in DIFFABLE_PATHS:
        if pattern not in resolve_path(path, None).patterns:
            continue
        target = get_value(snapshot, path)
        default = get_value(defaults, path)
        if target != default:
            events.append(
                ParamUpdated(
                    path=path,
                    value=target,
                    previous_value=default,
                    was_defaulted=True,
                    timestamp=timestamp,
                )
            )
    logger.debug("events_from_canonical", pattern=pattern.value, event_count=len(events))
    return events


def record_param_update(events: Sequence[EventInput], path: str, value: Any) -> ParamUpdated:
    """
    PURPOSE: Build the PARAM_UPDATED event for a user edit.

    The path is checked against the current pattern up front, `previousValue`
    is read from the current state, and `wasDefaulted` is True when no earlier
    edit touched this path since the last creation or pattern change.

    Args:
        events: Current log.
        path: Path in any accepted spelling.
        value: New value.

    Returns:
        ParamUpdated: Event to append.

    Raises:
        ReplayError: If the log cannot be folded or the path is not editable.
    """
    state = fold(events)
    name = canonical_path(path)
    resolve_path(name, Pattern(state["pattern"]))

    was_defaulted = True
    for event in reversed(parse_events(events)):
        if isinstance(event, (StrategyCreated, PatternChanged)):
            break
        if isinstance(event, ParamUpdated) and canonical_path(event.path) == name:
            was_defaulted = False
            break

    return ParamUpdated(
        path=name,
        value=to_plain(value),
        previous_value=get_value(state, name),
        was_defaulted=was_defaulted,
    )


def record_pattern_change(events: Sequence[EventInput], to_pattern: Union[Pattern, str]) -> PatternChanged:
    """
    Build the PATTERN_CHANGED event moving the current pattern to `to_pattern`.

    Raises:
        ReplayError: If the log has no current pattern.
    """
    source = current_pattern(events)
    if source is None:
        raise ReplayError("Cannot change pattern: log has no STRATEGY_CREATED event")
    return PatternChanged(from_pattern=source, to_pattern=Pattern(to_pattern))


def record_defaults(
    paths: Optional[Iterable[str]] = None,
    announcements: Sequence[DefaultAnnouncement] = DEFAULT_ANNOUNCEMENTS,
) -> DefaultsApplied:
    """
    PURPOSE: Build the DEFAULTS_APPLIED event for the defaults announced to the user.

    Args:
        paths: Restrict to these announcement paths (all when None).
        announcements: Default table, with explanations.

    Returns:
        DefaultsApplied: Event carrying path, value and explanation per default.
    """
    wanted = {canonical_path(p) for p in paths} if paths is not None else None
    defaults = tuple(
        DefaultValue(path=a.path, value=to_plain(a.value), explanation=a.explanation)
        for a in announcements
        if wanted is None or a.path in wanted
    )
    return DefaultsApplied(defaults=defaults)
