"""
Event store module for the strategy core.

Strategies are stored as an append-only log of typed events; the canonical
strategy is derived by replaying that log.
"""

from strategy_core.events.log import EventLog, migrate_record
from strategy_core.events.paths import PARAM_PATHS, ParamPath, canonical_path, get_value, set_value
from strategy_core.events.store import (
    apply_event,
    current_instrument,
    current_pattern,
    fold,
    from_canonical,
    is_valid_event_stream,
    record_defaults,
    record_param_update,
    record_pattern_change,
    replay,
)
from strategy_core.events.types import (
    DefaultsApplied,
    DefaultValue,
    ParamUpdated,
    PatternChanged,
    StrategyCreated,
    StrategyEvent,
    StrategyEventBase,
    event_to_dict,
)

__all__ = [
    "StrategyEvent",
    "StrategyEventBase",
    "StrategyCreated",
    "ParamUpdated",
    "PatternChanged",
    "DefaultsApplied",
    "DefaultValue",
    "event_to_dict",
    "ParamPath",
    "PARAM_PATHS",
    "canonical_path",
    "get_value",
    "set_value",
    "apply_event",
    "fold",
    "replay",
    "current_pattern",
    "current_instrument",
    "is_valid_event_stream",
    "from_canonical",
    "record_param_update",
    "record_pattern_change",
    "record_defaults",
    "EventLog",
    "migrate_record",
]
