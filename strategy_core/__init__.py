"""
Strategy core: canonical futures strategies from natural-language fragments.

Pipeline:
    fragments --normalize()--> canonical strategy --compile_strategy()--> decisions
                                    ^
    event log ------replay()--------+

Exports the entry points used by the conversational and execution layers.
"""

from strategy_core.errors import (
    CanonicalValidationError,
    NormalizationError,
    ReplayError,
    StrategyCoreError,
)
from strategy_core.events import EventLog, from_canonical, migrate_record, replay
from strategy_core.instruments import InstrumentSpec, resolve
from strategy_core.schemas import parse_canonical, to_snapshot, validate
from strategy_core.strategy_builder import compile_from_unknown, compile_strategy, normalize

__version__ = "1.0.0"

__all__ = [
    "normalize",
    "validate",
    "parse_canonical",
    "to_snapshot",
    "compile_strategy",
    "compile_from_unknown",
    "replay",
    "from_canonical",
    "migrate_record",
    "EventLog",
    "InstrumentSpec",
    "resolve",
    "StrategyCoreError",
    "NormalizationError",
    "CanonicalValidationError",
    "ReplayError",
]
