"""
PURPOSE: Strategy Builder package for the strategy core.

Turns loose LLM-extracted rule fragments into a validated canonical strategy
(normalizer, backed by ordered rule tables and pattern extractors) and
compiles validated strategies into executable decision functions.
"""

from strategy_core.strategy_builder.compiler import (
    CompiledStrategy,
    EntrySignal,
    MarketContext,
    OpeningRange,
    compile_from_unknown,
    compile_strategy,
)
from strategy_core.strategy_builder.defaults import DEFAULT_ANNOUNCEMENTS, pattern_defaults
from strategy_core.strategy_builder.normalizer import normalize, normalize_or_raise
from strategy_core.strategy_builder.patterns import detect_direction, detect_pattern

__all__ = [
    "normalize",
    "normalize_or_raise",
    "detect_pattern",
    "detect_direction",
    "pattern_defaults",
    "DEFAULT_ANNOUNCEMENTS",
    "compile_strategy",
    "compile_from_unknown",
    "CompiledStrategy",
    "MarketContext",
    "OpeningRange",
    "EntrySignal",
]
