"""
Pydantic v2 schemas for the strategy core.

This module exports the canonical strategy model (the persisted contract),
the lenient fragment input models, the result envelopes and the validator.
"""

from .canonical import (
    CANONICAL_ADAPTER,
    ENTRY_MODELS,
    STRATEGY_MODELS,
    BreakoutEntry,
    BreakoutStrategy,
    CanonicalStrategy,
    EmaPullbackEntry,
    EmaPullbackStrategy,
    ExitConfig,
    OpeningRangeBreakoutStrategy,
    OpeningRangeEntry,
    RiskConfig,
    RsiFilter,
    StopLossConfig,
    StrategyBase,
    TakeProfitConfig,
    TimeConfig,
    to_snapshot,
)
from .fragments import (
    EntryCondition,
    ExitCondition,
    Filter,
    ParsedRules,
    PositionSizingInput,
    StrategyFragments,
)
from .results import MigrationResult, NormalizationResult, ReplayResult, ValidationResult
from .validator import from_snapshot, parse_canonical, validate

__all__ = [
    # Canonical schema
    "CANONICAL_ADAPTER",
    "ENTRY_MODELS",
    "STRATEGY_MODELS",
    "CanonicalStrategy",
    "StrategyBase",
    "OpeningRangeBreakoutStrategy",
    "EmaPullbackStrategy",
    "BreakoutStrategy",
    "OpeningRangeEntry",
    "EmaPullbackEntry",
    "BreakoutEntry",
    "RsiFilter",
    "StopLossConfig",
    "TakeProfitConfig",
    "ExitConfig",
    "RiskConfig",
    "TimeConfig",
    "to_snapshot",
    # Fragment inputs
    "EntryCondition",
    "ExitCondition",
    "Filter",
    "ParsedRules",
    "PositionSizingInput",
    "StrategyFragments",
    # Results
    "NormalizationResult",
    "ValidationResult",
    "ReplayResult",
    "MigrationResult",
    # Validator
    "validate",
    "parse_canonical",
    "from_snapshot",
]
