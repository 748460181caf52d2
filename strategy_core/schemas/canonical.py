"""
PURPOSE: Canonical strategy schema, the strict contract between the
normalizer, the event store and the execution compiler.

Strategies are a discriminated union on `pattern`: each variant owns exactly
one entry payload model and forbids unknown keys, so an ORB record can never
carry an EMA period. Models are frozen and serialize to camelCase, which is
the shape persisted in the database column and read by the execution engine.
"""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator
from pydantic.alias_generators import to_camel

from strategy_core.config.constants import (
    BUFFER_TICKS_BOUNDS,
    CONTRACTS_BOUNDS,
    DEFAULT_TIMEZONE,
    EMA_PERIOD_BOUNDS,
    LOOKBACK_PERIOD_BOUNDS,
    MAX_ATR_MULTIPLE,
    MAX_RR_RATIO,
    OPENING_RANGE_MINUTES_BOUNDS,
    RISK_PERCENT_BOUNDS,
    RSI_PERIOD_BOUNDS,
    RSI_THRESHOLD_BOUNDS,
    STOP_TICKS_BOUNDS,
    TARGET_TICKS_BOUNDS,
    BreakoutConfirmation,
    Direction,
    EntryOn,
    LevelType,
    Pattern,
    PositionSizing,
    PullbackConfirmation,
    RsiDirection,
    SessionName,
    StopLossType,
    TakeProfitType,
    ensure_pattern_coverage,
)
from strategy_core.instruments.registry import INSTRUMENT_SPECS, InstrumentSpec
from strategy_core.utils.time_utils import is_valid_timezone, normalize_hhmm


class CanonicalModel(BaseModel):
    """Base config shared by every canonical sub-model."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
        allow_inf_nan=False,
    )


# ============================================================================
# SHARED COMPONENTS
# ============================================================================


class StopLossConfig(CanonicalModel):
    """
    Stop loss configuration.

    Attributes:
        type: fixed_ticks (N ticks from entry), structure (beyond swing level,
            value = buffer ticks), atr_multiple (N x ATR), opposite_range
            (other side of the opening range, value = buffer ticks).
        value: Tick count, ATR multiple or buffer ticks depending on type.
    """

    type: StopLossType
    value: float

    @model_validator(mode="after")
    def validate_value_for_type(self) -> "StopLossConfig":
        """Validate the value is sane for the chosen stop type."""
        if self.type == StopLossType.FIXED_TICKS:
            _require_between(self.value, STOP_TICKS_BOUNDS, "fixed_ticks stop")
        elif self.type == StopLossType.ATR_MULTIPLE:
            if not 0 < self.value <= MAX_ATR_MULTIPLE:
                raise ValueError(f"atr_multiple stop must be in (0, {MAX_ATR_MULTIPLE}], got {self.value}")
        else:
            _require_between(self.value, BUFFER_TICKS_BOUNDS, f"{self.type.value} buffer")
        return self


class TakeProfitConfig(CanonicalModel):
    """
    Take profit configuration.

    Attributes:
        type: rr_ratio (multiple of the entry-to-stop distance), fixed_ticks,
            or structure (next support/resistance level).
        value: Ratio, tick count, or 0 for structure.
    """

    type: TakeProfitType
    value: float

    @model_validator(mode="after")
    def validate_value_for_type(self) -> "TakeProfitConfig":
        """Validate the value is sane for the chosen target type."""
        if self.type == TakeProfitType.RR_RATIO:
            if not 0 < self.value <= MAX_RR_RATIO:
                raise ValueError(f"rr_ratio target must be in (0, {MAX_RR_RATIO}], got {self.value}")
        elif self.type == TakeProfitType.FIXED_TICKS:
            _require_between(self.value, TARGET_TICKS_BOUNDS, "fixed_ticks target")
        elif self.value < 0:
            raise ValueError(f"structure target value must be >= 0, got {self.value}")
        return self


class ExitConfig(CanonicalModel):
    stop_loss: StopLossConfig
    take_profit: TakeProfitConfig


class RiskConfig(CanonicalModel):
    """
    Risk configuration.

    Attributes:
        position_sizing: risk_percent (risk N% of the account per trade) or
            fixed_contracts (always trade `contracts`).
        risk_percent: Percent of account at risk, 1 = 1%. Required for risk_percent.
        max_contracts: Hard ceiling on any computed quantity.
        contracts: Fixed count for fixed_contracts sizing (defaults to max_contracts).
    """

    position_sizing: PositionSizing
    risk_percent: Optional[float] = None
    max_contracts: int = Field(ge=CONTRACTS_BOUNDS[0], le=CONTRACTS_BOUNDS[1])
    contracts: Optional[int] = Field(default=None, ge=CONTRACTS_BOUNDS[0], le=CONTRACTS_BOUNDS[1])

    @field_validator("risk_percent")
    @classmethod
    def validate_risk_percent(cls, v: Optional[float]) -> Optional[float]:
        """Validate risk percent stays inside the per-trade ceiling."""
        if v is None:
            return v
        low, high = RISK_PERCENT_BOUNDS
        if v > high:
            raise ValueError(f"riskPercent {v} exceeds the {high}% per-trade ceiling")
        if v < low:
            raise ValueError(f"riskPercent must be at least {low} (1 = 1%), got {v}")
        return v

    @model_validator(mode="after")
    def validate_sizing_fields(self) -> "RiskConfig":
        """Validate that risk_percent sizing carries a risk percent."""
        if self.position_sizing == PositionSizing.RISK_PERCENT and self.risk_percent is None:
            raise ValueError("riskPercent is required for risk_percent sizing")
        return self


class TimeConfig(CanonicalModel):
    """
    Time configuration.

    Sessions (Eastern Time): ny 09:30-16:00, london 03:00-11:30,
    asia 20:00-04:00, custom uses customStart/customEnd.
    """

    session: SessionName
    custom_start: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    custom_end: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    timezone: str = DEFAULT_TIMEZONE

    @field_validator("custom_start", "custom_end")
    @classmethod
    def validate_clock(cls, v: Optional[str]) -> Optional[str]:
        """Validate HH:MM values are real clock times."""
        if v is not None and normalize_hhmm(v) != v:
            raise ValueError(f"'{v}' is not a valid HH:MM time")
        return v

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Validate the timezone is a known IANA zone."""
        if not is_valid_timezone(v):
            raise ValueError(f"unknown timezone '{v}'")
        return v

    @model_validator(mode="after")
    def validate_custom_bounds(self) -> "TimeConfig":
        """Validate custom sessions carry both bounds."""
        if self.session == SessionName.CUSTOM and (self.custom_start is None or self.custom_end is None):
            raise ValueError("custom session requires customStart and customEnd")
        return self


# ============================================================================
# PATTERN-SPECIFIC ENTRY PAYLOADS
# ============================================================================


class OpeningRangeEntry(CanonicalModel):
    """High/low of the first N session minutes; enter on the break."""

    period_minutes: int = Field(ge=OPENING_RANGE_MINUTES_BOUNDS[0], le=OPENING_RANGE_MINUTES_BOUNDS[1])
    entry_on: EntryOn


class RsiFilter(CanonicalModel):
    period: int = Field(ge=RSI_PERIOD_BOUNDS[0], le=RSI_PERIOD_BOUNDS[1])
    threshold: float = Field(ge=RSI_THRESHOLD_BOUNDS[0], le=RSI_THRESHOLD_BOUNDS[1])
    direction: RsiDirection


class EmaPullbackEntry(CanonicalModel):
    """Trend by EMA, wait for a pullback to it, enter on the confirmation style."""

    ema_period: int = Field(ge=EMA_PERIOD_BOUNDS[0], le=EMA_PERIOD_BOUNDS[1])
    pullback_confirmation: PullbackConfirmation
    rsi_filter: Optional[RsiFilter] = None


class BreakoutEntry(CanonicalModel):
    """N-period high/low break with optional close or volume confirmation."""

    lookback_period: int = Field(ge=LOOKBACK_PERIOD_BOUNDS[0], le=LOOKBACK_PERIOD_BOUNDS[1])
    level_type: LevelType
    confirmation: BreakoutConfirmation


# ============================================================================
# CANONICAL STRATEGY (DISCRIMINATED UNION)
# ============================================================================


class StrategyBase(CanonicalModel):
    direction: Direction
    instrument: InstrumentSpec
    exit: ExitConfig
    risk: RiskConfig
    time: TimeConfig

    @field_validator("instrument")
    @classmethod
    def validate_registry_spec(cls, v: InstrumentSpec) -> InstrumentSpec:
        """Validate the contract fields match the registry entry for the symbol."""
        expected = INSTRUMENT_SPECS[v.symbol]
        if v != expected:
            raise ValueError(
                f"{v.symbol} contract spec does not match the registry "
                f"(tickSize {expected.tick_size}, tickValue {expected.tick_value}, "
                f"contractSize {expected.contract_size})"
            )
        return v


class OpeningRangeBreakoutStrategy(StrategyBase):
    pattern: Literal["opening_range_breakout"]
    entry: OpeningRangeEntry


class EmaPullbackStrategy(StrategyBase):
    pattern: Literal["ema_pullback"]
    entry: EmaPullbackEntry


class BreakoutStrategy(StrategyBase):
    pattern: Literal["breakout"]
    entry: BreakoutEntry


CanonicalStrategy = Annotated[
    Union[OpeningRangeBreakoutStrategy, EmaPullbackStrategy, BreakoutStrategy],
    Field(discriminator="pattern"),
]

CANONICAL_ADAPTER: TypeAdapter = TypeAdapter(CanonicalStrategy)

STRATEGY_MODELS: dict[Pattern, type[StrategyBase]] = {
    Pattern.OPENING_RANGE_BREAKOUT: OpeningRangeBreakoutStrategy,
    Pattern.EMA_PULLBACK: EmaPullbackStrategy,
    Pattern.BREAKOUT: BreakoutStrategy,
}

ENTRY_MODELS: dict[Pattern, type[CanonicalModel]] = {
    Pattern.OPENING_RANGE_BREAKOUT: OpeningRangeEntry,
    Pattern.EMA_PULLBACK: EmaPullbackEntry,
    Pattern.BREAKOUT: BreakoutEntry,
}

ensure_pattern_coverage(STRATEGY_MODELS, "STRATEGY_MODELS")
ensure_pattern_coverage(ENTRY_MODELS, "ENTRY_MODELS")


def to_snapshot(strategy: StrategyBase) -> dict[str, Any]:
    """
    PURPOSE: Serialize a validated strategy into the persisted JSON document.

    Args:
        strategy: Canonical strategy model.

    Returns:
        dict[str, Any]: camelCase JSON-compatible dict without unset optionals.
    """
    return strategy.model_dump(mode="json", by_alias=True, exclude_none=True)


def _require_between(value: float, bounds: tuple[float, float], label: str) -> None:
    low, high = bounds
    if not low <= value <= high:
        raise ValueError(f"{label} must be between {low} and {high}, got {value}")
