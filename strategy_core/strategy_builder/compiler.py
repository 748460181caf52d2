"""
PURPOSE: Compile a validated canonical strategy into pure decision functions
for the execution engine.

A CompiledStrategy answers five questions for a MarketContext: should we
enter, at what price, where is the stop, where is the target, and how many
contracts. Every method is total: missing or malformed market data yields
"no entry" or a documented fallback, never an exception, because these run
unattended inside the execution loop.

Candles are a pandas DataFrame with open/high/low/close/volume columns in
chronological order; the last row is the current (forming) bar. Indicator
values supplied by the engine (ema20, rsi14, atr14, ...) take precedence over
values recomputed from the candles.

CALLED BY:
    - The execution engine (outside this package)
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional, Union, assert_never

import pandas as pd

from strategy_core.config.constants import (
    DEFAULT_RISK_PERCENT,
    DEFAULT_STOP_TICKS,
    DEFAULT_TARGET_RR,
    BreakoutConfirmation,
    Direction,
    EntryOn,
    LevelType,
    Pattern,
    PositionSizing,
    PullbackConfirmation,
    RsiDirection,
    Side,
    StopLossType,
    TakeProfitType,
    ensure_pattern_coverage,
)
from strategy_core.config.settings import settings
from strategy_core.indicators import is_volume_surge, last_finite, latest_atr, latest_ema, latest_rsi
from strategy_core.risk.position_sizer import PositionSizer
from strategy_core.schemas.canonical import (
    BreakoutStrategy,
    EmaPullbackStrategy,
    OpeningRangeBreakoutStrategy,
    StrategyBase,
)
from strategy_core.schemas.validator import parse_canonical
from strategy_core.utils.logger import get_logger
from strategy_core.utils.math_utils import round_to_tick, ticks_to_price
from strategy_core.utils.time_utils import (
    is_within_window,
    minutes_of_day,
    minutes_since,
    session_window,
)

logger = get_logger("strategy_builder.compiler")

PRICE_COLUMNS = ("high", "low", "close")

ORB_CONFIDENCE = 0.85
EMA_PULLBACK_CONFIDENCE = 0.75
BREAKOUT_CONFIDENCE = 0.70


# ════════════════════════════════════════════════════════════════
# Evaluation inputs and outputs
# ════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class OpeningRange:
    """High and low of the completed opening range."""

    high: float
    low: float


@dataclass(frozen=True)
class MarketContext:
    """
    Market snapshot handed to a compiled strategy.

    Attributes:
        candles: OHLCV frame, oldest first; last row is the current bar.
        last_price: Latest traded price (defaults to the last close).
        indicators: Engine-computed values keyed like "ema20", "rsi14", "atr14".
        opening_range: Completed opening range, if the engine tracks one.
        current_time: Evaluation time; aware values are converted to the strategy timezone.
        structure_level: Swing level for structure stops, if known.
        target_level: Support/resistance level for structure targets, if known.
    """

    candles: Optional[pd.DataFrame] = None
    last_price: Optional[float] = None
    indicators: Mapping[str, float] = field(default_factory=dict)
    opening_range: Optional[OpeningRange] = None
    current_time: Optional[datetime] = None
    structure_level: Optional[float] = None
    target_level: Optional[float] = None

    def frame(self) -> pd.DataFrame:
        """Candle frame, or an empty frame when candles are missing or malformed."""
        candles = self.candles
        if not isinstance(candles, pd.DataFrame) or not set(PRICE_COLUMNS) <= set(candles.columns):
            return pd.DataFrame(columns=list(PRICE_COLUMNS))
        return candles

    def indicator(self, *keys: str) -> Optional[float]:
        """First finite indicator value among `keys`."""
        indicators = self.indicators if isinstance(self.indicators, Mapping) else {}
        for key in keys:
            value = _finite(indicators.get(key))
            if value is not None:
                return value
        return None


@dataclass(frozen=True)
class EntrySignal:
    side: Side
    reason: str
    confidence: float
    trigger_price: float


def _finite(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


# ════════════════════════════════════════════════════════════════
# Base compiled strategy
# ════════════════════════════════════════════════════════════════


class CompiledStrategy(ABC):
    """
    PURPOSE: Executable form of one canonical strategy.

    Subclasses implement `_evaluate()` for their pattern; prices, sizing and
    session checks are shared.

    Attributes:
        _strategy: Validated canonical strategy.
        _tick_size: Instrument minimum price increment.
        _session: (start, end) minutes from midnight in the strategy timezone.
        _sizer: Contract sizer bounded by the strategy's max contracts.
    """

    def __init__(self, strategy: StrategyBase) -> None:
        self._strategy = strategy
        self._tick_size: float = strategy.instrument.tick_size
        self._session: tuple[int, int] = session_window(
            strategy.time.session, strategy.time.custom_start, strategy.time.custom_end
        )
        self._sizer = PositionSizer(
            tick_size=strategy.instrument.tick_size,
            tick_value=strategy.instrument.tick_value,
            max_contracts=strategy.risk.max_contracts,
        )

    # ── metadata ──────────────────────────────────────────────────

    @property
    def strategy(self) -> StrategyBase:
        return self._strategy

    @property
    def pattern(self) -> Pattern:
        return Pattern(self._strategy.pattern)

    @property
    def direction(self) -> Direction:
        return self._strategy.direction

    @property
    def instrument(self) -> str:
        return self._strategy.instrument.symbol

    @property
    def risk_percent(self) -> Optional[float]:
        return self._strategy.risk.risk_percent

    def metadata(self) -> dict[str, Any]:
        """Plain-value summary for engine logs and dashboards."""
        return {
            "pattern": self.pattern.value,
            "direction": self.direction.value,
            "instrument": self.instrument,
            "risk_percent": self.risk_percent,
        }

    # ── entry ─────────────────────────────────────────────────────

    @abstractmethod
    def _evaluate(self, context: MarketContext) -> Optional[EntrySignal]:
        """Pattern-specific entry test; only called inside the session window."""

    def evaluate_entry(self, context: MarketContext) -> Optional[EntrySignal]:
        """
        PURPOSE: Test the entry conditions against a market snapshot.

        Args:
            context: Market snapshot.

        Returns:
            Optional[EntrySignal]: Signal with side, reason, confidence and
                trigger price, or None when there is no entry (including when
                the time is missing or outside the session).
        """
        if context.current_time is None or not self.is_time_valid(context.current_time):
            return None
        signal = self._evaluate(context)
        if signal is not None:
            logger.debug(
                "entry_signal",
                pattern=self.pattern.value,
                side=signal.side.value,
                trigger_price=signal.trigger_price,
            )
        return signal

    def should_enter(self, context: MarketContext) -> bool:
        return self.evaluate_entry(context) is not None

    def get_entry_price(self, context: MarketContext) -> Optional[float]:
        """Last traded price, falling back to the last close; None when neither is known."""
        price = _finite(context.last_price)
        if price is not None:
            return price
        return last_finite(context.frame()["close"])

    def is_time_valid(self, now: datetime) -> bool:
        """
        PURPOSE: Check `now` against the strategy session window.

        Aware datetimes are converted into the strategy timezone; naive ones
        are taken as wall-clock time there. Windows that wrap midnight (Asia)
        are handled.
        """
        if not isinstance(now, datetime):
            return False
        minute = minutes_of_day(now, self._strategy.time.timezone)
        return is_within_window(minute, *self._session)

    def _allows(self, side: Side) -> bool:
        return self.direction == Direction.BOTH or self.direction.value == side.value

    def _price_pair(self, context: MarketContext) -> Optional[tuple[float, float]]:
        """(previous close, current price); the previous close is the bar before the current one."""
        closes = context.frame()["close"]
        if len(closes) < 2:
            return None
        previous = _finite(closes.iloc[-2])
        current = _finite(context.last_price)
        if current is None:
            current = _finite(closes.iloc[-1])
        if previous is None or current is None:
            return None
        return previous, current

    # ── exits ─────────────────────────────────────────────────────

    def resolve_side(self, context: MarketContext, side: Union[Side, str, None] = None) -> Side:
        """
        Side used for exit prices: the explicit side, else the strategy's
        single direction, else the current signal's side, else long.
        """
        if side is not None:
            return Side(side)
        if self.direction != Direction.BOTH:
            return Side(self.direction.value)
        signal = self.evaluate_entry(context)
        if signal is not None:
            return signal.side
        return Side.LONG

    def get_stop_price(
        self,
        context: MarketContext,
        entry_price: Optional[float] = None,
        side: Union[Side, str, None] = None,
    ) -> Optional[float]:
        """
        PURPOSE: Compute the protective stop price.

        fixed_ticks: ticks x tick size from entry. atr_multiple: value x ATR
        (context atr14/atr, else computed, else ATR_FALLBACK_TICKS ticks).
        structure: swing level beyond the buffer. opposite_range: other side of
        the opening range beyond the buffer. Level-based stops that are missing
        or on the wrong side of entry fall back to the default 20-tick stop.

        Args:
            context: Market snapshot.
            entry_price: Planned entry (defaults to get_entry_price()).
            side: Trade side (defaults to resolve_side()).

        Returns:
            Optional[float]: Tick-rounded stop, or None when no entry price is known.
        """
        entry = _finite(entry_price) if entry_price is not None else self.get_entry_price(context)
        if entry is None:
            return None
        side = self.resolve_side(context, side)
        sign = 1 if side == Side.LONG else -1
        stop_loss = self._strategy.exit.stop_loss
        fallback = entry - sign * ticks_to_price(DEFAULT_STOP_TICKS, self._tick_size)

        if stop_loss.type == StopLossType.FIXED_TICKS:
            stop = entry - sign * ticks_to_price(stop_loss.value, self._tick_size)
        elif stop_loss.type == StopLossType.ATR_MULTIPLE:
            stop = entry - sign * stop_loss.value * self._atr(context)
        elif stop_loss.type == StopLossType.STRUCTURE:
            level = self._structure_level(context, side)
            stop = fallback if level is None else level - sign * ticks_to_price(stop_loss.value, self._tick_size)
        elif stop_loss.type == StopLossType.OPPOSITE_RANGE:
            opening_range = _valid_range(context)
            if opening_range is None:
                stop = fallback
            else:
                level = opening_range.low if side == Side.LONG else opening_range.high
                stop = level - sign * ticks_to_price(stop_loss.value, self._tick_size)
        else:
            assert_never(stop_loss.type)

        # a stop at or through the entry protects nothing
        if sign * (entry - stop) <= 0:
            stop = fallback
        return round_to_tick(stop, self._tick_size)

    def get_target_price(
        self,
        context: MarketContext,
        entry_price: Optional[float] = None,
        stop_price: Optional[float] = None,
        side: Union[Side, str, None] = None,
    ) -> Optional[float]:
        """
        PURPOSE: Compute the profit target price.

        rr_ratio: entry-to-stop distance x ratio. fixed_ticks: ticks x tick
        size. structure: the context target level when it is on the profitable
        side of entry, else 2R.

        Args:
            context: Market snapshot.
            entry_price: Planned entry (defaults to get_entry_price()).
            stop_price: Planned stop (defaults to get_stop_price()); when given
                without a side, the side is inferred from it.
            side: Trade side.

        Returns:
            Optional[float]: Tick-rounded target, or None when no entry price is known.
        """
        entry = _finite(entry_price) if entry_price is not None else self.get_entry_price(context)
        if entry is None:
            return None
        stop = _finite(stop_price)
        if side is None and stop is not None and stop != entry:
            side = Side.LONG if stop < entry else Side.SHORT
        side = self.resolve_side(context, side)
        sign = 1 if side == Side.LONG else -1
        if stop is None:
            stop = self.get_stop_price(context, entry, side)
        risk_distance = abs(entry - stop) if stop is not None else 0.0
        if risk_distance <= 0:
            risk_distance = ticks_to_price(DEFAULT_STOP_TICKS, self._tick_size)

        take_profit = self._strategy.exit.take_profit
        if take_profit.type == TakeProfitType.RR_RATIO:
            target = entry + sign * risk_distance * take_profit.value
        elif take_profit.type == TakeProfitType.FIXED_TICKS:
            target = entry + sign * ticks_to_price(take_profit.value, self._tick_size)
        elif take_profit.type == TakeProfitType.STRUCTURE:
            level = _finite(context.target_level)
            if level is not None and sign * (level - entry) > 0:
                target = level
            else:
                target = entry + sign * risk_distance * DEFAULT_TARGET_RR
        else:
            assert_never(take_profit.type)
        return round_to_tick(target, self._tick_size)

    # ── sizing ────────────────────────────────────────────────────

    def get_contract_quantity(self, account_balance: float, entry_price: float, stop_price: float) -> int:
        """
        PURPOSE: Number of contracts for a trade, always in [1, maxContracts].

        risk_percent: floor(balance x pct / 100 / (stop ticks x tick value)).
        fixed_contracts: the configured count (default maxContracts).
        """
        risk = self._strategy.risk
        if risk.position_sizing == PositionSizing.FIXED_CONTRACTS:
            return self._sizer.calculate_fixed_contracts(risk.contracts)
        elif risk.position_sizing == PositionSizing.RISK_PERCENT:
            risk_pct = risk.risk_percent if risk.risk_percent is not None else DEFAULT_RISK_PERCENT
            return self._sizer.calculate_risk_contracts(account_balance, risk_pct, entry_price, stop_price)
        else:
            assert_never(risk.position_sizing)

    # ── shared market reads ───────────────────────────────────────

    def _atr(self, context: MarketContext) -> float:
        value = context.indicator("atr14", "atr")
        if value is None:
            value = latest_atr(context.frame(), 14)
        if value is None or value <= 0:
            return ticks_to_price(settings.ATR_FALLBACK_TICKS, self._tick_size)
        return value

    def _structure_level(self, context: MarketContext, side: Side) -> Optional[float]:
        level = _finite(context.structure_level)
        if level is not None:
            return level
        recent = context.frame().tail(settings.STRUCTURE_LOOKBACK_BARS)
        if recent.empty:
            return None
        return _finite(recent["low"].min() if side == Side.LONG else recent["high"].max())


def _valid_range(context: MarketContext) -> Optional[OpeningRange]:
    opening_range = context.opening_range
    if opening_range is None:
        return None
    high, low = _finite(getattr(opening_range, "high", None)), _finite(getattr(opening_range, "low", None))
    if high is None or low is None or high < low:
        return None
    return OpeningRange(high=high, low=low)


# ════════════════════════════════════════════════════════════════
# Pattern compilers
# ════════════════════════════════════════════════════════════════


class OpeningRangeBreakoutCompiled(CompiledStrategy):
    """Enter when price crosses the completed opening range high or low."""

    _strategy: OpeningRangeBreakoutStrategy

    def _evaluate(self, context: MarketContext) -> Optional[EntrySignal]:
        entry = self._strategy.entry
        opening_range = _valid_range(context)
        if opening_range is None:
            return None

        # no entries while the range is still forming
        minute = minutes_of_day(context.current_time, self._strategy.time.timezone)
        if minutes_since(self._session[0], minute) < entry.period_minutes:
            return None

        prices = self._price_pair(context)
        if prices is None:
            return None
        previous, current = prices

        if self._allows(Side.LONG) and entry.entry_on in (EntryOn.BREAK_HIGH, EntryOn.BOTH):
            if previous <= opening_range.high < current:
                return EntrySignal(
                    side=Side.LONG,
                    reason=f"ORB: price broke above opening range high at {opening_range.high:.2f}",
                    confidence=ORB_CONFIDENCE,
                    trigger_price=opening_range.high,
                )
        if self._allows(Side.SHORT) and entry.entry_on in (EntryOn.BREAK_LOW, EntryOn.BOTH):
            if previous >= opening_range.low > current:
                return EntrySignal(
                    side=Side.SHORT,
                    reason=f"ORB: price broke below opening range low at {opening_range.low:.2f}",
                    confidence=ORB_CONFIDENCE,
                    trigger_price=opening_range.low,
                )
        return None


class EmaPullbackCompiled(CompiledStrategy):
    """Trend by EMA side, a recent touch of the EMA, then the configured confirmation."""

    _strategy: EmaPullbackStrategy

    def _evaluate(self, context: MarketContext) -> Optional[EntrySignal]:
        entry = self._strategy.entry
        frame = context.frame()
        ema_value = self._ema(context, frame)
        prices = self._price_pair(context)
        if ema_value is None or prices is None:
            return None
        previous_close, current_price = prices

        recent = frame.tail(settings.EMA_TOUCH_LOOKBACK_BARS)
        if not ((recent["low"] <= ema_value) & (recent["high"] >= ema_value)).any():
            return None
        if not self._rsi_allows(context, frame):
            return None

        prev_candle, current_candle = frame.iloc[-2], frame.iloc[-1]
        if self._allows(Side.LONG) and current_price > ema_value and previous_close > ema_value:
            if self._confirmed(Side.LONG, prev_candle, current_candle, ema_value):
                return EntrySignal(
                    side=Side.LONG,
                    reason=f"EMA {entry.ema_period} pullback buy - price held above {ema_value:.2f}",
                    confidence=EMA_PULLBACK_CONFIDENCE,
                    trigger_price=ema_value,
                )
        if self._allows(Side.SHORT) and current_price < ema_value and previous_close < ema_value:
            if self._confirmed(Side.SHORT, prev_candle, current_candle, ema_value):
                return EntrySignal(
                    side=Side.SHORT,
                    reason=f"EMA {entry.ema_period} pullback sell - price rejected at {ema_value:.2f}",
                    confidence=EMA_PULLBACK_CONFIDENCE,
                    trigger_price=ema_value,
                )
        return None

    def _ema(self, context: MarketContext, frame: pd.DataFrame) -> Optional[float]:
        period = self._strategy.entry.ema_period
        value = context.indicator(f"ema{period}")
        if value is None:
            value = latest_ema(frame, period)
        return value

    def _rsi_allows(self, context: MarketContext, frame: pd.DataFrame) -> bool:
        """RSI filter check; an unknown RSI value blocks the entry."""
        rsi_filter = self._strategy.entry.rsi_filter
        if rsi_filter is None:
            return True
        value = context.indicator(f"rsi{rsi_filter.period}", "rsi14", "rsi")
        if value is None:
            value = latest_rsi(frame, rsi_filter.period)
        if value is None:
            return False
        if rsi_filter.direction == RsiDirection.BELOW:
            return value < rsi_filter.threshold
        elif rsi_filter.direction == RsiDirection.ABOVE:
            return value > rsi_filter.threshold
        else:
            assert_never(rsi_filter.direction)

    def _confirmed(self, side: Side, prev_candle: pd.Series, current_candle: pd.Series, ema_value: float) -> bool:
        confirmation = self._strategy.entry.pullback_confirmation
        if confirmation == PullbackConfirmation.TOUCH:
            return True
        sign = 1 if side == Side.LONG else -1
        # the previous bar must have reached the EMA from the trend side
        reached = prev_candle["low"] <= ema_value if side == Side.LONG else prev_candle["high"] >= ema_value
        closed_beyond = sign * (current_candle["close"] - ema_value) > 0
        if confirmation == PullbackConfirmation.CLOSE_ABOVE:
            return bool(reached and closed_beyond)
        elif confirmation == PullbackConfirmation.BOUNCE:
            momentum = sign * (current_candle["close"] - prev_candle["close"]) > 0
            return bool(reached and closed_beyond and momentum)
        else:
            assert_never(confirmation)


class BreakoutCompiled(CompiledStrategy):
    """Break of the N-bar high/low that precedes the current bar."""

    _strategy: BreakoutStrategy

    def _evaluate(self, context: MarketContext) -> Optional[EntrySignal]:
        entry = self._strategy.entry
        frame = context.frame()
        lookback = entry.lookback_period
        if len(frame) < lookback + 1:
            return None
        prices = self._price_pair(context)
        if prices is None:
            return None
        previous_close, current_price = prices

        window = frame.iloc[-(lookback + 1):-1]
        period_high = _finite(window["high"].max())
        period_low = _finite(window["low"].min())
        if period_high is None or period_low is None:
            return None

        if self._allows(Side.LONG) and entry.level_type in (LevelType.RESISTANCE, LevelType.BOTH):
            if previous_close <= period_high < current_price and self._confirmed(Side.LONG, frame, period_high):
                return EntrySignal(
                    side=Side.LONG,
                    reason=f"Breakout above {lookback}-period high at {period_high:.2f}",
                    confidence=BREAKOUT_CONFIDENCE,
                    trigger_price=period_high,
                )
        if self._allows(Side.SHORT) and entry.level_type in (LevelType.SUPPORT, LevelType.BOTH):
            if previous_close >= period_low > current_price and self._confirmed(Side.SHORT, frame, period_low):
                return EntrySignal(
                    side=Side.SHORT,
                    reason=f"Breakdown below {lookback}-period low at {period_low:.2f}",
                    confidence=BREAKOUT_CONFIDENCE,
                    trigger_price=period_low,
                )
        return None

    def _confirmed(self, side: Side, frame: pd.DataFrame, level: float) -> bool:
        confirmation = self._strategy.entry.confirmation
        current_candle = frame.iloc[-1]
        if confirmation == BreakoutConfirmation.NONE:
            return True
        elif confirmation == BreakoutConfirmation.CLOSE:
            close = _finite(current_candle["close"])
            if close is None:
                return False
            return close > level if side == Side.LONG else close < level
        elif confirmation == BreakoutConfirmation.VOLUME:
            return is_volume_surge(frame, settings.VOLUME_AVERAGE_BARS, settings.VOLUME_CONFIRMATION_MULTIPLIER)
        else:
            assert_never(confirmation)


_COMPILERS: dict[Pattern, type[CompiledStrategy]] = {
    Pattern.OPENING_RANGE_BREAKOUT: OpeningRangeBreakoutCompiled,
    Pattern.EMA_PULLBACK: EmaPullbackCompiled,
    Pattern.BREAKOUT: BreakoutCompiled,
}

ensure_pattern_coverage(_COMPILERS, "_COMPILERS")


def compile_strategy(strategy: StrategyBase) -> CompiledStrategy:
    """
    PURPOSE: Compile a validated canonical strategy.

    Args:
        strategy: Output of validate()/parse_canonical().

    Returns:
        CompiledStrategy: Pattern-specific compiled strategy.

    Raises:
        TypeError: If given anything other than a validated strategy model;
            use compile_from_unknown() for raw data.
    """
    if not isinstance(strategy, StrategyBase):
        raise TypeError(
            f"compile_strategy expects a validated strategy, got {type(strategy).__name__}; "
            "use compile_from_unknown for raw data"
        )
    compiled = _COMPILERS[Pattern(strategy.pattern)](strategy)
    logger.info("strategy_compiled", **compiled.metadata())
    return compiled


def compile_from_unknown(raw: Any) -> CompiledStrategy:
    """
    PURPOSE: Validate raw data (e.g., a stored snapshot) and compile it.

    Raises:
        CanonicalValidationError: If the data is not a valid canonical strategy.
    """
    return compile_strategy(parse_canonical(raw))
