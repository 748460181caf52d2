"""
PURPOSE: Tests for fragment normalization into canonical strategies.

Tests:
- End-to-end normalization per pattern
- Blocking errors (unknown instrument, unknown pattern)
- Default policy for missing fragments
- Risk and time mapping
"""

import pytest

from strategy_core.errors import NormalizationError
from strategy_core.schemas import OpeningRangeBreakoutStrategy, to_snapshot
from strategy_core.schemas.fragments import Filter, PositionSizingInput
from strategy_core.strategy_builder import normalize, normalize_or_raise
from strategy_core.strategy_builder.normalizer import normalize_risk, normalize_time


def _fragments(instrument="ES", entries=(), exits=(), filters=(), sizing=None):
    return {
        "strategy_name": "test",
        "instrument": instrument,
        "parsed_rules": {
            "entry_conditions": list(entries),
            "exit_conditions": list(exits),
            "filters": list(filters),
            "position_sizing": sizing,
        },
    }


class TestNormalizeOpeningRange:
    """Test the opening range breakout path."""

    def test_scenario_opening_range(self, orb_fragments):
        """Test ES 15-minute ORB fragments normalize with their stop and risk."""
        result = normalize(orb_fragments)
        assert result.success, result.errors
        strategy = result.canonical
        assert isinstance(strategy, OpeningRangeBreakoutStrategy)
        assert strategy.pattern == "opening_range_breakout"
        assert strategy.entry.period_minutes == 15
        assert strategy.instrument.symbol == "ES"

        snapshot = to_snapshot(strategy)
        assert snapshot["exit"]["stopLoss"] == {"type": "opposite_range", "value": 1.0}
        assert snapshot["risk"] == {"positionSizing": "risk_percent", "riskPercent": 1.0, "maxContracts": 5}

    def test_period_is_clamped(self, orb_fragments):
        """Test an out-of-range period is clamped rather than rejected."""
        orb_fragments["parsed_rules"]["entry_conditions"][0]["description"] = "240 minute opening range"
        result = normalize(orb_fragments)
        assert result.success
        assert result.canonical.entry.period_minutes == 120

    def test_entry_side(self, orb_fragments):
        """Test a high-side only description trades the high break."""
        orb_fragments["parsed_rules"]["entry_conditions"][0]["description"] = "buy above the 30 min opening range high"
        result = normalize(orb_fragments)
        assert result.canonical.entry.entry_on.value == "break_high"
        assert result.canonical.entry.period_minutes == 30
        assert result.canonical.direction.value == "long"


class TestNormalizeOtherPatterns:
    """Test EMA pullback and breakout normalization."""

    def test_ema_pullback_with_rsi_filter(self):
        """Test EMA period, confirmation and RSI filter extraction."""
        fragments = _fragments(
            instrument="nasdaq",
            entries=[{"indicator": "EMA", "period": 21, "description": "pullback to the 21 EMA, close back above"}],
            filters=[{"type": "indicator", "indicator": "RSI", "period": 14, "condition": "below", "value": 40}],
        )
        result = normalize(fragments)
        assert result.success, result.errors
        entry = to_snapshot(result.canonical)["entry"]
        assert entry == {
            "emaPeriod": 21,
            "pullbackConfirmation": "close_above",
            "rsiFilter": {"period": 14, "threshold": 40.0, "direction": "below"},
        }
        assert result.canonical.instrument.symbol == "NQ"

    def test_ema_pullback_rsi_from_entry(self):
        """Test an RSI entry fragment becomes the filter, not the EMA period."""
        fragments = _fragments(
            entries=[
                {"indicator": "EMA", "description": "bounce off the 50 EMA"},
                {"indicator": "RSI(7)", "relation": "above", "value": 55, "description": "RSI above 55"},
            ],
        )
        result = normalize(fragments)
        assert result.success, result.errors
        entry = result.canonical.entry
        assert entry.ema_period == 50
        assert entry.pullback_confirmation.value == "bounce"
        assert entry.rsi_filter.period == 7
        assert entry.rsi_filter.threshold == 55
        assert entry.rsi_filter.direction.value == "above"

    def test_breakout(self):
        """Test breakout lookback, level type and confirmation."""
        fragments = _fragments(
            instrument="gold",
            entries=[{"indicator": "price", "description": "breakout above 20 bar resistance with volume"}],
        )
        result = normalize(fragments)
        assert result.success, result.errors
        assert to_snapshot(result.canonical)["entry"] == {
            "lookbackPeriod": 20,
            "levelType": "resistance",
            "confirmation": "volume",
        }


class TestNormalizeErrors:
    """Test blocking and validation failures."""

    def test_scenario_unknown_instrument(self, orb_fragments):
        """Test an unknown instrument fails with an instrument error."""
        orb_fragments["instrument"] = "UNKNOWN"
        result = normalize(orb_fragments)
        assert not result.success
        assert result.canonical is None
        assert any("instrument" in error for error in result.errors)
        assert result.partial is None

    def test_errors_accumulate(self):
        """Test unknown instrument and unknown pattern are reported together."""
        result = normalize(_fragments(instrument="XX", entries=[{"description": "buy when RSI is oversold"}]))
        assert not result.success
        assert len(result.errors) == 2
        assert result.errors[0].startswith("Unknown instrument: XX")
        assert result.errors[1].startswith("Could not detect strategy pattern")

    def test_risk_above_ceiling_is_rejected(self, orb_fragments):
        """Test 6% risk is not clamped and fails validation with a partial candidate."""
        orb_fragments["parsed_rules"]["position_sizing"] = {"method": "risk_percent", "value": 6}
        result = normalize(orb_fragments)
        assert not result.success
        assert any(e.startswith("risk.riskPercent:") for e in result.errors)
        assert result.partial["risk"]["riskPercent"] == 6

    @pytest.mark.parametrize(
        "sizing",
        [
            {"method": "fixed", "value": float("nan")},
            {"method": "fixed", "value": float("inf")},
            {"method": "risk_percent", "value": 1, "max_contracts": float("inf")},
        ],
    )
    def test_non_finite_sizing_is_reported(self, orb_fragments, sizing):
        """Test NaN or infinite sizing fails the result instead of raising."""
        orb_fragments["parsed_rules"]["position_sizing"] = sizing
        result = normalize(orb_fragments)
        assert not result.success
        assert result.canonical is None
        assert any(e.startswith("parsed_rules.position_sizing.") for e in result.errors)

    def test_malformed_input(self):
        """Test malformed fragments fail without raising."""
        result = normalize({"parsed_rules": "not rules"})
        assert not result.success
        assert result.errors

    def test_normalize_or_raise(self, orb_fragments):
        """Test the raising variant."""
        assert normalize_or_raise(orb_fragments).pattern == "opening_range_breakout"
        orb_fragments["instrument"] = "UNKNOWN"
        with pytest.raises(NormalizationError):
            normalize_or_raise(orb_fragments)


class TestDefaultPolicy:
    """Test the defaults applied to missing fragments."""

    def test_defaults(self):
        """Test 20-tick stop, 1:2 target, 1%/10 contracts and the NY session."""
        result = normalize(_fragments(entries=[{"description": "trade the opening range breakout"}]))
        assert result.success, result.errors
        snapshot = to_snapshot(result.canonical)
        assert snapshot["exit"] == {
            "stopLoss": {"type": "fixed_ticks", "value": 20.0},
            "takeProfit": {"type": "rr_ratio", "value": 2.0},
        }
        assert snapshot["risk"] == {"positionSizing": "risk_percent", "riskPercent": 1.0, "maxContracts": 10}
        assert snapshot["time"] == {"session": "ny", "timezone": "America/New_York"}
        assert snapshot["direction"] == "both"
        assert snapshot["entry"] == {"periodMinutes": 15, "entryOn": "both"}


class TestNormalizeRisk:
    """Test sizing descriptor mapping."""

    def test_missing(self):
        """Test the 1% / 10 contract default."""
        assert normalize_risk(None) == {"positionSizing": "risk_percent", "riskPercent": 1.0, "maxContracts": 10}

    def test_fixed(self):
        """Test fixed sizing keeps the count as contracts and ceiling."""
        assert normalize_risk(PositionSizingInput(method="fixed", value=3)) == {
            "positionSizing": "fixed_contracts",
            "maxContracts": 3,
            "contracts": 3,
        }

    def test_fixed_clamped(self):
        """Test fixed counts are clamped to [1, 20]."""
        risk = normalize_risk(PositionSizingInput(method="fixed", value=50, max_contracts=25))
        assert risk["contracts"] == 20
        assert risk["maxContracts"] == 20

    def test_kelly_maps_to_risk_percent(self):
        """Test kelly sizing is read as a risk percent."""
        assert normalize_risk(PositionSizingInput(method="kelly", value=2)) == {
            "positionSizing": "risk_percent",
            "riskPercent": 2.0,
            "maxContracts": 10,
        }

    def test_risk_percent_not_clamped(self):
        """Test the percent is passed through for the validator to judge."""
        assert normalize_risk(PositionSizingInput(method="risk_percent", value=8, max_contracts=40)) == {
            "positionSizing": "risk_percent",
            "riskPercent": 8.0,
            "maxContracts": 20,
        }


class TestNormalizeTime:
    """Test session mapping."""

    def test_no_filter(self):
        """Test the NY default."""
        assert normalize_time([]) == {"session": "ny", "timezone": "America/New_York"}

    @pytest.mark.parametrize(
        "start,end,session",
        [("9:30", "16:00", "ny"), ("03:00", "11:30", "london"), ("20:00", "4:00", "asia")],
    )
    def test_named_windows(self, start, end, session):
        """Test exact windows map onto named sessions."""
        assert normalize_time([Filter(type="time_window", start=start, end=end)])["session"] == session

    def test_custom_window(self):
        """Test other windows stay custom with zero-padded bounds."""
        assert normalize_time([Filter(type="time_window", start="10:00", end="2:00 pm")]) == {
            "session": "custom",
            "timezone": "America/New_York",
            "customStart": "10:00",
            "customEnd": "14:00",
        }

    def test_named_session_without_bounds(self):
        """Test a session filter is matched by name."""
        assert normalize_time([Filter(type="session", description="London session only")])["session"] == "london"

    def test_non_time_filters_ignored(self):
        """Test indicator filters do not affect the session."""
        filters = [Filter(type="indicator", indicator="RSI"), Filter(type="time_window", start="03:00", end="11:30")]
        assert normalize_time(filters)["session"] == "london"
