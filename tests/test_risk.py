"""
PURPOSE: Tests for futures position sizing.

Tests the PositionSizer:
- Risk-percent contract calculation
- Clamping to [1, max_contracts]
- Degenerate inputs resolve to one contract
- Fixed-contract resolution
"""

from decimal import Decimal

import numpy as np
import pytest

from strategy_core.risk import PositionSizer


@pytest.fixture
def es_sizer():
    """
    PURPOSE: Sizer for ES (0.25 tick, $12.50 per tick) capped at 10 contracts.

    Returns:
        PositionSizer: Configured sizer.
    """
    return PositionSizer(tick_size=0.25, tick_value=12.50, max_contracts=10)


class TestRiskContracts:
    """Test risk-percent sizing."""

    def test_normal_case(self, es_sizer):
        """Test normal position sizing."""
        # balance=50000, risk=1%, stop=10 points = 40 ticks = $500/contract
        # contracts = 500 / 500 = 1
        assert es_sizer.calculate_risk_contracts(50_000, 1.0, 5000.0, 4990.0) == 1

    def test_higher_risk(self, es_sizer):
        """Test sizing with a higher risk percentage."""
        # balance=50000, risk=3% = $1500 -> 3 contracts at $500
        assert es_sizer.calculate_risk_contracts(50_000, 3.0, 5000.0, 4990.0) == 3

    def test_short_side_distance(self, es_sizer):
        """Test a stop above entry sizes by the absolute distance."""
        assert es_sizer.calculate_risk_contracts(50_000, 3.0, 4990.0, 5000.0) == 3

    def test_rounds_down(self, es_sizer):
        """Test partial contracts are floored."""
        # $1000 risk / $500 per contract = 2, $1200 / $500 = 2.4 -> 2
        assert es_sizer.calculate_risk_contracts(120_000, 1.0, 5000.0, 4990.0) == 2

    def test_numpy_and_decimal_inputs(self, es_sizer):
        """Test numpy scalars and Decimal size the same as floats."""
        assert es_sizer.calculate_risk_contracts(np.int64(120_000), np.float64(1.0), 5000.0, 4990.0) == 2
        assert es_sizer.calculate_risk_contracts(Decimal("120000"), Decimal("1"), Decimal("5000"), Decimal("4990")) == 2

    def test_exact_division_not_lost_to_float_noise(self):
        """Test an exact quotient is not floored one contract short."""
        sizer = PositionSizer(tick_size=0.1, tick_value=10.0, max_contracts=20)
        # 0.3 points = 3 ticks = $30; $90 risk -> exactly 3
        assert sizer.calculate_risk_contracts(9_000, 1.0, 100.3, 100.0) == 3

    def test_clamped_to_max(self, es_sizer):
        """Test the ceiling is never exceeded."""
        assert es_sizer.calculate_risk_contracts(10_000_000, 5.0, 5000.0, 4999.0) == 10

    def test_clamped_to_min(self, es_sizer):
        """Test the floor of one contract."""
        assert es_sizer.calculate_risk_contracts(1_000, 0.5, 5000.0, 4900.0) == 1

    @pytest.mark.parametrize(
        "balance,risk_pct,entry,stop",
        [
            (0, 1.0, 5000.0, 4990.0),
            (-5_000, 1.0, 5000.0, 4990.0),
            (50_000, 0, 5000.0, 4990.0),
            (50_000, 1.0, 5000.0, 5000.0),
            (float("nan"), 1.0, 5000.0, 4990.0),
            (50_000, 1.0, float("inf"), 4990.0),
            (50_000, 1.0, None, 4990.0),
        ],
    )
    def test_degenerate_inputs(self, es_sizer, balance, risk_pct, entry, stop):
        """Test inputs that cannot be sized resolve to one contract."""
        assert es_sizer.calculate_risk_contracts(balance, risk_pct, entry, stop) == 1


class TestFixedContracts:
    """Test fixed-contract resolution."""

    def test_configured_count(self, es_sizer):
        """Test the configured count is used."""
        assert es_sizer.calculate_fixed_contracts(3) == 3

    def test_default_to_ceiling(self, es_sizer):
        """Test a missing count uses the ceiling."""
        assert es_sizer.calculate_fixed_contracts(None) == 10

    def test_count_clamped(self, es_sizer):
        """Test a count above the ceiling is clamped."""
        assert es_sizer.calculate_fixed_contracts(15) == 10


class TestSizerLimits:
    """Test sizer limits."""

    def test_ceiling_never_below_floor(self):
        """Test a zero ceiling still allows one contract."""
        sizer = PositionSizer(tick_size=0.25, tick_value=12.50, max_contracts=0)
        assert sizer.clamp(5) == 1
        assert sizer.calculate_fixed_contracts(None) == 1

    def test_clamp_nan(self, es_sizer):
        """Test NaN clamps to the floor."""
        assert es_sizer.clamp(float("nan")) == 1
