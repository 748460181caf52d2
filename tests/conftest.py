"""
PURPOSE: Pytest fixtures for strategy core tests.

Provides shared test data including:
- Rule fragments as produced by the LLM extraction step
- Canonical strategy snapshots for each pattern
- OHLCV candle frames for the compiled strategies
"""

import copy
from datetime import datetime

import numpy as np
import pandas as pd
import pytest

from strategy_core.instruments import get_instrument


def _instrument(symbol: str) -> dict:
    return get_instrument(symbol).model_dump(mode="json", by_alias=True)


@pytest.fixture
def orb_fragments():
    """
    PURPOSE: Fragments of an ES 15-minute opening range breakout.

    Stop on the opposite side of the range, 1% risk capped at 5 contracts.

    Returns:
        dict: snake_case fragments payload.
    """
    return {
        "strategy_name": "ES Opening Range",
        "summary": "Trade the break of the first 15 minutes",
        "instrument": "ES",
        "parsed_rules": {
            "entry_conditions": [
                {
                    "indicator": "Opening Range",
                    "relation": "breaks",
                    "description": "15 minute opening range breakout",
                }
            ],
            "exit_conditions": [
                {"type": "stop_loss", "value": 0, "unit": "ticks", "description": "opposite side of range"},
            ],
            "filters": [],
            "position_sizing": {"method": "risk_percent", "value": 1, "max_contracts": 5},
        },
    }


@pytest.fixture
def orb_snapshot():
    """
    PURPOSE: Canonical ES opening range breakout snapshot.

    Returns:
        dict: camelCase snapshot with an opposite-range stop and 1% / 5 contract risk.
    """
    return {
        "pattern": "opening_range_breakout",
        "direction": "both",
        "instrument": _instrument("ES"),
        "entry": {"periodMinutes": 15, "entryOn": "both"},
        "exit": {
            "stopLoss": {"type": "opposite_range", "value": 1},
            "takeProfit": {"type": "rr_ratio", "value": 2},
        },
        "risk": {"positionSizing": "risk_percent", "riskPercent": 1, "maxContracts": 5},
        "time": {"session": "ny", "timezone": "America/New_York"},
    }


@pytest.fixture
def ema_snapshot():
    """
    PURPOSE: Canonical NQ 20 EMA pullback snapshot with a fixed 20-tick stop.

    Returns:
        dict: camelCase snapshot without an RSI filter.
    """
    return {
        "pattern": "ema_pullback",
        "direction": "both",
        "instrument": _instrument("NQ"),
        "entry": {"emaPeriod": 20, "pullbackConfirmation": "touch"},
        "exit": {
            "stopLoss": {"type": "fixed_ticks", "value": 20},
            "takeProfit": {"type": "rr_ratio", "value": 2},
        },
        "risk": {"positionSizing": "risk_percent", "riskPercent": 1, "maxContracts": 10},
        "time": {"session": "ny", "timezone": "America/New_York"},
    }


@pytest.fixture
def breakout_snapshot():
    """
    PURPOSE: Canonical ES 5-bar breakout snapshot confirmed by the close.

    Returns:
        dict: camelCase snapshot with fixed-contract sizing.
    """
    return {
        "pattern": "breakout",
        "direction": "both",
        "instrument": _instrument("ES"),
        "entry": {"lookbackPeriod": 5, "levelType": "both", "confirmation": "close"},
        "exit": {
            "stopLoss": {"type": "fixed_ticks", "value": 16},
            "takeProfit": {"type": "fixed_ticks", "value": 32},
        },
        "risk": {"positionSizing": "fixed_contracts", "maxContracts": 4, "contracts": 2},
        "time": {"session": "ny", "timezone": "America/New_York"},
    }


@pytest.fixture
def with_changes():
    """
    PURPOSE: Deep-copy a snapshot and apply dotted-path overrides.

    Returns:
        Callable[[dict, dict], dict]: (snapshot, {"exit.stopLoss.value": 8}) -> new snapshot.
    """

    def _apply(snapshot: dict, changes: dict) -> dict:
        result = copy.deepcopy(snapshot)
        for path, value in changes.items():
            *parents, leaf = path.split(".")
            node = result
            for key in parents:
                node = node.setdefault(key, {})
            node[leaf] = value
        return result

    return _apply


@pytest.fixture
def make_candles():
    """
    PURPOSE: Build an OHLCV frame from (open, high, low, close) rows.

    Volume defaults to 1000 per bar unless a volume list is passed.

    Returns:
        Callable: (rows, volumes=None) -> pd.DataFrame with lower-case columns.
    """

    def _build(rows, volumes=None):
        frame = pd.DataFrame(rows, columns=["open", "high", "low", "close"])
        frame["volume"] = volumes if volumes is not None else [1000] * len(rows)
        frame.index = pd.date_range(start="2024-01-02 09:30", periods=len(rows), freq="5min")
        return frame

    return _build


@pytest.fixture
def session_time():
    """
    PURPOSE: 10:00 New York wall-clock time, 30 minutes into the NY session.

    Returns:
        datetime: Naive datetime interpreted in the strategy timezone.
    """
    return datetime(2024, 1, 2, 10, 0)


@pytest.fixture
def sample_candles():
    """
    PURPOSE: DataFrame with 100 rows of trending OHLCV data for indicator tests.

    Returns:
        pd.DataFrame: Columns [open, high, low, close, volume], 5-minute index.
    """
    np.random.seed(42)
    prices = np.cumsum(np.random.randn(100) * 0.5 + 0.3)
    prices = prices - prices[0] + 5000

    opens = prices + np.random.randn(100) * 0.2
    closes = prices + np.random.randn(100) * 0.2
    highs = np.maximum.reduce([opens, closes, prices + np.abs(np.random.randn(100) * 0.5)])
    lows = np.minimum.reduce([opens, closes, prices - np.abs(np.random.randn(100) * 0.5)])

    return pd.DataFrame(
        {
            "open": opens,
            "high": highs,
            "low": lows,
            "close": closes,
            "volume": np.random.randint(1000, 10000, 100),
        },
        index=pd.date_range(start="2024-01-02 09:30", periods=100, freq="5min"),
    )
