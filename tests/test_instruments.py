"""
PURPOSE: Tests for the instrument registry.

Tests symbol and alias resolution:
- Canonical symbols, case and whitespace
- Every documented alias resolves to its canonical spec
- Unknown text is never guessed
"""

import pytest

from strategy_core.instruments import (
    INSTRUMENT_ALIASES,
    INSTRUMENT_SPECS,
    aliases_for,
    get_instrument,
    resolve,
    supported_symbols,
)


class TestResolve:
    """Test resolve() over symbols and aliases."""

    @pytest.mark.parametrize("text", ["ES", "es", " Es ", "eS"])
    def test_resolve_symbol_case_insensitive(self, text):
        """Test canonical symbols resolve regardless of case and padding."""
        assert resolve(text).symbol == "ES"

    @pytest.mark.parametrize(
        "text,symbol",
        [("e-mini", "ES"), ("E-MINI", "ES"), ("nasdaq", "NQ"), ("Gold", "GC"), ("crude oil", "CL"), ("russell 2000", "RTY")],
    )
    def test_resolve_alias(self, text, symbol):
        """Test aliases resolve to the canonical spec."""
        assert resolve(text) is INSTRUMENT_SPECS[symbol]

    def test_every_alias_resolves_to_its_symbol(self):
        """Test alias closure over the whole table."""
        for alias, symbol in INSTRUMENT_ALIASES.items():
            assert resolve(alias.lower()) == resolve(symbol)

    @pytest.mark.parametrize("text", ["UNKNOWN", "", None, "E", "nasdaq futures", 42])
    def test_resolve_unknown(self, text):
        """Test unknown or partial text is not found."""
        assert resolve(text) is None


class TestRegistry:
    """Test registry helpers and specs."""

    def test_supported_symbols(self):
        """Test the supported symbol set."""
        assert set(supported_symbols()) == {"ES", "NQ", "YM", "RTY", "CL", "GC", "SI"}

    def test_es_spec(self):
        """Test ES contract values."""
        spec = get_instrument("ES")
        assert spec.tick_size == 0.25
        assert spec.tick_value == 12.50
        assert spec.contract_size == 50

    def test_get_instrument_ignores_aliases(self):
        """Test exact lookup does not resolve aliases."""
        assert get_instrument("gold") is None
        assert get_instrument("gc").symbol == "GC"

    def test_aliases_for(self):
        """Test alias listing per symbol."""
        assert aliases_for("CL") == frozenset({"CRUDE", "CRUDE OIL", "OIL"})
        assert get_instrument("NQ").aliases == frozenset({"NASDAQ", "NASDAQ 100"})
        assert aliases_for("XX") == frozenset()

    def test_spec_serializes_camel_case(self):
        """Test the persisted instrument shape."""
        assert get_instrument("NQ").model_dump(by_alias=True) == {
            "symbol": "NQ",
            "contractSize": 20,
            "tickSize": 0.25,
            "tickValue": 5.0,
        }
