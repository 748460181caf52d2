"""
PURPOSE: Instrument registry package.

Exports:
    - InstrumentSpec: Contract specification model
    - resolve: Case-insensitive symbol/alias resolution
    - get_instrument: Exact canonical lookup
"""

from strategy_core.instruments.registry import (
    INSTRUMENT_ALIASES,
    INSTRUMENT_SPECS,
    InstrumentSpec,
    aliases_for,
    get_instrument,
    resolve,
    supported_symbols,
)

__all__ = [
    "InstrumentSpec",
    "INSTRUMENT_SPECS",
    "INSTRUMENT_ALIASES",
    "aliases_for",
    "get_instrument",
    "resolve",
    "supported_symbols",
]
