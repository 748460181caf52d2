"""
PURPOSE: Static registry of tradable futures instruments and alias resolution.

Holds the CME contract specs the canonical schema accepts and a fixed alias
table for the names users actually type ("e-mini", "nasdaq", "gold").
Resolution is exact and case-insensitive: anything that is neither a
canonical symbol nor a documented alias is not found, never guessed.

CALLED BY:
    - strategy_builder/normalizer.py (instrument normalization)
    - strategy_builder/defaults.py (pattern defaults for an instrument)
    - schemas/canonical.py (instrument sub-model of every strategy)
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from strategy_core.utils.logger import get_logger

logger = get_logger("instruments.registry")

SUPPORTED_SYMBOLS: tuple[str, ...] = ("ES", "NQ", "YM", "RTY", "CL", "GC", "SI")


class InstrumentSpec(BaseModel):
    """
    PURPOSE: Contract specification of one futures instrument.

    Attributes:
        symbol: Canonical ticker (ES, NQ, ...).
        contract_size: Contract multiplier (dollars per point).
        tick_size: Minimum price increment.
        tick_value: Dollar value of one tick.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
        allow_inf_nan=False,
    )

    symbol: str
    contract_size: float = Field(gt=0)
    tick_size: float = Field(gt=0)
    tick_value: float = Field(gt=0)

    @field_validator("symbol")
    @classmethod
    def validate_symbol(cls, v: str) -> str:
        """Validate the symbol is one of the supported canonical tickers."""
        if v not in SUPPORTED_SYMBOLS:
            raise ValueError(
                f"unsupported instrument '{v}'. Supported: {', '.join(SUPPORTED_SYMBOLS)}"
            )
        return v

    @property
    def aliases(self) -> frozenset[str]:
        """Alias strings that resolve to this instrument."""
        return aliases_for(self.symbol)


INSTRUMENT_SPECS: dict[str, InstrumentSpec] = {
    "ES": InstrumentSpec(symbol="ES", contract_size=50, tick_size=0.25, tick_value=12.50),
    "NQ": InstrumentSpec(symbol="NQ", contract_size=20, tick_size=0.25, tick_value=5.00),
    "YM": InstrumentSpec(symbol="YM", contract_size=5, tick_size=1.0, tick_value=5.00),
    "RTY": InstrumentSpec(symbol="RTY", contract_size=50, tick_size=0.10, tick_value=5.00),
    "CL": InstrumentSpec(symbol="CL", contract_size=1000, tick_size=0.01, tick_value=10.00),
    "GC": InstrumentSpec(symbol="GC", contract_size=100, tick_size=0.10, tick_value=10.00),
    "SI": InstrumentSpec(symbol="SI", contract_size=5000, tick_size=0.005, tick_value=25.00),
}

# Upper-cased alias -> canonical symbol
INSTRUMENT_ALIASES: dict[str, str] = {
    "E-MINI": "ES",
    "E-MINI S&P": "ES",
    "S&P 500": "ES",
    "SP500": "ES",
    "NASDAQ": "NQ",
    "NASDAQ 100": "NQ",
    "DOW": "YM",
    "DOW JONES": "YM",
    "RUSSELL": "RTY",
    "RUSSELL 2000": "RTY",
    "CRUDE": "CL",
    "CRUDE OIL": "CL",
    "OIL": "CL",
    "GOLD": "GC",
    "SILVER": "SI",
}


def supported_symbols() -> tuple[str, ...]:
    """Canonical tickers accepted by the schema, in registry order."""
    return SUPPORTED_SYMBOLS


def aliases_for(symbol: str) -> frozenset[str]:
    """
    PURPOSE: List the aliases that resolve to a canonical symbol.

    Args:
        symbol: Canonical ticker.

    Returns:
        frozenset[str]: Upper-cased alias strings (empty for unknown symbols).
    """
    return frozenset(alias for alias, target in INSTRUMENT_ALIASES.items() if target == symbol)


def get_instrument(symbol: str) -> Optional[InstrumentSpec]:
    """Exact canonical lookup (case-insensitive), no alias resolution."""
    return INSTRUMENT_SPECS.get(str(symbol).strip().upper())


def resolve(symbol: Optional[str]) -> Optional[InstrumentSpec]:
    """
    PURPOSE: Resolve user or LLM supplied instrument text to a contract spec.

    Tries the canonical symbol first, then the alias table. Matching is
    case-insensitive and whitespace-trimmed; there is no partial matching.

    CALLED BY: strategy_builder/normalizer.py, strategy_builder/defaults.py

    Args:
        symbol: Raw instrument text (e.g., "es", "E-Mini", "Nasdaq").

    Returns:
        Optional[InstrumentSpec]: Matching spec, or None when not found.
    """
    if not symbol or not isinstance(symbol, str):
        return None

    key = symbol.strip().upper()
    spec = INSTRUMENT_SPECS.get(key)
    if spec is not None:
        return spec

    target = INSTRUMENT_ALIASES.get(key)
    if target is not None:
        logger.debug("instrument_alias_resolved", alias=symbol, symbol=target)
        return INSTRUMENT_SPECS[target]

    logger.debug("instrument_not_found", symbol=symbol)
    return None
