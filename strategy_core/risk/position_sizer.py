"""
PURPOSE: Futures contract sizing for compiled strategies.

Turns account balance, risk percentage and stop distance into a whole
number of contracts. Sizing is total: any input it cannot size sensibly
(non-positive balance, zero stop distance, NaN) resolves to the one-contract
minimum instead of raising, because it runs inside the execution loop.
"""

import math
from typing import Optional

from strategy_core.config.constants import CONTRACTS_BOUNDS
from strategy_core.utils.logger import get_logger
from strategy_core.utils.math_utils import floor_with_tolerance, is_finite_number, price_to_ticks

logger = get_logger("risk.position_sizer")


class PositionSizer:
    """
    PURPOSE: Calculate contract quantities for one instrument.

    Uses the formula: contracts = floor(balance * risk_pct / 100 / (stop_ticks * tick_value))
    Clamps result to [min_contracts, max_contracts].

    CALLED BY: strategy_builder/compiler.py (CompiledStrategy.get_contract_quantity)

    Attributes:
        _tick_size: Instrument minimum price increment.
        _tick_value: Dollar value of one tick.
        _min_contracts: Minimum quantity (always 1).
        _max_contracts: Strategy ceiling from the risk block.
    """

    def __init__(
        self,
        tick_size: float,
        tick_value: float,
        max_contracts: int,
        min_contracts: int = CONTRACTS_BOUNDS[0],
    ) -> None:
        """
        PURPOSE: Initialize the sizer with instrument specs and size limits.

        Args:
            tick_size: Minimum price increment of the instrument.
            tick_value: Dollar value of one tick.
            max_contracts: Maximum contracts per signal.
            min_contracts: Minimum contracts per signal (default 1).
        """
        self._tick_size: float = tick_size
        self._tick_value: float = tick_value
        self._min_contracts: int = min_contracts
        self._max_contracts: int = max(min_contracts, max_contracts)

    def calculate_risk_contracts(
        self,
        account_balance: float,
        risk_pct: float,
        entry_price: float,
        stop_price: float,
    ) -> int:
        """
        PURPOSE: Size a risk-percent position.

        Formula:
          stop_ticks = |entry - stop| / tick_size
          contracts = floor(balance * risk_pct / 100 / (stop_ticks * tick_value))
          return clamp(contracts, min_contracts, max_contracts)

        CALLED BY: CompiledStrategy.get_contract_quantity

        Args:
            account_balance: Account balance in dollars.
            risk_pct: Risk percentage of the balance (1.0 = 1%).
            entry_price: Planned entry price.
            stop_price: Planned stop price.

        Returns:
            int: Contracts in [min_contracts, max_contracts].
        """
        values = (account_balance, risk_pct, entry_price, stop_price)
        if not all(is_finite_number(v) for v in values):
            logger.warning("position_size_non_numeric_input", values=[str(v) for v in values])
            return self._min_contracts
        account_balance, risk_pct, entry_price, stop_price = (float(v) for v in values)

        stop_ticks = price_to_ticks(entry_price - stop_price, self._tick_size)
        risk_per_contract = stop_ticks * self._tick_value
        if account_balance <= 0 or risk_pct <= 0 or risk_per_contract <= 0:
            logger.warning(
                "position_size_degenerate_input",
                account_balance=account_balance,
                risk_pct=risk_pct,
                stop_ticks=stop_ticks,
            )
            return self._min_contracts

        risk_amount = account_balance * risk_pct / 100.0
        raw_contracts = floor_with_tolerance(risk_amount / risk_per_contract)
        contracts = self.clamp(raw_contracts)

        logger.debug(
            "position_size_result",
            account_balance=account_balance,
            risk_pct=risk_pct,
            stop_ticks=round(stop_ticks, 4),
            calculated=raw_contracts,
            clamped=contracts,
        )
        return contracts

    def calculate_fixed_contracts(self, contracts: Optional[int]) -> int:
        """
        PURPOSE: Resolve a fixed-contract count, defaulting to the ceiling.

        Args:
            contracts: Configured fixed count, or None.

        Returns:
            int: Count clamped to [min_contracts, max_contracts].
        """
        if contracts is None:
            return self._max_contracts
        return self.clamp(contracts)

    def clamp(self, contracts: float) -> int:
        """Clamp a raw quantity into [min_contracts, max_contracts]."""
        if isinstance(contracts, float) and math.isnan(contracts):
            return self._min_contracts
        return int(max(self._min_contracts, min(self._max_contracts, contracts)))
