"""
PURPOSE: Risk module for the strategy core.

Exports:
    - PositionSizer: Contract quantity calculator
"""

from strategy_core.risk.position_sizer import PositionSizer

__all__ = [
    "PositionSizer",
]
