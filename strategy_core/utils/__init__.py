"""
PURPOSE: Shared helpers (logging, time and math utilities) for the strategy core.
"""

from .logger import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
