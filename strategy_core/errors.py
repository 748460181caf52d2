"""
PURPOSE: Exception taxonomy for the strategy core.

Fallible core operations report failures through result models
(schemas/results.py). These exceptions back the raising convenience
entry points (parse_canonical, compile_from_unknown) and the internal
fold errors that replay() converts into failure results.
"""

from typing import Iterable


class StrategyCoreError(Exception):
    """
    PURPOSE: Base class for domain errors raised by the strategy core.

    Attributes:
        errors: Individual error messages, in the "path: message" form.
    """

    def __init__(self, errors: Iterable[str] | str) -> None:
        if isinstance(errors, str):
            errors = [errors]
        self.errors: list[str] = list(errors)
        super().__init__("; ".join(self.errors) or self.__class__.__name__)


class NormalizationError(StrategyCoreError):
    """Raised when freeform fragments cannot be turned into a canonical strategy."""


class CanonicalValidationError(StrategyCoreError):
    """Raised when a payload does not pass the canonical schema."""


class ReplayError(StrategyCoreError):
    """Raised while folding an event log (bad path, missing creation event, ...)."""
