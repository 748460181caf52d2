"""
PURPOSE: The single trusted gate between untrusted strategy data and anything
that runs it.

Every candidate, whether built by the normalizer, folded by the replay engine
or loaded from storage, passes through `validate()` before it is compiled or
persisted. Failures come back as "dotted.path: message" strings that the
conversational layer can show to a user.

CALLED BY:
    - strategy_builder/normalizer.py (after building a candidate)
    - strategy_builder/compiler.py (compile_from_unknown)
    - events/store.py (after every replay)
"""

from typing import Any, Mapping

from pydantic import ValidationError

from strategy_core.config.constants import Pattern
from strategy_core.errors import CanonicalValidationError
from strategy_core.schemas.canonical import CANONICAL_ADAPTER, StrategyBase, to_snapshot
from strategy_core.schemas.results import ValidationResult
from strategy_core.utils.logger import get_logger

logger = get_logger("schemas.validator")

_PATTERN_VALUES = tuple(p.value for p in Pattern)


def validate(candidate: Any) -> ValidationResult:
    """
    PURPOSE: Check an untrusted candidate against the canonical schema.

    Accepts a mapping with camelCase or snake_case keys, or an already-built
    strategy model (which is dumped and checked again, so a model mutated
    through `model_copy(update=...)` cannot slip past the bounds).

    Args:
        candidate: Raw candidate data.

    Returns:
        ValidationResult: `data` holds the typed strategy on success,
            `errors` the dotted-path messages on failure.
    """
    if isinstance(candidate, StrategyBase):
        candidate = to_snapshot(candidate)

    if not isinstance(candidate, Mapping):
        errors = [f"<root>: expected a strategy object, got {type(candidate).__name__}"]
        logger.warning("canonical_validation_failed", error_count=1, errors=errors)
        return ValidationResult(success=False, errors=errors)

    pattern = candidate.get("pattern")
    if pattern is None:
        errors = ["pattern: Field required"]
        logger.warning("canonical_validation_failed", error_count=1, errors=errors)
        return ValidationResult(success=False, errors=errors)
    if pattern not in _PATTERN_VALUES:
        errors = [f"pattern: unsupported pattern '{pattern}'. Supported: {', '.join(_PATTERN_VALUES)}"]
        logger.warning("canonical_validation_failed", error_count=1, errors=errors)
        return ValidationResult(success=False, errors=errors)

    try:
        strategy = CANONICAL_ADAPTER.validate_python(dict(candidate))
    except ValidationError as exc:
        errors = format_validation_errors(exc, tag=str(pattern))
        logger.warning(
            "canonical_validation_failed",
            pattern=pattern,
            error_count=len(errors),
            errors=errors,
        )
        return ValidationResult(success=False, errors=errors)

    logger.debug("canonical_validation_passed", pattern=pattern)
    return ValidationResult(success=True, data=strategy)


def parse_canonical(candidate: Any) -> StrategyBase:
    """
    PURPOSE: Raising variant of `validate()` for callers that cannot continue
    without a valid strategy.

    Raises:
        CanonicalValidationError: Carrying every validation message.
    """
    result = validate(candidate)
    if not result.success:
        raise CanonicalValidationError(result.errors)
    return result.data


def from_snapshot(document: Mapping[str, Any]) -> StrategyBase:
    """Load a persisted canonical JSON document back into a typed strategy."""
    return parse_canonical(document)


def format_validation_errors(exc: ValidationError, tag: str = "") -> list[str]:
    """
    PURPOSE: Flatten pydantic errors into "dotted.path: message" strings.

    The union discriminator tag pydantic prepends to each location is dropped,
    so paths read the same as the persisted JSON (e.g. "entry.periodMinutes").

    Args:
        exc: pydantic validation error.
        tag: Discriminator value to strip from locations.

    Returns:
        list[str]: One message per error.
    """
    messages = []
    for error in exc.errors():
        loc = list(error.get("loc", ()))
        if loc and tag and loc[0] == tag:
            loc = loc[1:]
        path = ".".join(str(part) for part in loc) or "<root>"
        message = str(error.get("msg", "invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        messages.append(f"{path}: {message}")
    return messages
