"""
PURPOSE: Typed parameter paths for PARAM_UPDATED and DEFAULTS_APPLIED events.

Every editable path is declared once in PARAM_PATHS with its key chain and
the patterns it belongs to. Writes go through `set_value()`, which returns a
new state and raises ReplayError for unknown paths, paths of another pattern,
and writes below an absent optional object, instead of creating stray keys.

Accepted spellings:
    - canonical camelCase:  "exit.stopLoss.value"
    - snake_case segments:  "exit.stop_loss.value"
    - legacy nested entry:  "entry.openingRange.periodMinutes"
"""

import copy
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel

from strategy_core.config.constants import Pattern
from strategy_core.errors import ReplayError

ALL_PATTERNS: frozenset[Pattern] = frozenset(Pattern)
_ORB = frozenset({Pattern.OPENING_RANGE_BREAKOUT})
_EMA = frozenset({Pattern.EMA_PULLBACK})
_BREAKOUT = frozenset({Pattern.BREAKOUT})


@dataclass(frozen=True)
class ParamPath:
    """
    One editable location in the canonical document.

    Attributes:
        path: Canonical dotted path.
        patterns: Patterns whose documents contain this path.
        removable: Setting None deletes the key (optional fields).
        optional_parent: The parent object itself is optional and must exist
            before a field below it can be set.
    """

    path: str
    patterns: frozenset[Pattern] = ALL_PATTERNS
    removable: bool = False
    optional_parent: bool = False

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(self.path.split("."))


PARAM_PATHS: dict[str, ParamPath] = {
    p.path: p
    for p in (
        ParamPath("direction"),
        # exits
        ParamPath("exit.stopLoss"),
        ParamPath("exit.stopLoss.type"),
        ParamPath("exit.stopLoss.value"),
        ParamPath("exit.takeProfit"),
        ParamPath("exit.takeProfit.type"),
        ParamPath("exit.takeProfit.value"),
        # risk
        ParamPath("risk.positionSizing"),
        ParamPath("risk.riskPercent", removable=True),
        ParamPath("risk.maxContracts"),
        ParamPath("risk.contracts", removable=True),
        # time
        ParamPath("time.session"),
        ParamPath("time.customStart", removable=True),
        ParamPath("time.customEnd", removable=True),
        ParamPath("time.timezone"),
        # opening range breakout
        ParamPath("entry.periodMinutes", _ORB),
        ParamPath("entry.entryOn", _ORB),
        # ema pullback
        ParamPath("entry.emaPeriod", _EMA),
        ParamPath("entry.pullbackConfirmation", _EMA),
        ParamPath("entry.rsiFilter", _EMA, removable=True),
        ParamPath("entry.rsiFilter.period", _EMA, optional_parent=True),
        ParamPath("entry.rsiFilter.threshold", _EMA, optional_parent=True),
        ParamPath("entry.rsiFilter.direction", _EMA, optional_parent=True),
        # breakout
        ParamPath("entry.lookbackPeriod", _BREAKOUT),
        ParamPath("entry.levelType", _BREAKOUT),
        ParamPath("entry.confirmation", _BREAKOUT),
    )
}

# Nested entry layout of records written before the entry payload was flattened
LEGACY_PATH_ALIASES: dict[str, str] = {
    "entry.openingRange.periodMinutes": "entry.periodMinutes",
    "entry.openingRange.entryOn": "entry.entryOn",
    "entry.emaPullback.emaPeriod": "entry.emaPeriod",
    "entry.emaPullback.pullbackConfirmation": "entry.pullbackConfirmation",
    "entry.indicators.rsi": "entry.rsiFilter",
    "entry.indicators.rsi.period": "entry.rsiFilter.period",
    "entry.indicators.rsi.threshold": "entry.rsiFilter.threshold",
    "entry.indicators.rsi.direction": "entry.rsiFilter.direction",
    "entry.breakout.lookbackPeriod": "entry.lookbackPeriod",
    "entry.breakout.levelType": "entry.levelType",
    "entry.breakout.confirmation": "entry.confirmation",
}

_LEGACY_ENTRY_KEYS = ("openingRange", "emaPullback", "breakout")

# Paths whose values are compared when rebuilding a log from a snapshot
DIFFABLE_PATHS: tuple[str, ...] = (
    "exit.stopLoss",
    "exit.takeProfit",
    "risk.positionSizing",
    "risk.riskPercent",
    "risk.maxContracts",
    "risk.contracts",
    "time.session",
    "time.customStart",
    "time.customEnd",
    "time.timezone",
    "entry.periodMinutes",
    "entry.entryOn",
    "entry.emaPeriod",
    "entry.pullbackConfirmation",
    "entry.rsiFilter",
    "entry.lookbackPeriod",
    "entry.levelType",
    "entry.confirmation",
)

_NOT_EDITABLE = {
    "pattern": "pattern is changed with a PATTERN_CHANGED event",
    "instrument": "instrument is fixed at creation",
}


def _camel_segment(segment: str) -> str:
    head, *rest = segment.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def canonical_path(path: str) -> str:
    """Normalize snake_case segments and legacy nested paths to the canonical form."""
    camel = ".".join(_camel_segment(segment) for segment in str(path).strip().split("."))
    return LEGACY_PATH_ALIASES.get(camel, camel)


def resolve_path(path: str, pattern: Optional[Pattern]) -> ParamPath:
    """
    PURPOSE: Look up the declared ParamPath for `path` within `pattern`.

    Args:
        path: Path in any accepted spelling.
        pattern: Pattern of the current state (None skips the pattern check).

    Returns:
        ParamPath: Declared path.

    Raises:
        ReplayError: Unknown path, non-editable path, or path of another pattern.
    """
    name = canonical_path(path)
    root = name.split(".")[0]
    if root in _NOT_EDITABLE:
        raise ReplayError(f"{path}: {_NOT_EDITABLE[root]}")
    param = PARAM_PATHS.get(name)
    if param is None:
        raise ReplayError(f"{path}: unknown parameter path")
    if pattern is not None and pattern not in param.patterns:
        raise ReplayError(f"{path}: not a parameter of pattern '{pattern.value}'")
    return param


def to_plain(value: Any) -> Any:
    """Convert enums and pydantic models into JSON-compatible values, recursively."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(value, Mapping):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    return value


def _state_pattern(state: Mapping[str, Any]) -> Optional[Pattern]:
    try:
        return Pattern(state.get("pattern"))
    except ValueError:
        return None


def get_value(state: Mapping[str, Any], path: str, default: Any = None) -> Any:
    """Read the value at a declared path, `default` when absent."""
    param = resolve_path(path, None)
    current: Any = state
    for key in param.keys:
        if not isinstance(current, Mapping) or key not in current:
            return default
        current = current[key]
    return current


def set_value(state: Mapping[str, Any], path: str, value: Any) -> dict[str, Any]:
    """
    PURPOSE: Return a deep copy of `state` with `path` set to `value`.

    Args:
        state: Current folded state (not modified).
        path: Path in any accepted spelling.
        value: New value; None deletes removable (optional) fields.

    Returns:
        dict[str, Any]: New state.

    Raises:
        ReplayError: For unknown/foreign paths or a missing parent object.
    """
    param = resolve_path(path, _state_pattern(state))
    new_state = copy.deepcopy(dict(state))

    container: Any = new_state
    for key in param.keys[:-1]:
        child = container.get(key) if isinstance(container, dict) else None
        if not isinstance(child, dict):
            if param.optional_parent:
                raise ReplayError(f"{path}: cannot set a field of absent '{key}'; set '{key}' first")
            raise ReplayError(f"{path}: state has no '{key}' object")
        container = child

    leaf = param.keys[-1]
    if value is None:
        if not param.removable:
            raise ReplayError(f"{path}: value is required")
        container.pop(leaf, None)
    else:
        container[leaf] = to_plain(copy.deepcopy(value))
    return new_state


def flatten_legacy_entry(document: Mapping[str, Any]) -> dict[str, Any]:
    """
    PURPOSE: Lift a legacy nested entry payload into the flat layout.

    `{"entry": {"openingRange": {...}}}` becomes `{"entry": {...}}`, and an
    EMA pullback's `indicators.rsi` becomes `rsiFilter`. Documents already in
    the flat layout are returned as a copy, unchanged.
    """
    result = copy.deepcopy(dict(document))
    entry = result.get("entry")
    if not isinstance(entry, dict):
        return result
    for key in _LEGACY_ENTRY_KEYS:
        nested = entry.get(key)
        if isinstance(nested, dict) and len(entry) <= 2:
            flat = dict(nested)
            rsi = (entry.get("indicators") or {}).get("rsi") if isinstance(entry.get("indicators"), dict) else None
            if rsi is not None:
                flat["rsiFilter"] = rsi
            result["entry"] = flat
            break
    return result
