"""
Strategy event types for the event-sourced strategy store.

Each user edit to a strategy is recorded as one immutable event; the
canonical strategy is derived by folding the log (see events/store.py).
Events serialize to camelCase, the shape persisted in the events column.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from strategy_core.config.constants import Direction, Pattern


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StrategyEventBase(BaseModel):
    """
    Fields shared by every strategy event.

    PURPOSE: Identify and order events in the persisted log.

    Attributes:
        id: Unique event ID (UUID4 string).
        timestamp: When the event was recorded (UTC).
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Unique event ID"
    )
    timestamp: datetime = Field(
        default_factory=_utc_now,
        description="UTC timestamp when the event was recorded"
    )


class StrategyCreated(StrategyEventBase):
    """First event of every log: pattern, instrument and direction chosen."""

    type: Literal["STRATEGY_CREATED"] = "STRATEGY_CREATED"
    pattern: Pattern
    instrument: str = Field(..., description="Canonical symbol or alias")
    direction: Direction = Direction.BOTH
    initial_message: str = Field("", description="User message that started the strategy")


class ParamUpdated(StrategyEventBase):
    """One parameter set at a typed path (e.g. 'exit.stopLoss.value')."""

    type: Literal["PARAM_UPDATED"] = "PARAM_UPDATED"
    path: str
    value: Any
    previous_value: Optional[Any] = None
    was_defaulted: bool = False


class PatternChanged(StrategyEventBase):
    """Pattern switch; all pattern defaults are re-derived."""

    type: Literal["PATTERN_CHANGED"] = "PATTERN_CHANGED"
    from_pattern: Pattern
    to_pattern: Pattern


class DefaultValue(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    path: str
    value: Any
    explanation: str = ""


class DefaultsApplied(StrategyEventBase):
    """A batch of defaults applied (and announced) together."""

    type: Literal["DEFAULTS_APPLIED"] = "DEFAULTS_APPLIED"
    defaults: tuple[DefaultValue, ...] = ()


StrategyEvent = Annotated[
    Union[StrategyCreated, ParamUpdated, PatternChanged, DefaultsApplied],
    Field(discriminator="type"),
]

EVENT_ADAPTER: TypeAdapter = TypeAdapter(StrategyEvent)
EVENT_LIST_ADAPTER: TypeAdapter = TypeAdapter(list[StrategyEvent])


def event_to_dict(event: StrategyEventBase) -> dict[str, Any]:
    """Serialize an event into its persisted (camelCase, JSON-compatible) form."""
    return event.model_dump(mode="json", by_alias=True)
