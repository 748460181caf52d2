"""
PURPOSE: Input models for the loose rule fragments produced by the LLM parsing
layer (snake_case, as emitted by its tool call).

These models are deliberately lenient: unknown keys are ignored and most
fields are optional, because the producer is a language model. Strictness
starts at the canonical schema, not here.

CALLED BY:
    - strategy_builder/normalizer.py
    - strategy_builder/patterns.py, strategy_builder/extractors.py
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class FragmentModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, allow_inf_nan=False)


class EntryCondition(FragmentModel):
    """One entry rule fragment (e.g., indicator='Opening Range', description='15 minute ORB')."""

    indicator: str = Field("", description="Short indicator label")
    period: Optional[int] = Field(None, description="Indicator period, if stated")
    relation: str = Field("", description="Relation such as 'crosses_above' or 'breaks'")
    value: Optional[float] = None
    description: Optional[str] = None

    def text(self) -> str:
        """Lower-cased description, falling back to the indicator label."""
        return (self.description or self.indicator or "").lower()


class ExitCondition(FragmentModel):
    """One exit rule fragment."""

    type: str = Field(..., description="stop_loss, take_profit, trailing_stop or time_exit")
    value: float = 0
    unit: str = Field("ticks", description="ticks, dollars, points, percent or time")
    description: Optional[str] = None


class Filter(FragmentModel):
    """Session, indicator or other filter fragment."""

    type: str
    indicator: Optional[str] = None
    period: Optional[int] = None
    condition: Optional[str] = None
    value: Optional[float] = None
    start: Optional[str] = None
    end: Optional[str] = None
    description: Optional[str] = None


class PositionSizingInput(FragmentModel):
    """Position sizing descriptor (method 'fixed', 'risk_percent' or 'kelly')."""

    method: str
    value: float
    max_contracts: Optional[int] = None


class ParsedRules(FragmentModel):
    entry_conditions: list[EntryCondition] = Field(default_factory=list)
    exit_conditions: list[ExitCondition] = Field(default_factory=list)
    filters: list[Filter] = Field(default_factory=list)
    position_sizing: Optional[PositionSizingInput] = None


class StrategyFragments(FragmentModel):
    """Full normalizer input: name, summary, instrument text and parsed rules."""

    strategy_name: str = ""
    summary: str = ""
    instrument: str = ""
    parsed_rules: ParsedRules = Field(default_factory=ParsedRules)
