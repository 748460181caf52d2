"""
PURPOSE: Result envelopes for fallible core operations.

The core reports user-facing failures as values rather than exceptions:
a result either carries `success=True` and its payload, or `success=False`
and a non-empty list of human-readable error strings.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class NormalizationResult(BaseModel):
    """Outcome of turning fragments into a canonical strategy."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    canonical: Optional[Any] = Field(None, description="Validated canonical strategy on success")
    errors: list[str] = Field(default_factory=list)
    partial: Optional[dict[str, Any]] = Field(
        None, description="Best-effort candidate that failed validation, for diagnostics"
    )


class ValidationResult(BaseModel):
    """Outcome of validating an untrusted candidate."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    data: Optional[Any] = Field(None, description="Validated canonical strategy on success")
    errors: list[str] = Field(default_factory=list)


class ReplayResult(BaseModel):
    """Outcome of folding an event log into a canonical strategy."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    canonical: Optional[Any] = None
    errors: list[str] = Field(default_factory=list)
    partial: Optional[dict[str, Any]] = Field(
        None, description="Folded state that failed validation"
    )
    event_count: int = 0


class MigrationResult(BaseModel):
    """Outcome of lifting a persisted record into the events_v1 format."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    document: Optional[dict[str, Any]] = Field(None, description="events_v1 log document")
    migrated: bool = Field(False, description="True when the record was converted")
    errors: list[str] = Field(default_factory=list)
