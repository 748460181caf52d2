"""
PURPOSE: Append-only event log and its persisted document format.

An EventLog is an immutable tuple of events; `append()` returns a new log.
Persisted strategy records carry the log as

    {"formatVersion": "events_v1", "eventVersion": 1, "events": [...],
     "canonicalRules": {...}}

where canonicalRules is the snapshot derived by replay. Records written
before event sourcing are marked canonical_v1 (snapshot only) or legacy /
unversioned (LLM fragments only) and are lifted by `migrate_record()`.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterator, Mapping, Optional, Sequence, Union

from strategy_core.config.constants import EVENT_VERSION, EventType, FormatVersion
from strategy_core.errors import CanonicalValidationError, NormalizationError, ReplayError
from strategy_core.events.paths import flatten_legacy_entry
from strategy_core.events.store import EventInput, from_canonical, parse_events, replay
from strategy_core.events.types import StrategyCreated, StrategyEventBase, event_to_dict
from strategy_core.schemas.canonical import StrategyBase, to_snapshot
from strategy_core.schemas.results import MigrationResult, ReplayResult
from strategy_core.strategy_builder.normalizer import normalize_or_raise
from strategy_core.utils.logger import get_logger

logger = get_logger("events.log")


@dataclass(frozen=True)
class EventLog:
    """
    PURPOSE: Immutable, append-only sequence of strategy events.

    Attributes:
        events: Events in the order they were recorded.
    """

    events: tuple[StrategyEventBase, ...] = field(default_factory=tuple)

    @classmethod
    def from_events(cls, events: Sequence[EventInput]) -> "EventLog":
        """
        Build a log from models or persisted dicts.

        Raises:
            ReplayError: If an event is malformed or the log does not start
                with STRATEGY_CREATED.
        """
        parsed = parse_events(events)
        if parsed and not isinstance(parsed[0], StrategyCreated):
            raise ReplayError(f"First event must be {EventType.STRATEGY_CREATED.value}")
        return cls(tuple(parsed))

    def append(self, event: EventInput) -> "EventLog":
        """Return a new log with `event` added at the end."""
        (parsed,) = parse_events([event])
        if not self.events and not isinstance(parsed, StrategyCreated):
            raise ReplayError(f"First event must be {EventType.STRATEGY_CREATED.value}")
        return EventLog(self.events + (parsed,))

    def extend(self, events: Sequence[EventInput]) -> "EventLog":
        log = self
        for event in events:
            log = log.append(event)
        return log

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self) -> Iterator[StrategyEventBase]:
        return iter(self.events)

    def __getitem__(self, index: int) -> StrategyEventBase:
        return self.events[index]

    def replay(self) -> ReplayResult:
        return replay(self.events)

    def to_document(self, canonical: Optional[Union[StrategyBase, Mapping[str, Any]]] = None) -> dict[str, Any]:
        """
        PURPOSE: Serialize the log into its persisted document.

        Args:
            canonical: Snapshot to store alongside the events (optional).

        Returns:
            dict[str, Any]: events_v1 document.
        """
        document: dict[str, Any] = {
            "formatVersion": FormatVersion.EVENTS_V1.value,
            "eventVersion": EVENT_VERSION,
            "events": [event_to_dict(event) for event in self.events],
        }
        if canonical is not None:
            document["canonicalRules"] = (
                to_snapshot(canonical) if isinstance(canonical, StrategyBase) else dict(canonical)
            )
        return document

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "EventLog":
        """
        Load a log from its persisted document.

        Raises:
            ReplayError: For another format, a newer event version, or bad events.
        """
        format_version = document.get("formatVersion", document.get("format_version"))
        if format_version != FormatVersion.EVENTS_V1.value:
            raise ReplayError(
                f"formatVersion: expected '{FormatVersion.EVENTS_V1.value}', got {format_version!r}"
            )
        event_version = document.get("eventVersion", document.get("event_version", EVENT_VERSION))
        if event_version != EVENT_VERSION:
            raise ReplayError(f"eventVersion: unsupported version {event_version!r}")
        events = document.get("events") or []
        if not isinstance(events, list):
            raise ReplayError("events: expected a list")
        return cls.from_events(events)


def migrate_record(record: Mapping[str, Any]) -> MigrationResult:
    """
    PURPOSE: Lift a persisted strategy record into the events_v1 format.

    Record keys are the storage column names: format_version, events,
    canonical_rules, parsed_rules, instrument, natural_language, created_at.

        events_v1      -> returned as is (migrated=False)
        canonical_v1   -> log rebuilt from the snapshot with parameters preserved
        legacy / None  -> fragments normalized, then rebuilt as above

    Args:
        record: Stored strategy row.

    Returns:
        MigrationResult: events_v1 document (with canonicalRules) on success.
    """
    format_version = record.get("format_version") or FormatVersion.LEGACY.value
    message = str(record.get("natural_language") or "")
    timestamp = _parse_timestamp(record.get("created_at"))

    if format_version == FormatVersion.EVENTS_V1.value:
        try:
            log = EventLog.from_events(record.get("events") or [])
        except ReplayError as exc:
            return MigrationResult(success=False, errors=exc.errors)
        return MigrationResult(
            success=True,
            document=log.to_document(record.get("canonical_rules")),
            migrated=False,
        )

    try:
        if format_version == FormatVersion.CANONICAL_V1.value:
            canonical = flatten_legacy_entry(record.get("canonical_rules") or {})
        elif format_version == FormatVersion.LEGACY.value:
            canonical = normalize_or_raise(_legacy_fragments(record))
        else:
            return MigrationResult(success=False, errors=[f"format_version: unknown format {format_version!r}"])

        events = from_canonical(
            canonical,
            preserve_parameters=True,
            initial_message=message,
            timestamp=timestamp,
        )
        log = EventLog(tuple(events))
        result = log.replay()
    except (NormalizationError, CanonicalValidationError) as exc:
        logger.warning("migration_failed", format_version=format_version, errors=exc.errors)
        return MigrationResult(success=False, errors=exc.errors)

    if not result.success:
        logger.warning("migration_replay_failed", format_version=format_version, errors=result.errors)
        return MigrationResult(success=False, errors=result.errors)

    logger.info(
        "strategy_record_migrated",
        from_format=format_version,
        pattern=result.canonical.pattern,
        event_count=len(log),
    )
    return MigrationResult(
        success=True,
        document=log.to_document(result.canonical),
        migrated=True,
    )


def _legacy_fragments(record: Mapping[str, Any]) -> dict[str, Any]:
    parsed_rules = dict(record.get("parsed_rules") or {})
    # Legacy rows keep the instrument inside parsed_rules
    instrument = record.get("instrument") or parsed_rules.pop("instrument", "")
    return {
        "strategy_name": str(record.get("name") or parsed_rules.pop("strategy_name", "")),
        "summary": str(parsed_rules.pop("summary", "")),
        "instrument": str(instrument or ""),
        "parsed_rules": parsed_rules,
    }


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            logger.warning("migration_bad_created_at", created_at=value)
    return None
