import datetime
import uuid
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from typing import TYPE_CHECKING, Any

from recurring_events.constants import (
    WEEKDAY_INDEX,
    RecurrenceEndType,
    RecurrenceFrequency,
    RecurrenceScope,
)
from recurring_events.exceptions import InvalidRecurrenceRuleError


if TYPE_CHECKING:
    from recurring_events.models import Event


def absolute_timedelta(start: datetime.datetime, end: datetime.datetime) -> datetime.timedelta:
    """
    Return ``end - start`` as elapsed clock time.

    Python subtracts aware datetimes sharing a tzinfo as wall-clock values, so both
    ends are moved to UTC first.
    """
    if start.tzinfo is None or end.tzinfo is None:
        return end - start
    return end.astimezone(datetime.UTC) - start.astimezone(datetime.UTC)


@dataclass(frozen=True)
class RecurrenceRuleData:
    """
    Immutable repetition pattern.

    Exactly one of ``end_date``/``occurrence_count`` is set, matching ``end_type``.
    ``week_days`` only matters for weekly rules and may be empty.
    """

    frequency: RecurrenceFrequency
    end_type: RecurrenceEndType
    interval: int = 1
    week_days: frozenset[str] = dataclass_field(default_factory=frozenset)
    end_date: datetime.datetime | None = None
    occurrence_count: int | None = None

    def __post_init__(self):
        if self.frequency not in RecurrenceFrequency.values:
            raise InvalidRecurrenceRuleError(f"Invalid frequency: {self.frequency}")
        object.__setattr__(self, "frequency", RecurrenceFrequency(self.frequency))

        if self.end_type not in RecurrenceEndType.values:
            raise InvalidRecurrenceRuleError(f"Invalid end type: {self.end_type}")
        object.__setattr__(self, "end_type", RecurrenceEndType(self.end_type))

        if self.interval < 1:
            raise InvalidRecurrenceRuleError("Interval must be at least 1.")

        week_days = frozenset(self.week_days)
        invalid_week_days = sorted(day for day in week_days if day not in WEEKDAY_INDEX)
        if invalid_week_days:
            raise InvalidRecurrenceRuleError(
                f"Invalid weekdays: {', '.join(invalid_week_days)}. "
                f"Valid options are: {', '.join(WEEKDAY_INDEX)}"
            )
        object.__setattr__(self, "week_days", week_days)

        if self.end_type == RecurrenceEndType.ON_DATE:
            if self.end_date is None or self.occurrence_count is not None:
                raise InvalidRecurrenceRuleError(
                    "Rules ending on a date need an end_date and no occurrence_count."
                )
        elif self.occurrence_count is None or self.end_date is not None:
            raise InvalidRecurrenceRuleError(
                "Rules ending after a number of occurrences need an occurrence_count "
                "and no end_date."
            )


@dataclass(frozen=True)
class OccurrenceInterval:
    start: datetime.datetime
    end: datetime.datetime

    @property
    def duration(self) -> datetime.timedelta:
        return absolute_timedelta(self.start, self.end)


@dataclass(frozen=True)
class OccurrenceRef:
    """Identifier and start of a materialized occurrence, as seen by the planner."""

    id: Any  # noqa: A003
    start: datetime.datetime

    @classmethod
    def from_event(cls, event: "Event") -> "OccurrenceRef":
        return cls(id=event.pk, start=event.start_time)


@dataclass
class EventInputData:
    title: str
    start_time: datetime.datetime
    end_time: datetime.datetime
    timezone: str  # IANA timezone string (required)
    description: str = ""
    location: str = ""
    capacity: int | None = None
    created_by_id: int | None = None


@dataclass
class SeriesCreationResult:
    events: list["Event"]
    recurrence_group_id: uuid.UUID | None = None

    @property
    def event_ids(self) -> list[int]:
        return [event.pk for event in self.events]


@dataclass
class ScopedMutationResult:
    scope: RecurrenceScope
    event_ids: tuple[int, ...]
    recurrence_group_id: uuid.UUID | None = None
    deleted: bool = False
    changed_fields: tuple[str, ...] = ()
