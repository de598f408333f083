import dataclasses
import datetime
import logging
import uuid
import zoneinfo
from typing import Annotated, Any

from django.db import transaction
from django.utils import timezone

from dependency_injector.wiring import Provide, inject

from recurring_events.constants import (
    OCCURRENCE_ONLY_FIELDS,
    SERIES_EDITABLE_FIELDS,
    RecurrenceScope,
)
from recurring_events.exceptions import (
    DateChangeScopeError,
    EmptyRecurrenceSeriesError,
    EventManagementError,
    InvalidRecurrenceScopeError,
    InvalidTimezoneError,
)
from recurring_events.models import Event
from recurring_events.recurrence_utils import (
    OccurrenceGenerator,
    RecurrenceGroupIdentity,
    SeriesMutationPlanner,
)
from recurring_events.services.dataclasses import (
    EventInputData,
    OccurrenceInterval,
    OccurrenceRef,
    RecurrenceRuleData,
    ScopedMutationResult,
    SeriesCreationResult,
)


logger = logging.getLogger(__name__)


class RecurringEventService:
    """
    Persists materialized series and applies scoped edits and deletions.

    Writing a new series and applying a scoped mutation each happen in a single
    transaction, so a series is never left partially written or partially edited.
    """

    @inject
    def __init__(
        self,
        occurrence_generator: Annotated[
            "OccurrenceGenerator | None", Provide["occurrence_generator"]
        ] = None,
    ) -> None:
        self.occurrence_generator = occurrence_generator or OccurrenceGenerator()

    @staticmethod
    def _get_timezone(iana_tz: str) -> zoneinfo.ZoneInfo:
        try:
            return zoneinfo.ZoneInfo(iana_tz)
        except (zoneinfo.ZoneInfoNotFoundError, ValueError) as e:
            raise InvalidTimezoneError(iana_tz) from e

    @staticmethod
    def _localize(value: datetime.datetime, tz: zoneinfo.ZoneInfo) -> datetime.datetime:
        """Naive values are read as wall-clock time in ``tz``, aware values are converted."""
        if value.tzinfo is None:
            return value.replace(tzinfo=tz)
        return value.astimezone(tz)

    def _localize_rule(
        self, rule: RecurrenceRuleData, tz: zoneinfo.ZoneInfo
    ) -> RecurrenceRuleData:
        if rule.end_date is None:
            return rule
        return dataclasses.replace(rule, end_date=self._localize(rule.end_date, tz))

    def preview_occurrences(
        self,
        template_start: datetime.datetime,
        template_end: datetime.datetime,
        iana_tz: str,
        rule: RecurrenceRuleData,
    ) -> list[OccurrenceInterval]:
        """
        Return the occurrences ``rule`` would materialize, in the event's timezone,
        without writing anything.
        """
        tz = self._get_timezone(iana_tz)
        start = self._localize(template_start, tz)
        end = self._localize(template_end, tz)
        if end <= start:
            raise EventManagementError("End time must be after start time.")
        return self.occurrence_generator.generate(start, end, self._localize_rule(rule, tz))

    @transaction.atomic()
    def create_event(
        self,
        event_data: EventInputData,
        recurrence: RecurrenceRuleData | None = None,
    ) -> SeriesCreationResult:
        """
        Create a standalone event, or every occurrence of a recurring one.

        :param event_data: Event fields; its start and end times are the template interval
        :param recurrence: Optional recurrence rule to materialize
        :return: The created events and, for a series, its recurrence group id
        """
        tz = self._get_timezone(event_data.timezone)
        start = self._localize(event_data.start_time, tz)
        end = self._localize(event_data.end_time, tz)
        if end <= start:
            raise EventManagementError("End time must be after start time.")

        if recurrence is None:
            event = Event.objects.create(
                **self._event_fields(event_data),
                start_time=start,
                end_time=end,
            )
            return SeriesCreationResult(events=[event])

        occurrences = self.occurrence_generator.generate(
            start, end, self._localize_rule(recurrence, tz)
        )
        if not occurrences:
            raise EmptyRecurrenceSeriesError()

        recurrence_group_id = RecurrenceGroupIdentity.generate()
        events = Event.objects.bulk_create(
            [
                Event(
                    **self._event_fields(event_data),
                    start_time=occurrence.start,
                    end_time=occurrence.end,
                    recurrence_group_id=recurrence_group_id,
                )
                for occurrence in occurrences
            ]
        )
        logger.info(
            "Created recurring series %s with %s occurrences (%s every %s)",
            recurrence_group_id,
            len(events),
            recurrence.frequency,
            recurrence.interval,
        )
        return SeriesCreationResult(events=events, recurrence_group_id=recurrence_group_id)

    @staticmethod
    def _event_fields(event_data: EventInputData) -> dict[str, Any]:
        return {
            "title": event_data.title,
            "description": event_data.description,
            "location": event_data.location,
            "capacity": event_data.capacity,
            "timezone": event_data.timezone,
            "created_by_id": event_data.created_by_id,
        }

    def get_series(self, recurrence_group_id: uuid.UUID | str) -> list[Event]:
        return list(Event.objects.get_series(recurrence_group_id))

    def plan_scope_for_group(
        self,
        recurrence_group_id: uuid.UUID | str,
        reference_event_id: int,
        scope: RecurrenceScope | str,
    ) -> tuple[int, ...]:
        """
        Return the ids of the group's occurrences targeted by ``scope``.

        Raises ``InvalidReferenceError`` when ``reference_event_id`` is not a current
        member of the group.
        """
        occurrences = [
            OccurrenceRef.from_event(event) for event in self.get_series(recurrence_group_id)
        ]
        return SeriesMutationPlanner.plan(occurrences, reference_event_id, scope)

    def plan_scope(self, reference_event: Event, scope: RecurrenceScope | str) -> tuple[int, ...]:
        """A standalone event is its own, single target whatever the scope."""
        if scope not in RecurrenceScope.values:
            raise InvalidRecurrenceScopeError(scope)
        if not reference_event.is_recurring:
            return (reference_event.pk,)
        return self.plan_scope_for_group(
            reference_event.recurrence_group_id, reference_event.pk, scope
        )

    @transaction.atomic()
    def update_events(
        self,
        reference_event: Event,
        scope: RecurrenceScope | str,
        changes: dict[str, Any],
    ) -> ScopedMutationResult:
        """
        Apply ``changes`` to the occurrences ``scope`` targets.

        Dates already materialized are never regenerated: start and end times can only
        change for a single occurrence, other fields for any scope.
        """
        allowed_fields = {*SERIES_EDITABLE_FIELDS, *OCCURRENCE_ONLY_FIELDS}
        unknown_fields = sorted(set(changes) - allowed_fields)
        if unknown_fields:
            raise EventManagementError(f"Fields cannot be edited: {', '.join(unknown_fields)}")

        date_fields = set(changes) & set(OCCURRENCE_ONLY_FIELDS)
        if date_fields and scope != RecurrenceScope.THIS_ONLY:
            raise DateChangeScopeError()

        target_ids = self.plan_scope(reference_event, scope)

        values = dict(changes)
        if date_fields:
            tz = self._get_timezone(reference_event.timezone)
            start = self._localize(values.get("start_time", reference_event.start_time), tz)
            end = self._localize(values.get("end_time", reference_event.end_time), tz)
            if end <= start:
                raise EventManagementError("End time must be after start time.")
            values["start_time"] = start
            values["end_time"] = end

        if values:
            Event.objects.filter(pk__in=target_ids).update(**values, modified=timezone.now())

        logger.info(
            "Updated %s occurrences of event %s with scope %s (fields: %s)",
            len(target_ids),
            reference_event.pk,
            scope,
            ", ".join(sorted(changes)),
        )
        return ScopedMutationResult(
            scope=RecurrenceScope(scope),
            event_ids=target_ids,
            recurrence_group_id=reference_event.recurrence_group_id,
            changed_fields=tuple(sorted(changes)),
        )

    @transaction.atomic()
    def delete_events(
        self, reference_event: Event, scope: RecurrenceScope | str
    ) -> ScopedMutationResult:
        """Delete the occurrences ``scope`` targets. The remaining ones are left as they are."""
        target_ids = self.plan_scope(reference_event, scope)
        Event.objects.filter(pk__in=target_ids).delete()

        logger.info(
            "Deleted %s occurrences of event %s with scope %s",
            len(target_ids),
            reference_event.pk,
            scope,
        )
        return ScopedMutationResult(
            scope=RecurrenceScope(scope),
            event_ids=target_ids,
            recurrence_group_id=reference_event.recurrence_group_id,
            deleted=True,
        )
