"""Recurrence utilities: materializing recurrence rules and planning scoped changes.

This module holds the pure side of recurring events: an `OccurrenceGenerator`
that expands a rule and a template interval into concrete occurrences, a
`RecurrenceGroupIdentity` for the id shared by one materialized series, and a
`SeriesMutationPlanner` that picks which occurrences a scoped edit or delete
targets.

Notes:
- Nothing here touches the database. Persisting occurrences and applying
  planned mutations is done by ``RecurringEventService`` inside transactions.
- Occurrence durations are elapsed clock time copied from the template. An
  occurrence that crosses a DST transition keeps the template's elapsed
  duration, so its local wall-clock span differs by the DST shift.
- Monthly and yearly steps clamp to the last day of shorter months
  (Jan 31 + 1 month is Feb 29 in 2024). Each step is offset from the template
  start, so a series anchored on the 31st returns to the 31st when it can.
"""

import datetime
import logging
import uuid
from collections.abc import Iterable, Sequence
from typing import Any

from dateutil.relativedelta import relativedelta

from recurring_events.constants import (
    MAX_OCCURRENCES,
    WEEKDAY_INDEX,
    WEEKLY_SAFETY_CEILING,
    RecurrenceEndType,
    RecurrenceFrequency,
    RecurrenceScope,
)
from recurring_events.exceptions import InvalidRecurrenceScopeError, InvalidReferenceError
from recurring_events.services.dataclasses import (
    OccurrenceInterval,
    OccurrenceRef,
    RecurrenceRuleData,
    absolute_timedelta,
)


logger = logging.getLogger(__name__)


def sunday_based_weekday(date: datetime.date) -> int:
    return (date.weekday() + 1) % 7


def start_of_day(value: datetime.datetime) -> datetime.datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def shift_by_duration(
    start: datetime.datetime, duration: datetime.timedelta
) -> datetime.datetime:
    """Add ``duration`` as elapsed time, keeping ``start``'s timezone."""
    if start.tzinfo is None:
        return start + duration
    return (start.astimezone(datetime.UTC) + duration).astimezone(start.tzinfo)


class OccurrenceGenerator:
    """Expands a recurrence rule into a bounded list of occurrence intervals."""

    def __init__(
        self,
        max_occurrences: int = MAX_OCCURRENCES,
        weekly_safety_ceiling: int = WEEKLY_SAFETY_CEILING,
    ):
        # Configuration can lower the cap, never raise it
        self.max_occurrences = min(max_occurrences, MAX_OCCURRENCES)
        self.weekly_safety_ceiling = weekly_safety_ceiling

    def generate(
        self,
        template_start: datetime.datetime,
        template_end: datetime.datetime,
        rule: RecurrenceRuleData,
    ) -> list[OccurrenceInterval]:
        """
        Return every occurrence of ``rule`` for the template interval, in order.

        The result never holds more than ``max_occurrences`` items. Degenerate rules
        (non-positive count, end date before the template's day) give an empty list.
        A weekly rule with no weekdays selected repeats on the template's weekday.
        """
        duration = absolute_timedelta(template_start, template_end)

        if rule.end_type == RecurrenceEndType.AFTER_OCCURRENCES:
            limit = min(rule.occurrence_count or 0, self.max_occurrences)
        else:
            limit = self.max_occurrences
        if limit <= 0:
            return []

        if rule.frequency == RecurrenceFrequency.WEEKLY and rule.week_days:
            return self._generate_weekly(template_start, duration, rule, limit)
        return self._generate_by_steps(template_start, duration, rule, limit)

    def _generate_by_steps(
        self,
        template_start: datetime.datetime,
        duration: datetime.timedelta,
        rule: RecurrenceRuleData,
        limit: int,
    ) -> list[OccurrenceInterval]:
        occurrences: list[OccurrenceInterval] = []
        step = 0
        while len(occurrences) < limit:
            current_start = template_start + self._step_delta(rule, step)
            if self._is_past_end_date(rule, current_start):
                break
            occurrences.append(
                OccurrenceInterval(
                    start=current_start, end=shift_by_duration(current_start, duration)
                )
            )
            step += 1
        return occurrences

    def _generate_weekly(
        self,
        template_start: datetime.datetime,
        duration: datetime.timedelta,
        rule: RecurrenceRuleData,
        limit: int,
    ) -> list[OccurrenceInterval]:
        occurrences: list[OccurrenceInterval] = []
        selected_days = sorted(WEEKDAY_INDEX[day] for day in rule.week_days)
        template_day = sunday_based_weekday(template_start)
        template_date = template_start.date()

        for week_offset in range(self.weekly_safety_ceiling):
            week_anchor = template_start + relativedelta(weeks=week_offset * rule.interval)
            for day_index in selected_days:
                if len(occurrences) >= limit:
                    return occurrences

                candidate = week_anchor + datetime.timedelta(days=day_index - template_day)
                if candidate.date() < template_date:
                    continue
                if self._is_past_end_date(rule, candidate):
                    return occurrences

                occurrences.append(
                    OccurrenceInterval(start=candidate, end=shift_by_duration(candidate, duration))
                )
            if len(occurrences) >= limit:
                return occurrences

        logger.warning(
            "Weekly recurrence stopped after %s week blocks with %s of %s occurrences",
            self.weekly_safety_ceiling,
            len(occurrences),
            limit,
        )
        return occurrences

    @staticmethod
    def _step_delta(rule: RecurrenceRuleData, step: int) -> relativedelta:
        amount = step * rule.interval
        if rule.frequency == RecurrenceFrequency.MONTHLY:
            return relativedelta(months=amount)
        if rule.frequency == RecurrenceFrequency.YEARLY:
            return relativedelta(years=amount)
        if rule.frequency == RecurrenceFrequency.WEEKLY:
            return relativedelta(weeks=amount)
        return relativedelta(days=amount)

    @staticmethod
    def _is_past_end_date(rule: RecurrenceRuleData, candidate: datetime.datetime) -> bool:
        if rule.end_type != RecurrenceEndType.ON_DATE or rule.end_date is None:
            return False
        return rule.end_date < start_of_day(candidate)


class RecurrenceGroupIdentity:
    """Helpers for the id that correlates the occurrences of one series."""

    @staticmethod
    def generate() -> uuid.UUID:
        """Return a fresh random group id. Ids are never reassigned or reused."""
        return uuid.uuid4()


class SeriesMutationPlanner:
    """Computes which occurrences of a series a scoped edit or delete targets."""

    @staticmethod
    def order(occurrences: Iterable[Any]) -> list[Any]:
        """Sort occurrences by start, breaking ties by id."""
        return sorted(occurrences, key=lambda occurrence: (occurrence.start, occurrence.id))

    @staticmethod
    def plan(
        ordered_occurrences: Sequence[OccurrenceRef],
        reference_occurrence_id: Any,
        scope: RecurrenceScope | str,
    ) -> tuple[Any, ...]:
        """
        Return the ids targeted by ``scope`` relative to ``reference_occurrence_id``.

        ``this_only`` targets the reference, ``this_and_following`` every occurrence
        starting at or after it (ties included), ``all`` the whole series. Raises
        ``InvalidReferenceError`` when the reference isn't in ``ordered_occurrences``.
        """
        if scope not in RecurrenceScope.values:
            raise InvalidRecurrenceScopeError(scope)

        ordered = SeriesMutationPlanner.order(ordered_occurrences)
        reference = next(
            (
                occurrence
                for occurrence in ordered
                if occurrence.id == reference_occurrence_id
            ),
            None,
        )
        if reference is None:
            raise InvalidReferenceError(reference_occurrence_id)

        if scope == RecurrenceScope.THIS_ONLY:
            return (reference.id,)
        if scope == RecurrenceScope.THIS_AND_FOLLOWING:
            return tuple(
                occurrence.id for occurrence in ordered if occurrence.start >= reference.start
            )
        return tuple(occurrence.id for occurrence in ordered)
