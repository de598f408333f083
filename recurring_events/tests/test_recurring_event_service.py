import datetime
import zoneinfo
from unittest.mock import patch

import pytest
from model_bakery import baker

from recurring_events.constants import (
    RecurrenceEndType,
    RecurrenceFrequency,
    RecurrenceScope,
    RecurrenceWeekday,
)
from recurring_events.exceptions import (
    DateChangeScopeError,
    EmptyRecurrenceSeriesError,
    EventManagementError,
    InvalidRecurrenceScopeError,
    InvalidReferenceError,
    InvalidTimezoneError,
)
from recurring_events.models import Event
from recurring_events.recurrence_utils import OccurrenceGenerator
from recurring_events.services.dataclasses import EventInputData, RecurrenceRuleData
from recurring_events.services.recurring_event_service import RecurringEventService


NEW_YORK = zoneinfo.ZoneInfo("America/New_York")


def _utc(month, day, hour=9):
    return datetime.datetime(2024, month, day, hour, tzinfo=datetime.UTC)


@pytest.fixture
def service():
    return RecurringEventService(occurrence_generator=OccurrenceGenerator())


@pytest.fixture
def event_data(user):
    return EventInputData(
        title="Food bank shift",
        description="Sorting donations",
        location="Warehouse 3",
        capacity=12,
        start_time=_utc(1, 1, 9),
        end_time=_utc(1, 1, 11),
        timezone="UTC",
        created_by_id=user.pk,
    )


@pytest.fixture
def weekly_rule():
    return RecurrenceRuleData(
        frequency=RecurrenceFrequency.WEEKLY,
        end_type=RecurrenceEndType.AFTER_OCCURRENCES,
        occurrence_count=5,
        week_days=frozenset({RecurrenceWeekday.MONDAY}),
    )


@pytest.fixture
def series(service, event_data, weekly_rule):
    """Five Monday occurrences, from 2024-01-01 to 2024-01-29."""
    return service.create_event(event_data, recurrence=weekly_rule).events


@pytest.mark.django_db
class TestCreateEvent:
    def test_create_standalone_event(self, service, event_data, user):
        result = service.create_event(event_data)

        assert result.recurrence_group_id is None
        assert len(result.events) == 1
        event = Event.objects.get(pk=result.events[0].pk)
        assert event.title == "Food bank shift"
        assert event.start_time == _utc(1, 1, 9)
        assert event.end_time == _utc(1, 1, 11)
        assert event.created_by == user
        assert not event.is_recurring

    def test_create_series_shares_one_group_id(self, service, event_data, user):
        rule = RecurrenceRuleData(
            frequency=RecurrenceFrequency.WEEKLY,
            end_type=RecurrenceEndType.AFTER_OCCURRENCES,
            occurrence_count=4,
            week_days=frozenset({RecurrenceWeekday.MONDAY, RecurrenceWeekday.WEDNESDAY}),
        )

        result = service.create_event(event_data, recurrence=rule)

        events = list(Event.objects.order_for_series())
        assert len(events) == 4
        assert {event.recurrence_group_id for event in events} == {result.recurrence_group_id}
        assert len({event.pk for event in events}) == 4
        assert sorted(result.event_ids) == [event.pk for event in events]
        assert [event.start_time for event in events] == [
            _utc(1, 1),
            _utc(1, 3),
            _utc(1, 8),
            _utc(1, 10),
        ]
        for event in events:
            assert event.duration == datetime.timedelta(hours=2)
            assert event.title == "Food bank shift"
            assert event.location == "Warehouse 3"
            assert event.capacity == 12
            assert event.created_by == user

    def test_separate_series_get_distinct_group_ids(self, service, event_data, weekly_rule):
        first = service.create_event(event_data, recurrence=weekly_rule)
        second = service.create_event(event_data, recurrence=weekly_rule)

        assert first.recurrence_group_id != second.recurrence_group_id
        assert Event.objects.count() == 10

    def test_naive_times_are_read_in_event_timezone(self, service, event_data):
        data = EventInputData(
            title=event_data.title,
            start_time=datetime.datetime(2024, 3, 8, 20),
            end_time=datetime.datetime(2024, 3, 9, 4),
            timezone="America/New_York",
        )
        rule = RecurrenceRuleData(
            frequency=RecurrenceFrequency.DAILY,
            end_type=RecurrenceEndType.ON_DATE,
            end_date=datetime.datetime(2024, 3, 10),
        )

        result = service.create_event(data, recurrence=rule)

        events = list(Event.objects.get_series(result.recurrence_group_id))
        starts = [event.start_time for event in events]
        assert starts == [
            datetime.datetime(2024, 3, 8, 20, tzinfo=NEW_YORK),
            datetime.datetime(2024, 3, 9, 20, tzinfo=NEW_YORK),
            datetime.datetime(2024, 3, 10, 20, tzinfo=NEW_YORK),
        ]
        assert all(event.duration == datetime.timedelta(hours=8) for event in events)

    def test_rule_without_occurrences_raises(self, service, event_data):
        rule = RecurrenceRuleData(
            frequency=RecurrenceFrequency.DAILY,
            end_type=RecurrenceEndType.ON_DATE,
            end_date=datetime.datetime(2023, 12, 31),
        )

        with pytest.raises(EmptyRecurrenceSeriesError):
            service.create_event(event_data, recurrence=rule)

        assert not Event.objects.exists()

    def test_invalid_timezone_raises(self, service, event_data):
        data = EventInputData(
            title=event_data.title,
            start_time=event_data.start_time,
            end_time=event_data.end_time,
            timezone="Mars/Olympus_Mons",
        )

        with pytest.raises(InvalidTimezoneError, match="Mars/Olympus_Mons"):
            service.create_event(data)

    def test_end_before_start_raises(self, service):
        data = EventInputData(
            title="Backwards",
            start_time=_utc(1, 1, 11),
            end_time=_utc(1, 1, 9),
            timezone="UTC",
        )

        with pytest.raises(EventManagementError):
            service.create_event(data)

    def test_series_creation_is_rolled_back_on_failure(self, service, event_data, weekly_rule):
        with patch("recurring_events.services.recurring_event_service.logger") as mock_logger:
            mock_logger.info.side_effect = RuntimeError("boom")
            with pytest.raises(RuntimeError):
                service.create_event(event_data, recurrence=weekly_rule)

        assert not Event.objects.exists()


@pytest.mark.django_db
class TestPlanScope:
    def test_get_series_is_ordered_by_start(self, service, series):
        group_id = series[0].recurrence_group_id

        assert [event.pk for event in service.get_series(group_id)] == [
            event.pk for event in sorted(series, key=lambda e: e.start_time)
        ]

    @pytest.mark.parametrize("scope", list(RecurrenceScope))
    def test_standalone_event_targets_only_itself(self, service, scope):
        event = baker.make(Event, start_time=_utc(1, 1), end_time=_utc(1, 1, 10))

        assert service.plan_scope(event, scope) == (event.pk,)

    def test_invalid_scope_raises(self, service, series):
        with pytest.raises(InvalidRecurrenceScopeError):
            service.plan_scope(series[0], "every_other")

    def test_reference_outside_group_raises(self, service, series):
        other = baker.make(Event, start_time=_utc(1, 1), end_time=_utc(1, 1, 10))

        with pytest.raises(InvalidReferenceError):
            service.plan_scope_for_group(
                series[0].recurrence_group_id, other.pk, RecurrenceScope.ALL
            )

    def test_plan_this_and_following(self, service, series):
        assert service.plan_scope(series[2], RecurrenceScope.THIS_AND_FOLLOWING) == tuple(
            event.pk for event in series[2:]
        )


@pytest.mark.django_db
class TestUpdateEvents:
    def test_update_this_and_following_keeps_dates(self, service, series):
        result = service.update_events(
            series[2], RecurrenceScope.THIS_AND_FOLLOWING, {"title": "Evening shift"}
        )

        assert result.event_ids == tuple(event.pk for event in series[2:])
        assert result.changed_fields == ("title",)
        assert not result.deleted

        for original in series:
            event = Event.objects.get(pk=original.pk)
            expected_title = "Evening shift" if original in series[2:] else "Food bank shift"
            assert event.title == expected_title
            assert event.start_time == original.start_time
            assert event.end_time == original.end_time

    def test_update_all(self, service, series):
        service.update_events(series[3], RecurrenceScope.ALL, {"capacity": 30, "location": ""})

        assert set(
            Event.objects.filter(recurrence_group_id=series[0].recurrence_group_id).values_list(
                "capacity", "location"
            )
        ) == {(30, "")}

    def test_update_this_only_can_move_occurrence(self, service, series):
        new_start = _utc(1, 16, 13)
        new_end = _utc(1, 16, 15)

        result = service.update_events(
            series[2],
            RecurrenceScope.THIS_ONLY,
            {"start_time": new_start, "end_time": new_end},
        )

        assert result.event_ids == (series[2].pk,)
        moved = Event.objects.get(pk=series[2].pk)
        assert moved.start_time == new_start
        assert moved.end_time == new_end
        assert moved.recurrence_group_id == series[0].recurrence_group_id
        assert Event.objects.get(pk=series[3].pk).start_time == series[3].start_time

    @pytest.mark.parametrize(
        "scope", [RecurrenceScope.THIS_AND_FOLLOWING, RecurrenceScope.ALL]
    )
    def test_date_changes_require_this_only(self, service, series, scope):
        with pytest.raises(DateChangeScopeError):
            service.update_events(series[0], scope, {"start_time": _utc(1, 1, 7)})

        assert Event.objects.get(pk=series[0].pk).start_time == series[0].start_time

    def test_moving_end_before_start_raises(self, service, series):
        with pytest.raises(EventManagementError):
            service.update_events(
                series[1], RecurrenceScope.THIS_ONLY, {"end_time": _utc(1, 8, 8)}
            )

    def test_unknown_fields_raise(self, service, series):
        with pytest.raises(EventManagementError, match="recurrence_group_id"):
            service.update_events(
                series[0], RecurrenceScope.ALL, {"recurrence_group_id": None}
            )

    def test_update_bumps_modified(self, service, series):
        before = Event.objects.get(pk=series[4].pk).modified

        service.update_events(series[4], RecurrenceScope.THIS_ONLY, {"description": "Changed"})

        assert Event.objects.get(pk=series[4].pk).modified > before


@pytest.mark.django_db
class TestDeleteEvents:
    def test_delete_this_only(self, service, series):
        result = service.delete_events(series[1], RecurrenceScope.THIS_ONLY)

        assert result.deleted
        assert result.event_ids == (series[1].pk,)
        assert not Event.objects.filter(pk=series[1].pk).exists()
        assert Event.objects.count() == 4

    def test_delete_this_and_following(self, service, series):
        service.delete_events(series[2], RecurrenceScope.THIS_AND_FOLLOWING)

        assert list(Event.objects.values_list("pk", flat=True)) == [
            series[0].pk,
            series[1].pk,
        ]

    def test_delete_all(self, service, series):
        other = baker.make(Event, start_time=_utc(2, 1), end_time=_utc(2, 1, 10))

        service.delete_events(series[4], RecurrenceScope.ALL)

        assert list(Event.objects.values_list("pk", flat=True)) == [other.pk]

    def test_remaining_occurrences_keep_planning(self, service, series):
        service.delete_events(series[0], RecurrenceScope.THIS_ONLY)

        assert service.plan_scope(series[1], RecurrenceScope.ALL) == tuple(
            event.pk for event in series[1:]
        )

        with pytest.raises(InvalidReferenceError):
            service.plan_scope_for_group(
                series[1].recurrence_group_id, series[0].pk, RecurrenceScope.ALL
            )


class TestPreviewOccurrences:
    def test_preview_is_returned_in_event_timezone(self, service):
        rule = RecurrenceRuleData(
            frequency=RecurrenceFrequency.MONTHLY,
            end_type=RecurrenceEndType.ON_DATE,
            end_date=datetime.datetime(2024, 3, 31),
        )

        occurrences = service.preview_occurrences(
            datetime.datetime(2024, 1, 31, 9),
            datetime.datetime(2024, 1, 31, 10),
            "America/New_York",
            rule,
        )

        assert [occurrence.start for occurrence in occurrences] == [
            datetime.datetime(2024, 1, 31, 9, tzinfo=NEW_YORK),
            datetime.datetime(2024, 2, 29, 9, tzinfo=NEW_YORK),
            datetime.datetime(2024, 3, 31, 9, tzinfo=NEW_YORK),
        ]
        assert all(occurrence.start.tzinfo == NEW_YORK for occurrence in occurrences)

    def test_preview_does_not_write(self, service, weekly_rule):
        with patch.object(Event.objects, "bulk_create") as mock_bulk_create:
            occurrences = service.preview_occurrences(
                _utc(1, 1), _utc(1, 1, 10), "UTC", weekly_rule
            )

        assert len(occurrences) == 5
        mock_bulk_create.assert_not_called()
