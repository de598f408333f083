import datetime

import pytest

from recurring_events.constants import RecurrenceEndType, RecurrenceFrequency
from recurring_events.serializers import (
    RecurrenceRuleSerializer,
    ScopedEventUpdateSerializer,
)


class TestRecurrenceRuleSerializer:
    def test_valid_rule_is_converted_to_rule_data(self):
        serializer = RecurrenceRuleSerializer(
            data={
                "frequency": "weekly",
                "interval": 2,
                "week_days": ["mon", "fri"],
                "end_type": "on_date",
                "end_date": "2024-06-30",
            }
        )

        assert serializer.is_valid(), serializer.errors
        rule = RecurrenceRuleSerializer.to_rule_data(serializer.validated_data)

        assert rule.frequency is RecurrenceFrequency.WEEKLY
        assert rule.interval == 2
        assert rule.week_days == frozenset({"mon", "fri"})
        assert rule.end_type is RecurrenceEndType.ON_DATE
        assert rule.end_date == datetime.datetime(2024, 6, 30)
        assert rule.occurrence_count is None

    def test_interval_defaults_to_one(self):
        serializer = RecurrenceRuleSerializer(
            data={"frequency": "daily", "end_type": "after_occurrences", "occurrence_count": 3}
        )

        assert serializer.is_valid(), serializer.errors
        assert serializer.validated_data["interval"] == 1
        assert serializer.validated_data["week_days"] == []

    @pytest.mark.parametrize(
        "data, error_field",
        [
            ({"frequency": "daily", "end_type": "on_date"}, "end_date"),
            ({"frequency": "daily", "end_type": "after_occurrences"}, "occurrence_count"),
            (
                {
                    "frequency": "daily",
                    "end_type": "after_occurrences",
                    "occurrence_count": 0,
                },
                "occurrence_count",
            ),
            (
                {
                    "frequency": "daily",
                    "interval": 0,
                    "end_type": "after_occurrences",
                    "occurrence_count": 2,
                },
                "interval",
            ),
            (
                {"frequency": "hourly", "end_type": "after_occurrences", "occurrence_count": 2},
                "frequency",
            ),
        ],
    )
    def test_invalid_rules(self, data, error_field):
        serializer = RecurrenceRuleSerializer(data=data)

        assert not serializer.is_valid()
        assert error_field in serializer.errors

    def test_both_end_conditions_are_rejected(self):
        serializer = RecurrenceRuleSerializer(
            data={
                "frequency": "daily",
                "end_type": "on_date",
                "end_date": "2024-06-30",
                "occurrence_count": 4,
            }
        )

        assert not serializer.is_valid()
        assert "non_field_errors" in serializer.errors


class TestScopedEventUpdateSerializer:
    def test_changes_exclude_scope(self):
        serializer = ScopedEventUpdateSerializer(
            data={"scope": "all", "title": "Renamed", "capacity": None}
        )

        assert serializer.is_valid(), serializer.errors
        assert ScopedEventUpdateSerializer.get_changes(serializer.validated_data) == {
            "title": "Renamed",
            "capacity": None,
        }

    def test_time_changes_allowed_for_this_only(self):
        serializer = ScopedEventUpdateSerializer(
            data={"scope": "this_only", "end_time": "2024-01-01T12:00:00Z"}
        )

        assert serializer.is_valid(), serializer.errors

    def test_time_changes_rejected_for_following(self):
        serializer = ScopedEventUpdateSerializer(
            data={
                "scope": "this_and_following",
                "start_time": "2024-01-01T10:00:00Z",
                "end_time": "2024-01-01T12:00:00Z",
            }
        )

        assert not serializer.is_valid()
        assert set(serializer.errors) == {"start_time", "end_time"}
