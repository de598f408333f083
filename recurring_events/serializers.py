import datetime
import zoneinfo
from typing import Annotated

from dependency_injector.wiring import Provide, inject
from rest_framework import serializers

from recurring_events.constants import (
    MAX_RECURRENCE_INTERVAL,
    OCCURRENCE_ONLY_FIELDS,
    SERIES_EDITABLE_FIELDS,
    RecurrenceEndType,
    RecurrenceFrequency,
    RecurrenceScope,
    RecurrenceWeekday,
)
from recurring_events.exceptions import (
    RecurringEventServiceNotInjectedError,
    RecurringEventsError,
)
from recurring_events.models import Event
from recurring_events.services.dataclasses import EventInputData, RecurrenceRuleData
from recurring_events.services.recurring_event_service import RecurringEventService


def validate_iana_timezone(value: str) -> str:
    if not value:
        raise serializers.ValidationError("Timezone is required.")

    try:
        zoneinfo.ZoneInfo(value)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError) as e:
        raise serializers.ValidationError(f"Invalid timezone: {value}") from e

    return value


class RecurrenceRuleSerializer(serializers.Serializer):
    frequency = serializers.ChoiceField(choices=RecurrenceFrequency.choices)
    interval = serializers.IntegerField(
        min_value=1,
        max_value=MAX_RECURRENCE_INTERVAL,
        default=1,
        help_text="The interval between each frequency iteration (e.g., every 2 weeks)",
    )
    week_days = serializers.ListField(
        child=serializers.ChoiceField(choices=RecurrenceWeekday.choices),
        required=False,
        default=list,
        allow_empty=True,
        help_text="Weekdays for weekly rules (e.g., ['mon', 'wed'])",
    )
    end_type = serializers.ChoiceField(choices=RecurrenceEndType.choices)
    end_date = serializers.DateField(
        required=False,
        allow_null=True,
        help_text="Last day occurrences may fall on, in the event's timezone",
    )
    occurrence_count = serializers.IntegerField(
        required=False,
        allow_null=True,
        min_value=1,
        help_text="Number of occurrences after which the recurrence ends",
    )

    def validate(self, attrs):
        end_type = attrs["end_type"]
        end_date = attrs.get("end_date")
        occurrence_count = attrs.get("occurrence_count")

        if end_type == RecurrenceEndType.ON_DATE:
            if end_date is None:
                raise serializers.ValidationError(
                    {"end_date": "This field is required when the rule ends on a date."}
                )
            if occurrence_count is not None:
                raise serializers.ValidationError(
                    "Cannot specify both 'end_date' and 'occurrence_count' in a recurrence rule."
                )
        else:
            if occurrence_count is None:
                raise serializers.ValidationError(
                    {
                        "occurrence_count": (
                            "This field is required when the rule ends after a number "
                            "of occurrences."
                        )
                    }
                )
            if end_date is not None:
                raise serializers.ValidationError(
                    "Cannot specify both 'end_date' and 'occurrence_count' in a recurrence rule."
                )

        return attrs

    @staticmethod
    def to_rule_data(attrs: dict) -> RecurrenceRuleData:
        """Build the rule value; ``end_date`` becomes naive local midnight."""
        end_date = attrs.get("end_date")
        return RecurrenceRuleData(
            frequency=attrs["frequency"],
            interval=attrs.get("interval", 1),
            week_days=frozenset(attrs.get("week_days") or ()),
            end_type=attrs["end_type"],
            end_date=(
                datetime.datetime.combine(end_date, datetime.time.min) if end_date else None
            ),
            occurrence_count=attrs.get("occurrence_count"),
        )


class EventSerializer(serializers.ModelSerializer):
    recurrence = RecurrenceRuleSerializer(
        required=False,
        allow_null=True,
        write_only=True,
        help_text="Recurrence rule data for creating recurring events",
    )
    is_recurring = serializers.SerializerMethodField(
        read_only=True, help_text="True if this event is an occurrence of a recurring series"
    )
    is_recently_modified = serializers.SerializerMethodField(
        read_only=True, help_text="True if this event or its series was changed recently"
    )
    timezone = serializers.CharField(validators=[validate_iana_timezone])

    class Meta:
        model = Event
        fields = (
            "id",
            "title",
            "description",
            "location",
            "capacity",
            "start_time",
            "end_time",
            "timezone",
            "recurrence",
            "recurrence_group_id",
            "is_recurring",
            "is_recently_modified",
            "created",
            "modified",
        )
        read_only_fields = (
            "id",
            "recurrence_group_id",
            "created",
            "modified",
        )

    @inject
    def __init__(
        self,
        *args,
        recurring_event_service: Annotated[
            "RecurringEventService | None", Provide["recurring_event_service"]
        ] = None,
        **kwargs,
    ):
        self.recurring_event_service = recurring_event_service
        self.creation_result = None
        super().__init__(*args, **kwargs)

    def get_is_recurring(self, obj: Event) -> bool:
        return obj.is_recurring

    def get_is_recently_modified(self, obj: Event) -> bool:
        registry = self.context.get("recently_modified")
        if registry is None:
            return False
        return registry.is_recent(obj.pk, obj.recurrence_group_id)

    def validate(self, attrs):
        start_time = attrs.get("start_time", getattr(self.instance, "start_time", None))
        end_time = attrs.get("end_time", getattr(self.instance, "end_time", None))
        if start_time and end_time and start_time >= end_time:
            raise serializers.ValidationError("End time must be after start time.")

        if self.instance is not None and attrs.get("recurrence"):
            raise serializers.ValidationError(
                {"recurrence": "Recurrence can only be set when creating an event."}
            )

        return attrs

    def create(self, validated_data):
        if not self.recurring_event_service:
            raise RecurringEventServiceNotInjectedError(
                "recurring_event_service is not defined, please configure your DI container "
                "correctly"
            )

        recurrence_data = validated_data.pop("recurrence", None)
        user = self.context["request"].user
        event_data = EventInputData(
            title=validated_data["title"],
            description=validated_data.get("description", ""),
            location=validated_data.get("location", ""),
            capacity=validated_data.get("capacity"),
            start_time=validated_data["start_time"],
            end_time=validated_data["end_time"],
            timezone=validated_data["timezone"],
            created_by_id=user.pk if user and user.is_authenticated else None,
        )

        try:
            self.creation_result = self.recurring_event_service.create_event(
                event_data,
                recurrence=(
                    RecurrenceRuleSerializer.to_rule_data(recurrence_data)
                    if recurrence_data
                    else None
                ),
            )
        except RecurringEventsError as e:
            raise serializers.ValidationError({"non_field_errors": [str(e)]}) from e

        return self.creation_result.events[0]


class OccurrenceIntervalSerializer(serializers.Serializer):
    start = serializers.DateTimeField(read_only=True)
    end = serializers.DateTimeField(read_only=True)


class OccurrencePreviewSerializer(serializers.Serializer):
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()
    timezone = serializers.CharField(validators=[validate_iana_timezone])
    recurrence = RecurrenceRuleSerializer()

    def validate(self, attrs):
        if attrs["start_time"] >= attrs["end_time"]:
            raise serializers.ValidationError("End time must be after start time.")
        return attrs


class ScopedEventDeleteSerializer(serializers.Serializer):
    scope = serializers.ChoiceField(
        choices=RecurrenceScope.choices,
        help_text="Which occurrences of the series the deletion applies to",
    )


class ScopedEventUpdateSerializer(serializers.Serializer):
    scope = serializers.ChoiceField(
        choices=RecurrenceScope.choices,
        help_text="Which occurrences of the series the update applies to",
    )
    title = serializers.CharField(required=False, max_length=255)
    description = serializers.CharField(required=False, allow_blank=True)
    location = serializers.CharField(required=False, allow_blank=True, max_length=255)
    capacity = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    start_time = serializers.DateTimeField(
        required=False, help_text="Only accepted with the 'this_only' scope"
    )
    end_time = serializers.DateTimeField(
        required=False, help_text="Only accepted with the 'this_only' scope"
    )

    def validate(self, attrs):
        changes = self.get_changes(attrs)
        if not changes:
            raise serializers.ValidationError("At least one field to update must be provided.")

        date_fields = sorted(set(changes) & set(OCCURRENCE_ONLY_FIELDS))
        if date_fields and attrs["scope"] != RecurrenceScope.THIS_ONLY:
            raise serializers.ValidationError(
                {
                    field: "Times can only be changed with the 'this_only' scope."
                    for field in date_fields
                }
            )

        return attrs

    @staticmethod
    def get_changes(attrs: dict) -> dict:
        return {
            field: attrs[field]
            for field in (*SERIES_EDITABLE_FIELDS, *OCCURRENCE_ONLY_FIELDS)
            if field in attrs
        }


class ScopedMutationResultSerializer(serializers.Serializer):
    scope = serializers.ChoiceField(choices=RecurrenceScope.choices, read_only=True)
    event_ids = serializers.ListField(child=serializers.IntegerField(), read_only=True)
    recurrence_group_id = serializers.UUIDField(read_only=True, allow_null=True)
    deleted = serializers.BooleanField(read_only=True)
    changed_fields = serializers.ListField(child=serializers.CharField(), read_only=True)


class SeriesCreationResultSerializer(serializers.Serializer):
    recurrence_group_id = serializers.UUIDField(read_only=True, allow_null=True)
    events = EventSerializer(many=True, read_only=True)
