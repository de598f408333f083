from django_filters import rest_framework as filters

from recurring_events.models import Event


class EventFilterSet(filters.FilterSet):
    """
    FilterSet for Event model.
    """

    start_time = filters.DateTimeFilter(
        field_name="start_time",
        lookup_expr="gte",
        label="Start time (greater than or equal to)",
    )
    end_time = filters.DateTimeFilter(
        field_name="end_time",
        lookup_expr="lte",
        label="End time (less than or equal to)",
    )
    start_time_range = filters.DateTimeFromToRangeFilter(
        field_name="start_time",
        label="Start time range",
    )
    title = filters.CharFilter(
        field_name="title",
        lookup_expr="icontains",
        label="Filter by partial title match",
    )
    recurrence_group_id = filters.UUIDFilter(
        field_name="recurrence_group_id",
        label="Filter by recurrence group",
    )
    is_recurring = filters.BooleanFilter(
        field_name="recurrence_group_id",
        lookup_expr="isnull",
        exclude=True,
        label="Only occurrences of recurring series (true) or standalone events (false)",
    )

    class Meta:
        model = Event
        fields = (
            "start_time",
            "end_time",
            "start_time_range",
            "title",
            "recurrence_group_id",
            "is_recurring",
        )
