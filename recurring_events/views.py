from typing import Annotated

from dependency_injector.wiring import Provide, inject
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from common.utils.view_utils import PlatformModelViewSet
from recurring_events.constants import (
    OCCURRENCE_ONLY_FIELDS,
    SERIES_EDITABLE_FIELDS,
    RecurrenceScope,
)
from recurring_events.exceptions import RecurringEventsError
from recurring_events.filtersets import EventFilterSet
from recurring_events.models import Event
from recurring_events.permissions import EventPermission
from recurring_events.serializers import (
    EventSerializer,
    OccurrenceIntervalSerializer,
    OccurrencePreviewSerializer,
    RecurrenceRuleSerializer,
    ScopedEventDeleteSerializer,
    ScopedEventUpdateSerializer,
    ScopedMutationResultSerializer,
    SeriesCreationResultSerializer,
)
from recurring_events.services.recently_modified import RecentlyModifiedRegistry
from recurring_events.services.recurring_event_service import RecurringEventService


RECENTLY_MODIFIED_SESSION_KEY = "recently_modified_events"


class EventViewSet(PlatformModelViewSet):
    """
    ViewSet for managing events and recurring series.

    Edits and deletions of a single event go through the same scoped operations as
    the series endpoints, with the ``this_only`` scope.
    """

    filterset_class = EventFilterSet
    permission_classes = (EventPermission,)
    queryset = Event.objects.all()
    serializer_class = EventSerializer

    def get_recently_modified_registry(self) -> RecentlyModifiedRegistry:
        return RecentlyModifiedRegistry.from_dict(
            self.request.session.get(RECENTLY_MODIFIED_SESSION_KEY)
        )

    def save_recently_modified_registry(self, registry: RecentlyModifiedRegistry) -> None:
        self.request.session[RECENTLY_MODIFIED_SESSION_KEY] = registry.to_dict()

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context["recently_modified"] = self.get_recently_modified_registry()
        return context

    @extend_schema(
        summary="Create event or recurring series",
        description=(
            "Create a single event, or every occurrence of a recurring event when "
            "`recurrence` is provided. All occurrences are written in one transaction."
        ),
        request=EventSerializer,
        responses={201: SeriesCreationResultSerializer},
    )
    def create(self, request, *args, **kwargs):
        serializer = self.get_write_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        result = serializer.creation_result

        registry = self.get_recently_modified_registry()
        registry.mark_creation(result)
        self.save_recently_modified_registry(registry)

        return Response(
            SeriesCreationResultSerializer(result, context=self.get_serializer_context()).data,
            status=status.HTTP_201_CREATED,
        )

    @inject
    def perform_update(
        self,
        serializer,
        recurring_event_service: Annotated[
            RecurringEventService, Provide["recurring_event_service"]
        ],
    ):
        instance = serializer.instance
        validated_data = serializer.validated_data
        if validated_data.get("timezone", instance.timezone) != instance.timezone:
            raise ValidationError({"timezone": ["The timezone of an event cannot be changed."]})

        changes = {
            field: value
            for field, value in validated_data.items()
            if field in (*SERIES_EDITABLE_FIELDS, *OCCURRENCE_ONLY_FIELDS)
            and value != getattr(instance, field)
        }
        if not changes:
            return

        try:
            result = recurring_event_service.update_events(
                instance, RecurrenceScope.THIS_ONLY, changes
            )
        except RecurringEventsError as e:
            raise ValidationError({"non_field_errors": [str(e)]}) from e

        registry = self.get_recently_modified_registry()
        registry.mark_mutation(result)
        self.save_recently_modified_registry(registry)

    @extend_schema(
        summary="Delete event",
        description="Delete a single event. Other occurrences of its series are kept.",
        responses={204: None},
    )
    @inject
    def destroy(
        self,
        request,
        *args,
        recurring_event_service: Annotated[
            RecurringEventService, Provide["recurring_event_service"]
        ],
        **kwargs,
    ):
        instance = self.get_object()

        try:
            result = recurring_event_service.delete_events(instance, RecurrenceScope.THIS_ONLY)
        except RecurringEventsError as e:
            raise ValidationError({"non_field_errors": [str(e)]}) from e

        registry = self.get_recently_modified_registry()
        registry.mark_mutation(result)
        self.save_recently_modified_registry(registry)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        summary="Update occurrences of a recurring event",
        description=(
            "Apply field changes to this occurrence, this and all following occurrences, "
            "or the whole series. Start and end times can only change with `this_only`."
        ),
        request=ScopedEventUpdateSerializer,
        responses={200: ScopedMutationResultSerializer},
    )
    @action(
        methods=["POST"],
        detail=True,
        url_path="scoped-update",
        url_name="scoped-update",
    )
    @inject
    def scoped_update(
        self,
        request,
        pk,
        recurring_event_service: Annotated[
            RecurringEventService, Provide["recurring_event_service"]
        ],
    ):
        """
        Update the occurrences of a series selected by a scope.
        """
        event = self.get_object()

        serializer = ScopedEventUpdateSerializer(
            data=request.data, context=self.get_serializer_context()
        )
        serializer.is_valid(raise_exception=True)

        try:
            result = recurring_event_service.update_events(
                event,
                serializer.validated_data["scope"],
                ScopedEventUpdateSerializer.get_changes(serializer.validated_data),
            )
        except RecurringEventsError as e:
            raise ValidationError({"non_field_errors": [str(e)]}) from e

        registry = self.get_recently_modified_registry()
        registry.mark_mutation(result)
        self.save_recently_modified_registry(registry)
        return Response(ScopedMutationResultSerializer(result).data)

    @extend_schema(
        summary="Delete occurrences of a recurring event",
        description=(
            "Delete this occurrence, this and all following occurrences, or the whole series."
        ),
        request=ScopedEventDeleteSerializer,
        responses={200: ScopedMutationResultSerializer},
    )
    @action(
        methods=["POST"],
        detail=True,
        url_path="scoped-delete",
        url_name="scoped-delete",
    )
    @inject
    def scoped_delete(
        self,
        request,
        pk,
        recurring_event_service: Annotated[
            RecurringEventService, Provide["recurring_event_service"]
        ],
    ):
        """
        Delete the occurrences of a series selected by a scope.
        """
        event = self.get_object()

        serializer = ScopedEventDeleteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = recurring_event_service.delete_events(
                event, serializer.validated_data["scope"]
            )
        except RecurringEventsError as e:
            raise ValidationError({"non_field_errors": [str(e)]}) from e

        registry = self.get_recently_modified_registry()
        registry.mark_mutation(result)
        self.save_recently_modified_registry(registry)
        return Response(ScopedMutationResultSerializer(result).data)

    @extend_schema(
        summary="List the occurrences of a series",
        responses={200: EventSerializer(many=True)},
    )
    @action(
        methods=["GET"],
        detail=True,
        url_path="series",
        url_name="series",
    )
    @inject
    def series(
        self,
        request,
        pk,
        recurring_event_service: Annotated[
            RecurringEventService, Provide["recurring_event_service"]
        ],
    ):
        """
        List the current occurrences of the event's series, in start order.
        """
        event = self.get_object()
        if not event.is_recurring:
            events = [event]
        else:
            events = recurring_event_service.get_series(event.recurrence_group_id)

        return Response(
            EventSerializer(events, many=True, context=self.get_serializer_context()).data
        )

    @extend_schema(
        summary="Preview occurrences",
        description="Compute the occurrences a recurrence rule would create without saving them.",
        request=OccurrencePreviewSerializer,
        responses={200: OccurrenceIntervalSerializer(many=True)},
    )
    @action(
        methods=["POST"],
        detail=False,
        url_path="preview-occurrences",
        url_name="preview-occurrences",
    )
    @inject
    def preview_occurrences(
        self,
        request,
        recurring_event_service: Annotated[
            RecurringEventService, Provide["recurring_event_service"]
        ],
    ):
        serializer = OccurrencePreviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            occurrences = recurring_event_service.preview_occurrences(
                data["start_time"],
                data["end_time"],
                data["timezone"],
                RecurrenceRuleSerializer.to_rule_data(data["recurrence"]),
            )
        except RecurringEventsError as e:
            raise ValidationError({"non_field_errors": [str(e)]}) from e

        return Response(OccurrenceIntervalSerializer(occurrences, many=True).data)

    @extend_schema(
        summary="Clear recently modified highlights",
        request=None,
        responses={204: None},
    )
    @action(
        methods=["POST"],
        detail=False,
        url_path="recently-modified/clear",
        url_name="clear-recently-modified",
    )
    def clear_recently_modified(self, request):
        registry = self.get_recently_modified_registry()
        registry.clear()
        self.save_recently_modified_registry(registry)
        return Response(status=status.HTTP_204_NO_CONTENT)
