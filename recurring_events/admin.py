"""Django admin interface for events and recurring series."""

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from recurring_events.models import Event


class IsRecurringListFilter(admin.SimpleListFilter):
    title = _("recurring")
    parameter_name = "is_recurring"

    def lookups(self, request, model_admin):
        return (("yes", _("Yes")), ("no", _("No")))

    def queryset(self, request, queryset):
        if self.value() == "yes":
            return queryset.filter_recurring()
        if self.value() == "no":
            return queryset.filter_non_recurring()
        return queryset


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    """Admin interface for events. Occurrences of a series are listed individually."""

    list_display = (
        "id",
        "title",
        "local_start_time",
        "local_end_time",
        "timezone",
        "recurrence_group_id",
        "created_by",
        "created",
    )
    list_filter = (IsRecurringListFilter, "timezone")
    search_fields = ("title", "location")
    readonly_fields = ("recurrence_group_id", "created", "modified")
    raw_id_fields = ("created_by",)
    date_hierarchy = "start_time"
    ordering = ("start_time", "id")
