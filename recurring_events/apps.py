from django.apps import AppConfig


class RecurringEventsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "recurring_events"
    verbose_name = "Recurring Events"
