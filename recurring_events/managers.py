import uuid

from django.db.models import Manager

from recurring_events.querysets import EventQuerySet


class EventManager(Manager):
    def get_queryset(self) -> EventQuerySet:
        return EventQuerySet(self.model, using=self._db)

    def filter_by_recurrence_group(self, recurrence_group_id: uuid.UUID | str):
        return self.get_queryset().filter_by_recurrence_group(recurrence_group_id)

    def filter_recurring(self):
        return self.get_queryset().filter_recurring()

    def filter_non_recurring(self):
        return self.get_queryset().filter_non_recurring()

    def order_for_series(self):
        return self.get_queryset().order_for_series()

    def get_series(self, recurrence_group_id: uuid.UUID | str):
        """Returns the current members of a series, ordered for planning."""
        return self.filter_by_recurrence_group(recurrence_group_id).order_for_series()
