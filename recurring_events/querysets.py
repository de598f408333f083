import uuid

from django.db.models.query import QuerySet


class EventQuerySet(QuerySet):
    """
    Custom QuerySet for Event model.

    Series membership is always discovered through ``recurrence_group_id``; there is
    no table owning the occurrences of a series.
    """

    def filter_by_recurrence_group(self, recurrence_group_id: uuid.UUID | str):
        """
        Returns every occurrence materialized from the same recurrence rule application.
        """
        return self.filter(recurrence_group_id=recurrence_group_id)

    def filter_recurring(self):
        """Filter to get occurrences that belong to a recurrence group."""
        return self.filter(recurrence_group_id__isnull=False)

    def filter_non_recurring(self):
        """Filter to get standalone events."""
        return self.filter(recurrence_group_id__isnull=True)

    def order_for_series(self):
        """
        Orders occurrences by start time, breaking ties by id, which is the order
        scoped mutations are planned in.
        """
        return self.order_by("start_time", "id")
