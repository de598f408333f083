import datetime
import zoneinfo

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from common.models import BaseModel
from recurring_events.managers import EventManager


class Event(BaseModel):
    """
    A volunteering event, or one materialized occurrence of a recurring event.

    Occurrences of a series are independent rows. They share ``recurrence_group_id``
    as a back-reference to the rule application that produced them, but nothing owns
    them: each one can be edited or deleted on its own.
    """

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    location = models.CharField(max_length=255, blank=True)
    capacity = models.PositiveIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1)],
        help_text="Number of volunteer seats. Empty means unlimited.",
    )
    start_time = models.DateTimeField(db_index=True)
    end_time = models.DateTimeField()
    timezone = models.CharField(
        max_length=64,
        default="UTC",
        help_text="IANA timezone the event was authored in",
    )
    recurrence_group_id = models.UUIDField(
        null=True,
        blank=True,
        db_index=True,
        editable=False,
        help_text="Shared by every occurrence materialized from the same recurrence rule",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_events",
    )

    objects: EventManager = EventManager()

    class Meta:
        ordering = ("start_time", "id")

    def __str__(self):
        return f"{self.title} ({self.start_time} - {self.end_time})"

    @property
    def is_recurring(self) -> bool:
        """Returns True if this event is an occurrence of a recurring series."""
        return self.recurrence_group_id is not None

    @property
    def duration(self) -> datetime.timedelta:
        """Returns the duration of the event as a timedelta."""
        return self.end_time - self.start_time

    @property
    def local_start_time(self) -> datetime.datetime:
        return self.start_time.astimezone(zoneinfo.ZoneInfo(self.timezone))

    @property
    def local_end_time(self) -> datetime.datetime:
        return self.end_time.astimezone(zoneinfo.ZoneInfo(self.timezone))

    def clean(self):
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValidationError("End time must be after start time.")

        try:
            zoneinfo.ZoneInfo(self.timezone)
        except (zoneinfo.ZoneInfoNotFoundError, ValueError) as e:
            raise ValidationError(f"Invalid timezone: {self.timezone}") from e
