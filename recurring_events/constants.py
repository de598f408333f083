from django.db.models import TextChoices


class RecurrenceFrequency(TextChoices):
    DAILY = "daily", "Daily"
    WEEKLY = "weekly", "Weekly"
    MONTHLY = "monthly", "Monthly"
    YEARLY = "yearly", "Yearly"


class RecurrenceWeekday(TextChoices):
    SUNDAY = "sun", "Sunday"
    MONDAY = "mon", "Monday"
    TUESDAY = "tue", "Tuesday"
    WEDNESDAY = "wed", "Wednesday"
    THURSDAY = "thu", "Thursday"
    FRIDAY = "fri", "Friday"
    SATURDAY = "sat", "Saturday"


class RecurrenceEndType(TextChoices):
    ON_DATE = "on_date", "On date"
    AFTER_OCCURRENCES = "after_occurrences", "After a number of occurrences"


class RecurrenceScope(TextChoices):
    THIS_ONLY = "this_only", "This occurrence only"
    THIS_AND_FOLLOWING = "this_and_following", "This and all following occurrences"
    ALL = "all", "All occurrences in the series"


# Sunday-based indexes, Sunday = 0 ... Saturday = 6
WEEKDAY_INDEX: dict[str, int] = {
    RecurrenceWeekday.SUNDAY: 0,
    RecurrenceWeekday.MONDAY: 1,
    RecurrenceWeekday.TUESDAY: 2,
    RecurrenceWeekday.WEDNESDAY: 3,
    RecurrenceWeekday.THURSDAY: 4,
    RecurrenceWeekday.FRIDAY: 5,
    RecurrenceWeekday.SATURDAY: 6,
}

MAX_OCCURRENCES = 52
WEEKLY_SAFETY_CEILING = 200
MAX_RECURRENCE_INTERVAL = 99

# Fields a scoped edit may change on more than one occurrence at a time
SERIES_EDITABLE_FIELDS = ("title", "description", "location", "capacity")
# Fields that only a single-occurrence edit may change
OCCURRENCE_ONLY_FIELDS = ("start_time", "end_time")
