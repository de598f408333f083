from django.core.exceptions import ImproperlyConfigured


class RecurringEventServiceNotInjectedError(ImproperlyConfigured):
    pass


class RecurringEventsError(Exception):
    """Base exception for recurring events errors"""

    default_message = ""

    def __init__(self, message: str | None = None):
        if message is None:
            message = self.default_message
        super().__init__(message)


class RecurrenceRuleError(RecurringEventsError):
    """Base class for recurrence rule errors"""

    pass


class InvalidRecurrenceRuleError(RecurrenceRuleError):
    default_message = "Invalid recurrence rule"


class SeriesMutationError(RecurringEventsError):
    """Base class for errors raised while planning or applying a scoped mutation"""

    pass


class InvalidReferenceError(SeriesMutationError):
    def __init__(self, reference_id):
        self.reference_id = reference_id
        super().__init__(f"Occurrence {reference_id} is not part of the supplied series")


class InvalidRecurrenceScopeError(SeriesMutationError):
    def __init__(self, scope):
        super().__init__(f"Invalid recurrence scope: {scope}")


class DateChangeScopeError(SeriesMutationError):
    default_message = (
        "Start and end times can only be changed for a single occurrence. "
        "Use the 'this_only' scope."
    )


class EventManagementError(RecurringEventsError):
    """Base class for event management errors"""

    pass


class InvalidTimezoneError(EventManagementError):
    def __init__(self, iana_tz: str):
        super().__init__(f"Invalid IANA timezone: {iana_tz}")


class EmptyRecurrenceSeriesError(EventManagementError):
    default_message = "The recurrence rule does not produce any occurrence."
