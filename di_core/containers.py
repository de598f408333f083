from dependency_injector import containers, providers

from recurring_events.recurrence_utils import OccurrenceGenerator
from recurring_events.services.recurring_event_service import RecurringEventService


class AppContainer(containers.DeclarativeContainer):
    config = providers.Configuration()

    occurrence_generator = providers.Singleton(
        OccurrenceGenerator,
        max_occurrences=config.RECURRENCE_MAX_OCCURRENCES,
        weekly_safety_ceiling=config.RECURRENCE_WEEKLY_SAFETY_CEILING,
    )

    recurring_event_service = providers.Factory(
        RecurringEventService,
        occurrence_generator=occurrence_generator,
    )


container: AppContainer | None = None  # set during app startup
