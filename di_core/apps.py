from django.apps import AppConfig
from django.conf import settings


# Settings exposed to providers as ``config.<NAME>``
CONTAINER_SETTINGS = (
    "RECURRENCE_MAX_OCCURRENCES",
    "RECURRENCE_WEEKLY_SAFETY_CEILING",
)


class DICoreConfig(AppConfig):
    name = "di_core"
    verbose_name = "Dependency Injection"

    def ready(self) -> None:
        from di_core import containers

        container = containers.AppContainer()
        container.config.from_dict({name: getattr(settings, name) for name in CONTAINER_SETTINGS})

        container.wire(
            packages=getattr(settings, "INTERNAL_INSTALLED_APPS", []),
        )

        containers.container = container
