from common.types import RouteDict

from .views import EventViewSet


routes: list[RouteDict] = [
    {
        "regex": r"events",
        "viewset": EventViewSet,
        "basename": "Events",
    },
]
