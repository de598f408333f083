from typing import Any, TypedDict

from rest_framework.viewsets import ViewSetMixin


class RouteDict(TypedDict):
    """Arguments for ``DefaultRouter.register``, declared by each app's ``routes.py``."""

    regex: str
    viewset: type[ViewSetMixin]
    basename: str


# JSON-serializable state kept in the user's session
SessionPayload = dict[str, list[Any]]
