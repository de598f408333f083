from rest_framework import status
from rest_framework.response import Response
from rest_framework.viewsets import ModelViewSet


class ReadWriteSerializerMixin:
    """
    Lets a viewset validate input with one serializer and render output with another.

    ``write_serializer_class`` and ``read_serializer_class`` both fall back to
    ``serializer_class``.
    """

    def get_read_serializer_class(self):
        if getattr(self, "read_serializer_class", None) is None:
            return self.get_serializer_class()

        return self.read_serializer_class

    def get_read_serializer(self, *args, **kwargs):
        serializer_class = self.get_read_serializer_class()
        kwargs["context"] = self.get_serializer_context()
        return serializer_class(*args, **kwargs)

    def get_write_serializer_class(self):
        if getattr(self, "write_serializer_class", None) is None:
            return self.get_serializer_class()

        return self.write_serializer_class

    def get_write_serializer(self, *args, **kwargs):
        serializer_class = self.get_write_serializer_class()
        kwargs["context"] = self.get_serializer_context()
        return serializer_class(*args, **kwargs)


class RefetchAfterWriteMixin(ReadWriteSerializerMixin):
    """
    Re-reads the written instance through ``get_queryset()`` before rendering it, so
    changes applied with ``QuerySet.update()`` and annotations show in the response.
    """

    def get_return_object(self, instance):
        return self.get_queryset().get(pk=instance.pk)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop("partial", False)
        instance = self.get_object()
        serializer = self.get_write_serializer(instance, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        self.perform_update(serializer)

        return_serializer = self.get_read_serializer(self.get_return_object(instance))
        return Response(return_serializer.data, status=status.HTTP_200_OK)


class FilterOnlyOnListMixin:
    def filter_queryset(self, queryset):
        if self.action != "list":
            return queryset
        return super().filter_queryset(queryset)


class PlatformModelViewSet(
    RefetchAfterWriteMixin,
    FilterOnlyOnListMixin,
    ModelViewSet,
):
    """
    A viewset that provides default `create()`, `retrieve()`, `update()`,
    `partial_update()`, `destroy()` and `list()` actions for platform models.
    It refetches the instance after updates to ensure the latest data is returned.
    """

    pass
