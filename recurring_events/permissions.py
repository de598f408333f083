from rest_framework.permissions import SAFE_METHODS, BasePermission


class EventPermission(BasePermission):
    """
    Custom permission for Event operations.
    Any authenticated user can read events; only their author or staff can change them.
    """

    def has_permission(self, request, view):
        return request.user.is_authenticated

    def has_object_permission(self, request, view, obj):
        if request.method in SAFE_METHODS:
            return True
        if request.user.is_staff:
            return True
        # Events whose author was removed can only be changed by staff
        return obj.created_by_id is not None and obj.created_by_id == request.user.pk
