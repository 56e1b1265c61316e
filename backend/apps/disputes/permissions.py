"""
Dispute permissions.
"""
from rest_framework import permissions
from apps.splits.services.split_service import split_service


class IsDisputeParticipant(permissions.BasePermission):
    """
    Permission: User must be a participant of the disputed split.
    """
    def has_object_permission(self, request, view, obj):
        # obj is Dispute
        return request.user.is_staff or split_service.is_participant(
            obj.split_id, request.user.get_username()
        )


class IsAdminUser(permissions.BasePermission):
    """
    Permission: User must be staff/admin.
    """
    def has_permission(self, request, view):
        return bool(request.user and request.user.is_staff)
