"""DRF permission class mapping viewset actions to gate operations."""

from rest_framework import permissions

from .policy import _has_superuser_bypass, could_perform, is_acting_identity


class RBACPermission(permissions.BasePermission):
    """Coarse per-action check against ``view.action_operations``.

    Views declare ``action_operations = {"create": Operation.CREATE_NEWS, ...}``.
    Actions absent from the map are public. Mapped actions require an active
    authenticated user whose role could perform the operation for *some*
    ownership outcome; the engines repeat the exact check once the target
    entity is loaded.
    """

    message = "You do not have permission to perform this action on this resource."

    def has_permission(self, request, view) -> bool:
        operation = self._get_operation(view)
        if operation is None:
            return True

        user = getattr(request, "user", None)
        if not is_acting_identity(user):
            return False
        if _has_superuser_bypass(user):
            return True
        return could_perform(getattr(user, "role", None), operation)

    @staticmethod
    def _get_operation(view):
        operations = getattr(view, "action_operations", None) or {}
        return operations.get(getattr(view, "action", None))


__all__ = ["RBACPermission"]
