"""System checks for RBAC configuration."""

from django.core.checks import Error, register

from access_control.permissions import RBACPermission
from access_control.policy import PERMISSION_TABLE, Operation

MUTATING_ACTIONS = ("create", "update", "partial_update", "destroy")


@register()
def rbac_views_map_operations(app_configs, **kwargs):
    """Ensure RBAC-protected views map every mutating action to a gate operation.

    Only the project's known viewsets are inspected. New RBAC-protected views
    should be added to the list below.
    """
    errors: list[Error] = []

    # Import here to avoid circular imports at module load time.
    from authentication.views import UserViewSet
    from comments.views import CommentViewSet
    from news.views import NewsViewSet

    rbac_views = [NewsViewSet, CommentViewSet, UserViewSet]

    for view_cls in rbac_views:
        if RBACPermission not in getattr(view_cls, "permission_classes", []):
            continue
        operations = getattr(view_cls, "action_operations", None)
        if not operations:
            errors.append(
                Error(
                    f"{view_cls.__name__} uses RBACPermission but does not "
                    f"define action_operations.",
                    obj=view_cls,
                    id="access_control.E001",
                )
            )
            continue

        for action, operation in operations.items():
            if not isinstance(operation, Operation) or operation not in PERMISSION_TABLE:
                errors.append(
                    Error(
                        f"{view_cls.__name__}.{action} maps to unknown operation {operation!r}.",
                        obj=view_cls,
                        id="access_control.E002",
                    )
                )

        for action in MUTATING_ACTIONS:
            if hasattr(view_cls, action) and action not in operations:
                errors.append(
                    Error(
                        f"{view_cls.__name__} exposes '{action}' without a gate operation.",
                        obj=view_cls,
                        id="access_control.E003",
                    )
                )

    return errors
