"""App configuration for the access_control Django application.

The app holds the fixed role model and the permission table; it has no
database tables of its own. Loading it registers the RBAC system checks.
"""

from django.apps import AppConfig


class AccessControlConfig(AppConfig):
    """Application configuration for the access_control app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "access_control"

    def ready(self) -> None:
        """Register system checks when the app is loaded."""
        from . import checks  # noqa: F401
