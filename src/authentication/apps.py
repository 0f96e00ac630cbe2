"""App configuration for authentication components."""

from django.apps import AppConfig


class AuthenticationConfig(AppConfig):
    """Holds the newsroom User model, JWT token service, and account endpoints."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "authentication"
