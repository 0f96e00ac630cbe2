"""App configuration for shared newsroom infrastructure."""

from django.apps import AppConfig


class CoreConfig(AppConfig):
    """Settings, envelope responses, error mapping, and JWT middleware live here."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "core"
    verbose_name = "Newsroom core"
