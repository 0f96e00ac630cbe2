"""Fixed newsroom roles, ordered from least to most privileged."""

from django.db import models


class Role(models.TextChoices):
    READER = "reader", "Reader"
    REGISTERED_USER = "registered_user", "Registered user"
    JOURNALIST = "journalist", "Journalist"
    MODERATOR = "moderator", "Moderator"
    ADMIN = "admin", "Admin"


STAFF_ROLES = frozenset({Role.MODERATOR, Role.ADMIN})

# Roles a caller may pick for themselves at registration.
SELF_ASSIGNABLE_ROLES = frozenset({Role.READER, Role.REGISTERED_USER})


def parse_role(value) -> Role | None:
    """Return the Role for ``value`` or None when it is not a known role."""
    try:
        return Role(value)
    except ValueError:
        return None


__all__ = ["Role", "STAFF_ROLES", "SELF_ASSIGNABLE_ROLES", "parse_role"]
