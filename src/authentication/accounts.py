"""Account operations that go through the authorization gate."""

import logging

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import transaction

from access_control.policy import Operation, require
from access_control.roles import Role, parse_role
from core import errors

logger = logging.getLogger(__name__)

User = get_user_model()


def get_user(user_id) -> User:
    try:
        return User.objects.get(pk=user_id)
    except (User.DoesNotExist, ValidationError, ValueError):
        raise errors.NotFound("User not found.")


def list_users(acting_user):
    """Return every account; moderators and admins only."""
    require(acting_user, Operation.LIST_USERS)
    return User.objects.all()


def assign_role(target, acting_user, role) -> User:
    """Change ``target``'s role. Only admins may do this."""
    require(acting_user, Operation.ASSIGN_ROLE)
    new_role = parse_role(role)
    if new_role is None:
        raise errors.ValidationFailed(
            f"Invalid role. Use one of: {', '.join(r.value for r in Role)}."
        )

    with transaction.atomic():
        previous = target.role
        target.role = new_role
        target.save(update_fields=["role", "updated_at"])

    logger.info(
        "Role of user %s changed %s -> %s by %s", target.pk, previous, new_role.value, acting_user.pk
    )
    return target


__all__ = ["get_user", "list_users", "assign_role"]
