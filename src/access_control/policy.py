"""Table-driven authorization gate for every mutating newsroom operation.

Each :class:`Operation` maps to a :class:`Rule` naming the roles that may
perform it outright and how ownership of the target entity changes that:

* ``OwnerOverride.ALLOW``: the owner may act even without a listed role.
* ``OwnerOverride.ONLY``: only the owner may act; roles are ignored.
* ``OwnerOverride.EXCLUDE``: listed roles may act, but never on their own entity.
* ``OwnerOverride.NONE``: ownership is irrelevant.

Engines call :func:`require` before touching any state.
"""

import enum
import logging
from dataclasses import dataclass

from django.conf import settings

from core import errors

from .roles import STAFF_ROLES, Role, parse_role

logger = logging.getLogger(__name__)


class Operation(str, enum.Enum):
    CREATE_NEWS = "create_news"
    EDIT_NEWS = "edit_news"
    REVIEW_NEWS = "review_news"
    DELETE_NEWS = "delete_news"
    CREATE_COMMENT = "create_comment"
    EDIT_COMMENT = "edit_comment"
    DELETE_COMMENT_HARD = "delete_comment_hard"
    DELETE_COMMENT_SOFT = "delete_comment_soft"
    MODERATE_COMMENT = "moderate_comment"
    REACT_COMMENT = "react_comment"
    ASSIGN_ROLE = "assign_role"
    LIST_USERS = "list_users"
    VIEW_MODERATION_QUEUE = "view_moderation_queue"


class OwnerOverride(enum.Enum):
    NONE = "none"
    ALLOW = "allow"
    ONLY = "only"
    EXCLUDE = "exclude"


@dataclass(frozen=True)
class Rule:
    roles: frozenset
    owner: OwnerOverride = OwnerOverride.NONE

    def allows(self, role: Role, ownership_match: bool) -> bool:
        if self.owner is OwnerOverride.ONLY:
            return ownership_match
        if self.owner is OwnerOverride.ALLOW and ownership_match:
            return True
        if self.owner is OwnerOverride.EXCLUDE and ownership_match:
            return False
        return role in self.roles

    def could_allow(self, role: Role) -> bool:
        """True if some ownership outcome would let ``role`` through."""
        if self.owner in (OwnerOverride.ONLY, OwnerOverride.ALLOW):
            return True
        return role in self.roles


ALL_ROLES = frozenset(Role)
STAFF = STAFF_ROLES
COMMENTERS = frozenset({Role.REGISTERED_USER, Role.JOURNALIST, Role.MODERATOR, Role.ADMIN})

PERMISSION_TABLE: dict[Operation, Rule] = {
    # Journalists submit for review; every other authenticated role gets a draft.
    Operation.CREATE_NEWS: Rule(ALL_ROLES),
    Operation.EDIT_NEWS: Rule(STAFF, OwnerOverride.ALLOW),
    Operation.REVIEW_NEWS: Rule(STAFF),
    Operation.DELETE_NEWS: Rule(STAFF, OwnerOverride.ALLOW),
    Operation.CREATE_COMMENT: Rule(COMMENTERS),
    Operation.EDIT_COMMENT: Rule(frozenset(), OwnerOverride.ONLY),
    Operation.DELETE_COMMENT_HARD: Rule(frozenset(), OwnerOverride.ONLY),
    Operation.DELETE_COMMENT_SOFT: Rule(STAFF, OwnerOverride.EXCLUDE),
    Operation.MODERATE_COMMENT: Rule(STAFF),
    Operation.REACT_COMMENT: Rule(COMMENTERS),
    Operation.ASSIGN_ROLE: Rule(frozenset({Role.ADMIN})),
    Operation.LIST_USERS: Rule(STAFF),
    Operation.VIEW_MODERATION_QUEUE: Rule(STAFF),
}


def can_perform(role, operation: Operation, ownership_match: bool = False) -> bool:
    """Return True if ``role`` may perform ``operation``.

    ``ownership_match`` says whether the acting identity owns the target
    entity. Unknown roles are always denied.
    """
    parsed = parse_role(role)
    if parsed is None:
        return False
    return PERMISSION_TABLE[operation].allows(parsed, ownership_match)


def could_perform(role, operation: Operation) -> bool:
    """Coarse pre-check used before the target entity is loaded."""
    parsed = parse_role(role)
    if parsed is None:
        return False
    return PERMISSION_TABLE[operation].could_allow(parsed)


def is_acting_identity(user) -> bool:
    return bool(
        user is not None
        and getattr(user, "is_authenticated", False)
        and getattr(user, "is_active", False)
    )


def is_owner(user, owner_id) -> bool:
    return owner_id is not None and is_acting_identity(user) and str(owner_id) == str(user.pk)


def _has_superuser_bypass(user) -> bool:
    return (
        is_acting_identity(user)
        and getattr(settings, "ALLOW_SUPERUSER_BYPASS", False)
        and getattr(user, "is_superuser", False)
    )


def require(user, operation: Operation, ownership_match: bool = False) -> None:
    """Raise ``PermissionDenied`` unless ``user`` may perform ``operation``.

    Anonymous and inactive identities are always denied. When
    ``settings.ALLOW_SUPERUSER_BYPASS`` is enabled, active superusers pass
    every check.
    """
    if _has_superuser_bypass(user):
        return
    role = getattr(user, "role", None)
    if is_acting_identity(user) and can_perform(role, operation, ownership_match):
        return
    logger.warning(
        "Denied %s for user=%s role=%s owner=%s",
        operation.value,
        getattr(user, "pk", None),
        role,
        ownership_match,
    )
    raise errors.PermissionDenied()


__all__ = [
    "Operation",
    "OwnerOverride",
    "Rule",
    "PERMISSION_TABLE",
    "can_perform",
    "could_perform",
    "is_acting_identity",
    "is_owner",
    "require",
]
