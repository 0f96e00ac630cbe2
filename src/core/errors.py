"""Domain error taxonomy shared by the moderation engines.

Engines raise these instead of DRF exceptions so they stay usable outside a
request cycle (management commands, shell, tests). The API exception handler
maps each ``code`` to an HTTP status.
"""


class ModerationError(Exception):
    """Base class for failures with a stable error kind and a readable message."""

    code = "error"
    default_message = "The operation could not be completed."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(ModerationError):
    """Entity or referenced parent is absent or not eligible."""

    code = "not_found"
    default_message = "Resource not found."


class PermissionDenied(ModerationError):
    """Role or ownership check failed."""

    code = "permission_denied"
    default_message = "You do not have permission to perform this action on this resource."


class InvalidState(ModerationError):
    """Operation is illegal from the entity's current status."""

    code = "invalid_state"
    default_message = "This operation is not allowed in the current state."


class ValidationFailed(ModerationError):
    """Malformed input such as an unknown enum value or oversize content."""

    code = "validation_failed"
    default_message = "Invalid input."


__all__ = [
    "ModerationError",
    "NotFound",
    "PermissionDenied",
    "InvalidState",
    "ValidationFailed",
]
