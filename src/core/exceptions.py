"""Custom exception handling to enforce the API error envelope."""

import logging
from typing import Any

from django.conf import settings
from django.db import DatabaseError
from rest_framework import status
from rest_framework.exceptions import AuthenticationFailed, NotAuthenticated
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from authentication.services import BlocklistUnavailable
from core import errors

logger = logging.getLogger(__name__)

DOMAIN_ERROR_STATUS: dict[type[errors.ModerationError], int] = {
    errors.NotFound: status.HTTP_404_NOT_FOUND,
    errors.PermissionDenied: status.HTTP_403_FORBIDDEN,
    errors.InvalidState: status.HTTP_409_CONFLICT,
    errors.ValidationFailed: status.HTTP_400_BAD_REQUEST,
}


def _normalize_errors(payload: Any) -> list[Any]:
    """Convert DRF's response.data into a list for the envelope."""

    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and "detail" in payload:
        # Common DRF pattern: {"detail": "..."}
        return [payload["detail"]]
    return [payload]


def _domain_error_response(exc: errors.ModerationError) -> Response:
    """Render a moderation error with its stable code and message."""
    status_code = status.HTTP_400_BAD_REQUEST
    for error_cls, mapped_status in DOMAIN_ERROR_STATUS.items():
        if isinstance(exc, error_cls):
            status_code = mapped_status
            break
    return Response(
        {"data": None, "errors": [exc.message], "code": exc.code},
        status=status_code,
    )


def custom_exception_handler(exc: Exception, context: dict[str, Any]) -> Response | None:
    """Wrap DRF and domain errors in `{ "data": null, "errors": [...] }` shape.

    - Domain errors from the moderation engines keep their own message and
      carry a stable ``code``.
    - Uses DRF's default handler to produce the base response otherwise.
    - Optionally exposes more detailed auth errors when DEBUG_AUTH_ERRORS is enabled.
    """

    if isinstance(exc, errors.ModerationError):
        return _domain_error_response(exc)

    # Blocklist connectivity errors are security-critical and fail closed.
    if isinstance(exc, BlocklistUnavailable):
        logger.error("Token blocklist unavailable: %s", exc)
        return Response(
            {"data": None, "errors": ["Authentication service unavailable (blocklist)."]},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    if isinstance(exc, DatabaseError):
        logger.exception("Database error while handling request")
        return Response(
            {"data": None, "errors": ["Service temporarily unavailable."]},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    response = drf_exception_handler(exc, context)

    if response is None:
        return response

    if isinstance(exc, (AuthenticationFailed, NotAuthenticated)):
        response.status_code = status.HTTP_401_UNAUTHORIZED

    if response.status_code >= 400:
        base_errors = response.data
        code = None

        if response.status_code == status.HTTP_401_UNAUTHORIZED:
            if getattr(settings, "DEBUG_AUTH_ERRORS", False):
                errors_list = _normalize_errors(base_errors)
            else:
                errors_list = [
                    "Authentication credentials were not provided or are invalid, "
                    "token revoked, or user is inactive."
                ]
        elif response.status_code == status.HTTP_403_FORBIDDEN:
            errors_list = [errors.PermissionDenied.default_message]
            code = errors.PermissionDenied.code
        else:
            errors_list = _normalize_errors(base_errors)

        response.data = {"data": None, "errors": errors_list}
        if code:
            response.data["code"] = code

    return response
