"""Middleware to authenticate requests via JWT and Redis blocklist."""

import logging
from typing import Optional

from django.contrib.auth.models import AnonymousUser
from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin
from rest_framework import status
from rest_framework.exceptions import AuthenticationFailed

from authentication.models import User
from authentication.services import TokenService, BlocklistUnavailable

logger = logging.getLogger(__name__)


class JWTAuthMiddleware(MiddlewareMixin):
    """Decode access JWT, check blocklist and token version, attach request.user."""

    def process_request(self, request):  # type: ignore[override]
        """Authenticate request using Bearer access token if present."""
        auth_header = request.META.get("HTTP_AUTHORIZATION", "")
        if not auth_header or not auth_header.startswith("Bearer "):
            request.user = AnonymousUser()
            return None

        token = auth_header.split(" ", 1)[1]

        try:
            payload = TokenService.decode_token(token, expected_type="access")
            jti = payload.get("jti")
            if not jti:
                return _unauthorized("missing jti")

            if TokenService.is_token_blocked(jti):
                return _unauthorized("blocklisted token")

            user = self._get_user(payload.get("sub"))
            if not user or not user.is_active:
                return _unauthorized("unknown or inactive user")

            # logout-all bumps token_version; older tokens are revoked.
            if payload.get("ver") != user.token_version:
                return _unauthorized("revoked token version")

            request.user = user
            return None

        except AuthenticationFailed as exc:
            return _unauthorized(str(exc))
        except BlocklistUnavailable as exc:
            logger.error("Token blocklist unavailable during authentication: %s", exc)
            return _service_unavailable()

    @staticmethod
    def _get_user(user_id: Optional[str]) -> Optional[User]:
        if not user_id:
            return None
        try:
            return User.objects.get(id=user_id)
        except (User.DoesNotExist, ValidationError):
            return None


def _unauthorized(reason: str) -> JsonResponse:
    logger.debug("Rejected bearer token: %s", reason)
    return JsonResponse(
        {
            "data": None,
            "errors": [
                "Authentication credentials were not provided or are invalid, token revoked, or user is inactive."
            ],
        },
        status=status.HTTP_401_UNAUTHORIZED,
    )


def _service_unavailable() -> JsonResponse:
    return JsonResponse(
        {"data": None, "errors": ["Authentication service unavailable (blocklist)."]},
        status=status.HTTP_503_SERVICE_UNAVAILABLE,
    )


__all__ = ["JWTAuthMiddleware"]
