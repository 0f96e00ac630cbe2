"""DRF authenticator that trusts the identity resolved by ``JWTAuthMiddleware``.

Token parsing, blocklist and token-version checks all happen in the
middleware; DRF only needs to see the resulting user so that permission
classes can tell "anonymous" (401) apart from "not allowed" (403).
"""

from typing import Any, Optional, Tuple

from rest_framework.authentication import BaseAuthentication


class MiddlewareUserAuthentication(BaseAuthentication):
    """Surface ``request._request.user`` to DRF when it is an active account."""

    def authenticate(self, request) -> Optional[Tuple[Any, None]]:
        django_request = getattr(request, "_request", None)
        user = getattr(django_request, "user", None)
        if user is None or not getattr(user, "is_authenticated", False):
            return None
        if not getattr(user, "is_active", False):
            return None
        return user, None

    def authenticate_header(self, request) -> str:
        # A non-empty header makes DRF answer 401 instead of 403 for anonymous callers.
        return "Bearer"


__all__ = ["MiddlewareUserAuthentication"]
