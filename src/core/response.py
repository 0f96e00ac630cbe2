"""Response helpers and base classes for the ``{data, errors}`` envelope."""

from typing import Any

from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.viewsets import ModelViewSet


def api_response(data: Any, status: int = 200, message: str | None = None) -> Response:
    """Return data wrapped in the standard envelope.

    ``message`` is an optional human-readable note, e.g. telling a commenter
    that their comment awaits moderation.
    """

    body = {"data": data, "errors": []}
    if message:
        body["message"] = message
    return Response(body, status=status)


def _is_enveloped(payload: Any) -> bool:
    return isinstance(payload, dict) and "data" in payload and "errors" in payload


class EnvelopeMixin:
    """Wrap successful responses that were not built with ``api_response``."""

    def finalize_response(self, request, response, *args, **kwargs):  # type: ignore[override]
        if hasattr(response, "data") and response.status_code and response.status_code < 400:
            if response.status_code != 204 and not _is_enveloped(response.data):
                response.data = {"data": response.data, "errors": []}
        return super().finalize_response(request, response, *args, **kwargs)  # type: ignore[attr-defined]


class BaseAPIView(EnvelopeMixin, APIView):
    """APIView that ensures successful responses use the standard envelope."""


class BaseViewSet(EnvelopeMixin, ModelViewSet):
    """ModelViewSet variant whose writes are routed through a lifecycle engine.

    Subclasses override ``create``/``update``/``destroy`` to call the engine
    and render the result with ``api_response``.
    """
