"""Page-number pagination rendered inside the standard envelope."""

import math

from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class EnvelopePagination(PageNumberPagination):
    """Paginate with ``?page=&limit=`` and report totals next to the data."""

    page_size = 10
    page_size_query_param = "limit"
    max_page_size = 100

    def get_paginated_response(self, data):
        total = self.page.paginator.count
        per_page = self.page.paginator.per_page
        return Response(
            {
                "data": data,
                "errors": [],
                "pagination": {
                    "current_page": self.page.number,
                    "total_pages": math.ceil(total / per_page) if per_page else 0,
                    "total_items": total,
                    "items_per_page": per_page,
                },
            }
        )

    def get_paginated_response_schema(self, schema):
        return {
            "type": "object",
            "properties": {
                "data": schema,
                "errors": {"type": "array", "items": {"type": "string"}},
                "pagination": {
                    "type": "object",
                    "properties": {
                        "current_page": {"type": "integer"},
                        "total_pages": {"type": "integer"},
                        "total_items": {"type": "integer"},
                        "items_per_page": {"type": "integer"},
                    },
                },
            },
        }


class CommentPagination(EnvelopePagination):
    """Comment listings default to twenty items per page."""

    page_size = 20


def apply_sort(queryset, sort_by: str | None, sort_order: str | None, allowed: set[str], default: str):
    """Order ``queryset`` by a whitelisted field, breaking ties on primary key.

    Unknown fields fall back to ``default``; ``sort_order`` is ``asc`` or
    ``desc`` (anything else is treated as ``desc``).
    """
    field = sort_by if sort_by in allowed else default
    prefix = "" if (sort_order or "").lower() == "asc" else "-"
    return queryset.order_by(f"{prefix}{field}", f"{prefix}pk")


__all__ = ["EnvelopePagination", "CommentPagination", "apply_sort"]
