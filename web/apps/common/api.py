"""Shared DRF plumbing: caller identity, permissions and error responses.

Authentication itself happens upstream (the identity provider / API
gateway). By the time a request reaches Django the caller is described by
two trusted headers, ``X-User-Id`` and ``X-User-Role``. A request without
them is anonymous and is rejected by the permission classes with 403.
"""

from dataclasses import dataclass

from django.core.paginator import Paginator
from pydantic import ValidationError
from rest_framework import status
from rest_framework.authentication import BaseAuthentication
from rest_framework.permissions import BasePermission
from rest_framework.response import Response

from .errors import MarketError

ROLES = ("student", "admin")


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, as asserted by the gateway headers."""

    user_id: str
    role: str

    # DRF / Django user protocol
    is_authenticated = True
    is_anonymous = False

    @property
    def pk(self) -> str:
        return self.user_id

    @property
    def is_staff(self) -> bool:
        return self.role == "admin"


class GatewayHeaderAuthentication(BaseAuthentication):
    """Build an ``Identity`` from ``X-User-Id`` / ``X-User-Role``.

    An unknown role is treated as ``student``: the headers can only ever
    grant staff rights explicitly.
    """

    def authenticate(self, request):
        user_id = (request.headers.get("X-User-Id") or "").strip()
        if not user_id:
            return None
        role = (request.headers.get("X-User-Role") or "student").strip().lower()
        if role not in ROLES:
            role = "student"
        return Identity(user_id=user_id, role=role), None


class IsMember(BasePermission):
    """Any identified caller, student or staff."""

    def has_permission(self, request, view):
        return isinstance(request.user, Identity)


class IsStaff(BasePermission):
    def has_permission(self, request, view):
        return isinstance(request.user, Identity) and request.user.is_staff


def error_response(exc: MarketError) -> Response:
    """Map a business error to ``{"detail": CODE, "message": text}``."""
    return Response({"detail": exc.code, "message": exc.message}, status=exc.http_status)


def validation_error_response(exc: ValidationError) -> Response:
    return Response(
        {
            "detail": "VALIDATION_ERROR",
            "errors": exc.errors(include_url=False, include_context=False, include_input=False),
        },
        status=status.HTTP_400_BAD_REQUEST,
    )


def paginated(request, rows, serialize, default_page_size: int = 20) -> dict:
    """Page an already-ordered list for a list endpoint.

    Query parameters ``page`` and ``page_size`` (capped at 100).
    """
    try:
        page = int(request.GET.get("page", 1))
        page_size = int(request.GET.get("page_size", default_page_size))
    except ValueError:
        page, page_size = 1, default_page_size
    page_size = max(1, min(page_size, 100))
    p = Paginator(rows, page_size)
    page_obj = p.get_page(page)
    return {
        "count": p.count,
        "page": page_obj.number,
        "page_size": page_size,
        "results": [serialize(r) for r in page_obj.object_list],
    }
