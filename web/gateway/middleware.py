"""Middleware that assigns and propagates request context.

Every incoming HTTP request receives a request identifier (UUID). The
identifier is read from the incoming ``X-Request-Id`` header when the API
gateway provides one, or generated server-side otherwise. The middleware
stores the id on the ``request`` object and in a context variable so code
running downstream (loggers, the notification webhook client) can access it
without passing the value explicitly. The caller id asserted by the gateway
(``X-User-Id``) is kept the same way for log correlation.

Behavior contract:
- If the incoming request contains the ``X-Request-Id`` header, that value
  is reused as the request id.
- Otherwise a new UUIDv4 is generated.
- The response will include the same id in the ``X-Request-ID`` header.
"""

import uuid
import contextvars
from django.conf import settings
from django.http import JsonResponse

from django.utils.deprecation import MiddlewareMixin

REQUEST_ID_CTX = contextvars.ContextVar("request_id", default="-")
USER_ID_CTX = contextvars.ContextVar("user_id", default="-")


class RequestIdMiddleware(MiddlewareMixin):
    """Django middleware that sets and returns a per-request identifier.

    Attributes:
        HEADER (str): The incoming header (``request.META`` casing) that may
            contain a gateway-provided id.
        USER_HEADER (str): The incoming header carrying the caller id.
        RESPONSE_HEADER (str): The name of the header returned on responses.
    """

    HEADER = "HTTP_X_REQUEST_ID"
    USER_HEADER = "HTTP_X_USER_ID"
    RESPONSE_HEADER = "X-Request-ID"

    def process_request(self, request):
        rid = request.META.get(self.HEADER)
        if not rid:
            rid = str(uuid.uuid4())
        request.request_id = rid
        REQUEST_ID_CTX.set(rid)
        USER_ID_CTX.set(request.META.get(self.USER_HEADER) or "-")

    def process_response(self, request, response):
        """Ensure the response carries the request id header.

        Prefers the id attached to the request object but falls back to the
        ContextVar value when the request never went through
        ``process_request`` (for example in some error handlers).
        """
        rid = getattr(request, "request_id", REQUEST_ID_CTX.get())
        response[self.RESPONSE_HEADER] = rid
        return response


class ApiSizeLimitMiddleware(MiddlewareMixin):
    """Reject API bodies larger than ``settings.API_MAX_BYTES`` with 413."""

    def process_request(self, request):
        if request.path.startswith("/api/"):
            limit = getattr(settings, "API_MAX_BYTES", 1 * 1024 * 1024)
            clen = request.META.get("CONTENT_LENGTH")
            if clen and clen.isdigit() and int(clen) > limit:
                return JsonResponse({"detail": "PAYLOAD_TOO_LARGE"}, status=413)
